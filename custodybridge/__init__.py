"""custodybridge: signed transfers between two independently run custody ledgers.

Moves value between a margin-lending ledger and a derivatives-collateral
ledger on behalf of an account holder:
  - EIP-712 domain-separated transfer hashes
  - Owner, delegate, or signature authorization
  - Persistent replay guard keyed by transfer hash
  - Balance-delta measurement across the cross-ledger move
"""

__version__ = "0.1.0"

from custodybridge.core.orchestrator import TransferOrchestrator
from custodybridge.models.transfer import Transfer, TransferMode

__all__ = ["TransferOrchestrator", "Transfer", "TransferMode", "__version__"]
