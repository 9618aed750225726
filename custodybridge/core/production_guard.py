"""Production configuration guard.

Runs once when the orchestrator is built and fails hard if the bridge
would sign into the wrong domain or run with debug enabled in production.
"""

from __future__ import annotations

import logging

from custodybridge.config import BridgeConfig
from custodybridge.models.transfer import ZERO_ADDRESS, to_checksum

logger = logging.getLogger(__name__)


class ProductionConfigError(RuntimeError):
    """Raised when production configuration constraints are violated.

    The process should exit; this must not be caught and ignored.
    """


def enforce_production_constraints(config: BridgeConfig) -> None:
    """Validate production-critical settings; no-op outside production.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. ``bridge_address`` must be a real, non-zero address.
    3. ``chain_id`` must be positive.

    All violations are collected and reported in one ``ProductionConfigError``.
    """
    if not config.is_production:
        return

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. Set CUSTODYBRIDGE_DEBUG=false."
        )

    try:
        if to_checksum(config.bridge_address) == ZERO_ADDRESS:
            violations.append(
                "bridge_address is the zero address. Set CUSTODYBRIDGE_BRIDGE_ADDRESS."
            )
    except ValueError:
        violations.append(
            f"bridge_address {config.bridge_address!r} is not a valid address."
        )

    if config.chain_id <= 0:
        violations.append(
            f"chain_id must be positive, got {config.chain_id}. Set CUSTODYBRIDGE_CHAIN_ID."
        )

    if violations:
        msg = "Production configuration guard failed.\n" + "\n".join(
            f"  - {v}" for v in violations
        )
        logger.critical(msg)
        raise ProductionConfigError(msg)

    logger.info("Production configuration guard passed.")
