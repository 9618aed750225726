"""EIP-712 hashing for transfers.

The transfer hash is::

    keccak256(0x1901 || domain_separator || keccak256(abi.encode(TRANSFER_TYPEHASH, ...fields)))

It is the replay key, the message the account signs, and the correlation id
on emitted events. It must stay bit-exact with signatures produced by
existing wallets, so the schema strings below are wire constants.
"""

from __future__ import annotations

from eth_abi import encode as abi_encode
from web3 import Web3

from custodybridge.models.transfer import Transfer, to_checksum

EIP191_HEADER = b"\x19\x01"

EIP712_DOMAIN_SCHEMA = (
    "EIP712Domain("
    "string name,"
    "string version,"
    "uint256 chainId,"
    "address verifyingContract"
    ")"
)

EIP712_TRANSFER_SCHEMA = (
    "Transfer("
    "address account,"
    "address perpetual,"
    "uint256 soloAccountNumber,"
    "uint256 soloMarketId,"
    "uint256 amount,"
    "bytes32 options"
    ")"
)

DEFAULT_DOMAIN_NAME = "P1SoloBridgeProxy"
DEFAULT_DOMAIN_VERSION = "1.0"


def keccak(data: bytes) -> bytes:
    """Keccak-256 of raw bytes."""
    return bytes(Web3.keccak(data))


def hash_string(value: str) -> bytes:
    return keccak(value.encode("utf-8"))


EIP712_DOMAIN_TYPEHASH = hash_string(EIP712_DOMAIN_SCHEMA)
EIP712_TRANSFER_TYPEHASH = hash_string(EIP712_TRANSFER_SCHEMA)


def domain_hash(name: str, version: str, chain_id: int, contract_address: str) -> bytes:
    """EIP-712 domain separator over name, version, chain id and contract."""
    return keccak(
        abi_encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                EIP712_DOMAIN_TYPEHASH,
                hash_string(name),
                hash_string(version),
                chain_id,
                to_checksum(contract_address),
            ],
        )
    )


def transfer_struct_hash(transfer: Transfer) -> bytes:
    """Struct hash over all six transfer fields, in declaration order.

    The raw options word is hashed, not its decoded subfields.
    """
    return keccak(
        abi_encode(
            ["bytes32", "address", "address", "uint256", "uint256", "uint256", "bytes32"],
            [
                EIP712_TRANSFER_TYPEHASH,
                transfer.account,
                transfer.counterparty,
                transfer.margin_account_number,
                transfer.margin_market_id,
                transfer.amount,
                transfer.options_bytes,
            ],
        )
    )


def final_hash(domain: bytes, struct: bytes) -> bytes:
    """Combine a domain separator and struct hash into the signable hash."""
    return keccak(EIP191_HEADER + domain + struct)


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def from_hex(value: str) -> bytes:
    """Parse a 0x-prefixed (or bare) 32-byte hex hash."""
    raw = value[2:] if value.lower().startswith("0x") else value
    data = bytes.fromhex(raw)
    if len(data) != 32:
        raise ValueError(f"Expected a 32-byte hash, got {len(data)} bytes")
    return data


class HashEngine:
    """Transfer hashing bound to one domain.

    The domain separator is computed once at construction and never changes.

    Parameters
    ----------
    chain_id:
        Network identifier the signatures are bound to.
    contract_address:
        Address of this bridge; part of the domain.
    name, version:
        Domain name and version strings.
    """

    def __init__(
        self,
        chain_id: int,
        contract_address: str,
        *,
        name: str = DEFAULT_DOMAIN_NAME,
        version: str = DEFAULT_DOMAIN_VERSION,
    ) -> None:
        self.name = name
        self.version = version
        self.chain_id = chain_id
        self.contract_address = to_checksum(contract_address)
        self._domain_separator = domain_hash(
            name, version, chain_id, self.contract_address
        )

    @property
    def domain_separator(self) -> bytes:
        return self._domain_separator

    def struct_hash(self, transfer: Transfer) -> bytes:
        return transfer_struct_hash(transfer)

    def transfer_hash(self, transfer: Transfer) -> bytes:
        """The domain-bound hash identifying *transfer*."""
        return final_hash(self._domain_separator, transfer_struct_hash(transfer))

    def typed_data(self, transfer: Transfer) -> dict:
        """The transfer as an EIP-712 ``full_message`` for wallet signing."""
        return {
            "types": {
                "EIP712Domain": [
                    {"name": "name", "type": "string"},
                    {"name": "version", "type": "string"},
                    {"name": "chainId", "type": "uint256"},
                    {"name": "verifyingContract", "type": "address"},
                ],
                "Transfer": [
                    {"name": "account", "type": "address"},
                    {"name": "perpetual", "type": "address"},
                    {"name": "soloAccountNumber", "type": "uint256"},
                    {"name": "soloMarketId", "type": "uint256"},
                    {"name": "amount", "type": "uint256"},
                    {"name": "options", "type": "bytes32"},
                ],
            },
            "primaryType": "Transfer",
            "domain": {
                "name": self.name,
                "version": self.version,
                "chainId": self.chain_id,
                "verifyingContract": self.contract_address,
            },
            "message": {
                "account": transfer.account,
                "perpetual": transfer.counterparty,
                "soloAccountNumber": transfer.margin_account_number,
                "soloMarketId": transfer.margin_market_id,
                "amount": transfer.amount,
                "options": transfer.options_bytes,
            },
        }
