"""Wallet address / transaction id normalization shared by challenges and chain adapters."""
import re

EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
EVM_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
# base58 alphabet (no 0, O, I, l)
SOLANA_SIGNATURE_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{64,88}$")


def normalize_address(address: str) -> str:
    """EVM addresses are case-insensitive (lowercase them); base58 addresses are only stripped."""
    address = (address or "").strip()
    if address[:2].lower() == "0x":
        return address.lower()
    return address
