import re

SUI_ADDRESS_LENGTH = 64
MIST_PER_SUI = 1_000_000_000

_SUI_ADDRESS_RE = re.compile(r"(0x|0X)?[a-fA-F0-9]{64}")


def is_valid_sui_address(address) -> bool:
    """True for 32-byte hex addresses, with or without a 0x/0X prefix."""
    if not isinstance(address, str):
        return False
    return bool(_SUI_ADDRESS_RE.fullmatch(address))


def normalize_sui_address(address: str) -> str:
    """Lower-case, 0x-prefixed, left-padded to 64 hex chars."""
    address = address.strip().lower()
    if address.startswith("0x"):
        address = address[2:]
    return "0x" + address.rjust(SUI_ADDRESS_LENGTH, "0")


def format_address(address: str, chars: int = 4) -> str:
    """Truncate: 0x1234…abcd"""
    address = normalize_sui_address(address)
    return f"{address[:chars + 2]}…{address[-chars:]}"


def mist_to_sui(mist: int | str) -> float:
    return int(mist) / MIST_PER_SUI


def format_balance(mist: int | str) -> str:
    return f"{mist_to_sui(mist):.4f}"
