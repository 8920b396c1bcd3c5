from solders.pubkey import Pubkey

from ..models import FixedKey32

KEY_LENGTH: int = 32


class DecodeError(ValueError):
    """Raised when an identity is not a valid 32-byte base58 key."""


def decode(text: str) -> FixedKey32:
    """Decode a base58 identity into its 32-byte binary key.

    Args:
        text: Base58 encoded public key

    Returns:
        The 32 raw key bytes

    Raises:
        DecodeError: If the text is not base58 or not exactly 32 bytes long
    """
    if not isinstance(text, str) or not text:
        raise DecodeError(f"Identity must be a non-empty base58 string, got {text!r}")

    try:
        pubkey: Pubkey = Pubkey.from_string(text)
    except ValueError as e:
        raise DecodeError(f"Invalid identity {text!r}: {e}") from e

    return bytes(pubkey)


def encode(key: FixedKey32) -> str:
    """Encode a 32-byte key as base58.

    Raises:
        DecodeError: If the key is not exactly 32 bytes long
    """
    if len(key) != KEY_LENGTH:
        raise DecodeError(f"Identity must be {KEY_LENGTH} bytes, got {len(key)}")
    return str(Pubkey(bytes(key)))
