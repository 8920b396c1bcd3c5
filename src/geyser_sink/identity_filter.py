"""Allow-list matching of account owners."""

from collections.abc import Set

from .models import FixedKey32


def is_relevant(owner: FixedKey32, allowed: Set[FixedKey32]) -> bool:
    """Check whether an account's owning program is on the allow-list.

    An empty allow-list matches nothing, so a sink configured without
    programs forwards no accounts.

    Args:
        owner: 32-byte owning program id
        allowed: Decoded program ids to forward

    Returns:
        True if the account should be forwarded, False otherwise
    """
    return owner in allowed
