#!/usr/bin/env python3
"""Data models for the Geyser accounts sink.

This module provides immutable data classes for the account updates received
from the validator, the records forwarded to the remote store and the outcome
reported for every update.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

# Raw 32-byte Solana identity (account address or program id)
FixedKey32 = bytes


class AccountInfoVersion(Enum):
    """Versions of the replica account info delivered by the validator."""

    V0_0_1 = "0.0.1"
    V0_0_2 = "0.0.2"
    V0_0_3 = "0.0.3"


SUPPORTED_VERSION = AccountInfoVersion.V0_0_3


@dataclass(frozen=True, slots=True)
class AccountUpdateEvent:
    """A single account mutation observed by the validator.

    Attributes:
        address: 32-byte account public key
        owner: 32-byte public key of the owning program
        data: Raw account data
        executable: Whether the account holds a program
        lamports: Account balance
        rent_epoch: Next epoch at which rent is due
        slot: Slot in which the update was observed
        version: Shape of the account info the host delivered
        is_startup: Whether the update is part of the startup snapshot
    """

    address: FixedKey32
    owner: FixedKey32
    data: bytes
    executable: bool
    lamports: int
    rent_epoch: int
    slot: int
    version: AccountInfoVersion = SUPPORTED_VERSION
    is_startup: bool = False

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"AccountUpdateEvent(address={self.address.hex()[:8]}..., "
            f"slot={self.slot}, "
            f"data_len={len(self.data)}, "
            f"version={self.version.value})"
        )


@dataclass(frozen=True, slots=True)
class AccountRecord:
    """Row upserted into the remote ``accounts`` table.

    Attributes:
        account: Base58 account public key, used as the upsert key
        owner: Base58 owning program id
        data: Raw account data
        executable: Whether the account holds a program
    """

    account: str
    owner: str
    data: bytes
    executable: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization.

        Account data is sent as an array of byte values.
        """
        return {
            "account": self.account,
            "owner": self.owner,
            "data": list(self.data),
            "executable": self.executable
        }


class OutcomeStatus(Enum):
    """Terminal states of a single update."""

    SKIPPED = "skipped"
    FORWARDED = "forwarded"
    FORWARD_FAILED = "forward_failed"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of handling one account update."""

    status: OutcomeStatus
    reason: str | None = None

    @classmethod
    def skipped(cls) -> "Outcome":
        return cls(OutcomeStatus.SKIPPED)

    @classmethod
    def forwarded(cls) -> "Outcome":
        return cls(OutcomeStatus.FORWARDED)

    @classmethod
    def forward_failed(cls, reason: str) -> "Outcome":
        return cls(OutcomeStatus.FORWARD_FAILED, reason)

    @classmethod
    def rejected(cls, reason: str) -> "Outcome":
        return cls(OutcomeStatus.REJECTED, reason)
