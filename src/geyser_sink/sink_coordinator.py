#!/usr/bin/env python3
"""Per-update entry point of the accounts sink.

This module decides whether an account update is relevant and, if so,
forwards it to the remote store. Every failure is turned into an Outcome so
that the validator's replication stream is never interrupted.
"""

import logging

from .config import SinkConfig
from .forwarding_client import ForwardError, ForwardingClient
from .identity_filter import is_relevant
from .models import (
    SUPPORTED_VERSION,
    AccountInfoVersion,
    AccountRecord,
    AccountUpdateEvent,
    Outcome,
)
from .utils.identity_codec import encode

# Get logger for this module
logger = logging.getLogger(__name__)

UNSUPPORTED_VERSION_MESSAGES: dict[AccountInfoVersion, str] = {
    AccountInfoVersion.V0_0_1: "V1 not supported, please upgrade your Solana CLI Version",
    AccountInfoVersion.V0_0_2: "V2 not supported, please upgrade your Solana CLI Version",
}


def build_record(event: AccountUpdateEvent) -> AccountRecord:
    """Build the row forwarded for a matching account update.

    Only the account key, owner, data and executable flag are forwarded;
    lamports and rent epoch are not part of the remote schema.
    """
    return AccountRecord(
        account=encode(event.address),
        owner=encode(event.owner),
        data=bytes(event.data),
        executable=event.executable
    )


class SinkCoordinator:
    """Filters account updates and forwards the relevant ones.

    The coordinator holds no per-update state. It only reads the frozen
    configuration and shares the forwarding client, so it can be called
    concurrently from any number of validator threads.
    """

    def __init__(self, config: SinkConfig, client: ForwardingClient) -> None:
        """Initialize the SinkCoordinator.

        Args:
            config: Loaded sink configuration
            client: Shared forwarding client
        """
        self.config = config
        self.client = client

        logger.info(
            f"SinkCoordinator initialized with {len(config.allowed_programs)} "
            f"allowed program(s)"
        )

    def on_account_update(self, event: AccountUpdateEvent) -> Outcome:
        """Handle one account update.

        Args:
            event: The account update delivered by the validator

        Returns:
            REJECTED for unsupported account info versions, SKIPPED for
            accounts owned by programs outside the allow-list, FORWARDED or
            FORWARD_FAILED otherwise
        """
        if event.version != SUPPORTED_VERSION:
            reason = UNSUPPORTED_VERSION_MESSAGES.get(
                event.version,
                f"Account info version {event.version.value} not supported"
            )
            logger.error(f"Rejected account update: {reason}")
            return Outcome.rejected(reason)

        if not is_relevant(bytes(event.owner), self.config.allowed_programs):
            return Outcome.skipped()

        account_pubkey = "<unknown>"
        try:
            record = build_record(event)
            account_pubkey = record.account
            self.client.upsert(record)
        except ForwardError as e:
            logger.error(f"Error updating account {account_pubkey} at slot {event.slot}: {e}")
            return Outcome.forward_failed(str(e))
        except Exception as e:
            logger.error(
                f"Unexpected error forwarding account {account_pubkey} at slot {event.slot}: {e}",
                exc_info=True
            )
            return Outcome.forward_failed(f"{type(e).__name__}: {e}")

        logger.info(f"account {account_pubkey} updated at slot {event.slot}!")
        return Outcome.forwarded()
