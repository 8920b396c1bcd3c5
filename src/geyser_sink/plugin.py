#!/usr/bin/env python3
"""Host-facing facade mirroring the validator's Geyser plugin lifecycle.

The validator loads the plugin once with a config file, then calls
``update_account`` for every account mutation. This class only maps those
callbacks onto the coordinator and owns the lifetime of the shared client.
"""

import logging
from dataclasses import replace

import httpx

from .config import ConfigError, SinkConfig
from .forwarding_client import ForwardingClient
from .models import AccountUpdateEvent, Outcome
from .sink_coordinator import SinkCoordinator

logger = logging.getLogger(__name__)


class PluginConfigError(ConfigError):
    """Raised by ``on_load`` when the configuration cannot be used."""


class GeyserSinkPlugin:
    """Accounts sink plugin for the Solana validator."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """
        Create an unloaded plugin.

        :param transport: Optional HTTP transport override (used in tests)
        """
        self.transport = transport
        self.config: SinkConfig | None = None
        self.client: ForwardingClient | None = None
        self.coordinator: SinkCoordinator | None = None

    def name(self) -> str:
        return "geyser"

    def on_load(self, config_file: str, is_startup: bool = False) -> None:
        """
        Load the configuration and build the shared forwarding client.

        :param config_file: Path of the JSON configuration file
        :param is_startup: Whether the validator is starting up
        :raises PluginConfigError: If the configuration cannot be loaded
        """
        logger.info(f"config file: {config_file}")
        try:
            config = SinkConfig.load(config_file)
        except ConfigError as e:
            logger.error(f"Failed to load config file {config_file}: {e}")
            raise PluginConfigError("Error opening, or reading config file") from e

        logger.info(f"Your supabase url: {config.endpoint}")
        config.log_config()

        self.config = config
        self.client = ForwardingClient(config, transport=self.transport)
        self.coordinator = SinkCoordinator(config, self.client)

    def on_unload(self) -> None:
        """Release the connection pool. Safe to call more than once."""
        if self.client is not None:
            self.client.close()
            logger.info("Forwarding client closed")
        self.client = None
        self.coordinator = None

    def update_account(
        self,
        account: AccountUpdateEvent,
        slot: int,
        is_startup: bool = False
    ) -> Outcome:
        """
        Handle one account update from the validator.

        :param account: Account info delivered by the validator
        :param slot: Slot of the update
        :param is_startup: Whether the update is part of the startup snapshot
        :return: The outcome of the update; never raises
        """
        if self.coordinator is None:
            logger.warning("Account update received before plugin was loaded")
            return Outcome.rejected("Plugin not loaded")

        event = replace(account, slot=slot, is_startup=is_startup)
        return self.coordinator.on_account_update(event)

    def notify_end_of_startup(self) -> None:
        logger.info("Validator startup complete")

    def account_data_notifications_enabled(self) -> bool:
        return True

    def transaction_notifications_enabled(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"GeyserSinkPlugin(loaded={self.coordinator is not None})"
