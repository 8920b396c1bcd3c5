"""
Geyser accounts sink package.

Streams account updates owned by selected Solana programs from a validator
to a Supabase/PostgREST ``accounts`` table.
"""

from .config import SinkConfig
from .forwarding_client import ForwardingClient
from .models import AccountRecord, AccountUpdateEvent, Outcome, OutcomeStatus
from .plugin import GeyserSinkPlugin
from .sink_coordinator import SinkCoordinator

__all__ = [
    "SinkConfig",
    "ForwardingClient",
    "SinkCoordinator",
    "GeyserSinkPlugin",
    "AccountUpdateEvent",
    "AccountRecord",
    "Outcome",
    "OutcomeStatus",
]
__version__ = "0.1.0"
