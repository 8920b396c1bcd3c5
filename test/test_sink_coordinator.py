#!/usr/bin/env python3
"""Unit tests for the SinkCoordinator module."""

import logging
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import httpx
import pytest

from src.geyser_sink.config import SinkConfig
from src.geyser_sink.forwarding_client import (
    ForwardingClient,
    ForwardRemoteError,
    ForwardTransportError,
)
from src.geyser_sink.models import (
    AccountInfoVersion,
    AccountRecord,
    AccountUpdateEvent,
    OutcomeStatus,
)
from src.geyser_sink.sink_coordinator import SinkCoordinator, build_record
from src.geyser_sink.utils.identity_codec import encode

PROGRAM_A = bytes([1]) * 32
PROGRAM_B = bytes([2]) * 32
ACCOUNT = bytes(range(32))


def make_config(*programs):
    return SinkConfig(
        endpoint="https://example.supabase.co/rest/v1",
        credential="secret-key",
        allowed_programs=frozenset(programs)
    )


def make_event(owner=PROGRAM_A, version=AccountInfoVersion.V0_0_3, **overrides):
    fields = dict(
        address=ACCOUNT,
        owner=owner,
        data=b"\x00\x01\x02",
        executable=True,
        lamports=1_000_000,
        rent_epoch=361,
        slot=4,
        version=version
    )
    fields.update(overrides)
    return AccountUpdateEvent(**fields)


@pytest.fixture
def mock_client():
    """Create a mock ForwardingClient."""
    return MagicMock(spec=ForwardingClient)


class TestBuildRecord:
    """Tests for record construction."""

    def test_fields_copied(self):
        record = build_record(make_event())

        assert record == AccountRecord(
            account=encode(ACCOUNT),
            owner=encode(PROGRAM_A),
            data=b"\x00\x01\x02",
            executable=True
        )

    def test_lamports_and_rent_epoch_not_forwarded(self):
        payload = build_record(make_event()).to_dict()
        assert set(payload) == {"account", "owner", "data", "executable"}


class TestSinkCoordinator:
    """Test suite for SinkCoordinator."""

    def test_owner_not_allowed_is_skipped(self, mock_client):
        """allowed = {A}, owner = B => Skipped with no outbound call."""
        coordinator = SinkCoordinator(make_config(PROGRAM_A), mock_client)

        outcome = coordinator.on_account_update(make_event(owner=PROGRAM_B))

        assert outcome.status is OutcomeStatus.SKIPPED
        mock_client.upsert.assert_not_called()

    def test_empty_allow_list_skips_everything(self, mock_client):
        coordinator = SinkCoordinator(make_config(), mock_client)

        for owner in (PROGRAM_A, PROGRAM_B, bytes(32)):
            outcome = coordinator.on_account_update(make_event(owner=owner))
            assert outcome.status is OutcomeStatus.SKIPPED

        mock_client.upsert.assert_not_called()

    def test_matching_owner_is_forwarded(self, mock_client):
        """Exactly one upsert with base58 keys and verbatim data."""
        coordinator = SinkCoordinator(make_config(PROGRAM_A, PROGRAM_B), mock_client)

        outcome = coordinator.on_account_update(make_event(owner=PROGRAM_B))

        assert outcome.status is OutcomeStatus.FORWARDED
        assert outcome.reason is None
        mock_client.upsert.assert_called_once()
        record = mock_client.upsert.call_args.args[0]
        assert record.account == encode(ACCOUNT)
        assert record.owner == encode(PROGRAM_B)
        assert record.data == b"\x00\x01\x02"
        assert record.executable is True

    def test_forward_logs_slot(self, mock_client, caplog):
        coordinator = SinkCoordinator(make_config(PROGRAM_A), mock_client)

        with caplog.at_level(logging.INFO):
            coordinator.on_account_update(make_event(slot=77))

        assert f"account {encode(ACCOUNT)} updated at slot 77!" in caplog.text

    def test_transport_failure_is_not_fatal(self, mock_client, caplog):
        """A failed forward returns ForwardFailed instead of raising."""
        mock_client.upsert.side_effect = ForwardTransportError("ConnectError: connection refused")
        coordinator = SinkCoordinator(make_config(PROGRAM_A), mock_client)

        outcome = coordinator.on_account_update(make_event())

        assert outcome.status is OutcomeStatus.FORWARD_FAILED
        assert "connection refused" in outcome.reason
        assert encode(ACCOUNT) in caplog.text

    def test_remote_failure_is_not_fatal(self, mock_client):
        mock_client.upsert.side_effect = ForwardRemoteError(503, "unavailable")
        coordinator = SinkCoordinator(make_config(PROGRAM_A), mock_client)

        outcome = coordinator.on_account_update(make_event())

        assert outcome.status is OutcomeStatus.FORWARD_FAILED
        assert "503" in outcome.reason

    def test_unexpected_error_is_not_fatal(self, mock_client):
        mock_client.upsert.side_effect = RuntimeError("unexpected")
        coordinator = SinkCoordinator(make_config(PROGRAM_A), mock_client)

        outcome = coordinator.on_account_update(make_event())

        assert outcome.status is OutcomeStatus.FORWARD_FAILED
        assert outcome.reason == "RuntimeError: unexpected"

    @pytest.mark.parametrize("version, message", [
        (AccountInfoVersion.V0_0_1, "V1 not supported"),
        (AccountInfoVersion.V0_0_2, "V2 not supported"),
    ])
    def test_legacy_versions_rejected(self, mock_client, version, message):
        """Older account info shapes are rejected without a forward."""
        coordinator = SinkCoordinator(make_config(PROGRAM_A), mock_client)

        outcome = coordinator.on_account_update(make_event(version=version))

        assert outcome.status is OutcomeStatus.REJECTED
        assert message in outcome.reason
        mock_client.upsert.assert_not_called()

    def test_unreachable_store_end_to_end(self):
        """With a real client and a dead remote, updates still return normally."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        config = make_config(PROGRAM_A)
        with ForwardingClient(config, transport=httpx.MockTransport(handler)) as client:
            coordinator = SinkCoordinator(config, client)
            outcome = coordinator.on_account_update(make_event())

        assert outcome.status is OutcomeStatus.FORWARD_FAILED

    def test_concurrent_updates(self):
        """Concurrent updates share one client and each gets its own outcome."""
        received = []

        def handler(request):
            received.append(request)
            return httpx.Response(201)

        config = make_config(PROGRAM_A)
        events = [
            make_event(owner=PROGRAM_A if i % 2 == 0 else PROGRAM_B, slot=i)
            for i in range(20)
        ]

        with ForwardingClient(config, transport=httpx.MockTransport(handler)) as client:
            coordinator = SinkCoordinator(config, client)
            with ThreadPoolExecutor(max_workers=8) as pool:
                outcomes = list(pool.map(coordinator.on_account_update, events))

        statuses = [outcome.status for outcome in outcomes]
        assert statuses.count(OutcomeStatus.FORWARDED) == 10
        assert statuses.count(OutcomeStatus.SKIPPED) == 10
        assert len(received) == 10
