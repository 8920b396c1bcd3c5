#!/usr/bin/env python3
"""Tests for the standalone runner."""

import io
import json
from unittest.mock import MagicMock

import pytest

from main import parse_event, run
from src.geyser_sink.models import AccountInfoVersion, Outcome, OutcomeStatus
from src.geyser_sink.plugin import GeyserSinkPlugin

TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
SYSTEM_PROGRAM = "11111111111111111111111111111111"


def event_line(**overrides):
    raw = {
        "pubkey": SYSTEM_PROGRAM,
        "owner": TOKEN_PROGRAM,
        "data": "0a0b",
        "executable": False,
        "lamports": 10,
        "rent_epoch": 2,
        "slot": 99
    }
    raw.update(overrides)
    return json.dumps(raw)


class TestParseEvent:
    """Tests for parse_event."""

    def test_parse_valid_line(self):
        event = parse_event(json.loads(event_line()))

        assert event.address == bytes(32)
        assert event.data == b"\x0a\x0b"
        assert event.slot == 99
        assert event.version is AccountInfoVersion.V0_0_3

    def test_parse_legacy_version(self):
        event = parse_event(json.loads(event_line(version="0.0.1")))
        assert event.version is AccountInfoVersion.V0_0_1

    def test_missing_field(self):
        with pytest.raises(ValueError, match="Missing field"):
            parse_event({"owner": TOKEN_PROGRAM})

    def test_bad_hex_data(self):
        with pytest.raises(ValueError):
            parse_event(json.loads(event_line(data="zz")))

    def test_not_an_object(self):
        with pytest.raises(ValueError, match="JSON object"):
            parse_event([1, 2])


def test_run_counts_outcomes():
    plugin = MagicMock(spec=GeyserSinkPlugin)
    plugin.update_account.side_effect = [
        Outcome.forwarded(),
        Outcome.skipped(),
        Outcome.forward_failed("down"),
    ]
    stream = io.StringIO("\n".join([
        event_line(),
        "",
        event_line(slot=100),
        "not json",
        event_line(slot=101),
    ]))

    counts = run(plugin, stream)

    assert counts[OutcomeStatus.FORWARDED] == 1
    assert counts[OutcomeStatus.SKIPPED] == 1
    assert counts[OutcomeStatus.FORWARD_FAILED] == 1
    assert counts[OutcomeStatus.REJECTED] == 0
    assert plugin.update_account.call_count == 3
    assert plugin.update_account.call_args.args[1] == 101
