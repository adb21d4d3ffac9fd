import json

import pytest

from voice_relay.core.router import RoutingOutcome
from voice_relay.core.session import ChannelState
from voice_relay.schemas.signaling import INVALID_FORMAT, TARGET_NOT_CONNECTED


def frame(**fields) -> str:
    return json.dumps(fields)


def test_register_binds_without_forwarding(lifecycle, registry, connect):
    session, channel = connect()
    outcome = lifecycle.handle(session, frame(type="register", **{"from": "alice"}))

    assert outcome == RoutingOutcome.registered
    assert registry.resolve("alice") is channel
    assert session.state == ChannelState.bound
    assert channel.sent == []


def test_call_request_forwarded_verbatim_and_recorded(lifecycle, ledger, connect):
    alice, alice_ch = connect("alice")
    _, bob_ch = connect("bob")
    raw = '{"type": "call-request",  "from": "alice", "to": "bob", "data": {"sdp": "v=0\\r\\n", "n": [1, 2]}}'

    outcome = lifecycle.handle(alice, raw)

    assert outcome == RoutingOutcome.forwarded
    assert bob_ch.sent == [raw]
    assert alice_ch.sent == []
    calls = ledger.recent_calls("alice")
    assert len(calls) == 1
    assert (calls[0].caller_id, calls[0].callee_id) == ("alice", "bob")
    assert calls[0].status == "initiated"
    assert calls[0].duration == 0


def test_bytes_frames_are_forwarded_as_text(lifecycle, connect):
    alice, _ = connect("alice")
    _, bob_ch = connect("bob")
    raw = frame(type="offer", **{"from": "alice", "to": "bob", "data": {"sdp": "é"}})

    assert lifecycle.handle(alice, raw.encode("utf-8")) == RoutingOutcome.forwarded
    assert bob_ch.sent == [raw]


def test_unknown_target_reports_error_without_ledger_write(lifecycle, ledger, connect):
    alice, alice_ch = connect("alice")

    for _ in range(2):
        outcome = lifecycle.handle(alice, frame(type="call-request", **{"from": "alice", "to": "carol"}))
        assert outcome == RoutingOutcome.target_unreachable

    assert alice_ch.frames() == [
        {"type": "error", "message": TARGET_NOT_CONNECTED, "targetUser": "carol"},
    ] * 2
    assert ledger.count() == 0


def test_closed_target_is_unreachable(lifecycle, registry, connect):
    alice, alice_ch = connect("alice")
    _, bob_ch = connect("bob")
    bob_ch._open = False  # transport died before the close was processed

    outcome = lifecycle.handle(alice, frame(type="offer", **{"from": "alice", "to": "bob"}))

    assert outcome == RoutingOutcome.target_unreachable
    assert alice_ch.frames()[0]["targetUser"] == "bob"


def test_failed_handoff_is_unreachable(lifecycle, ledger, connect):
    alice, alice_ch = connect("alice")
    _, bob_ch = connect("bob")
    bob_ch.accept = False  # outbox full

    outcome = lifecycle.handle(alice, frame(type="call-request", **{"from": "alice", "to": "bob"}))

    assert outcome == RoutingOutcome.target_unreachable
    assert alice_ch.frames()[0]["message"] == TARGET_NOT_CONNECTED
    assert ledger.count() == 0


@pytest.mark.parametrize("raw", [
    frame(type="bogus", **{"from": "alice", "to": "bob"}),
    frame(type="offer", to="bob"),
    frame(type="offer", **{"from": "", "to": "bob"}),
    "not json at all",
    "[1, 2, 3]",
    b"\xff\xfe",
    "[" * 100000 + "]" * 100000,
], ids=["bad-type", "no-from", "empty-from", "not-json", "not-object", "not-utf8", "deeply-nested"])
def test_invalid_frames_rejected_locally(lifecycle, registry, ledger, connect, raw):
    session, channel = connect()
    _, bob_ch = connect("bob")

    outcome = lifecycle.handle(session, raw)

    assert outcome == RoutingOutcome.invalid_format
    assert channel.frames() == [{"type": "error", "message": INVALID_FORMAT}]
    assert bob_ch.sent == []
    assert session.state == ChannelState.unbound
    assert registry.identities() == ["bob"]
    assert ledger.count() == 0


def test_first_message_binds_implicitly(lifecycle, registry, connect):
    _, bob_ch = connect("bob")
    alice, alice_ch = connect()

    outcome = lifecycle.handle(alice, frame(type="offer", **{"from": "alice", "to": "bob"}))

    assert outcome == RoutingOutcome.forwarded
    assert registry.resolve("alice") is alice_ch
    assert alice.identity == "alice"


def test_empty_target_is_treated_as_absent(lifecycle, registry, ledger, connect):
    session, channel = connect()

    outcome = lifecycle.handle(session, frame(type="call-request", **{"from": "alice", "to": ""}))

    assert outcome == RoutingOutcome.no_target
    assert registry.resolve("alice") is channel
    assert channel.sent == []
    assert ledger.count() == 0


def test_message_without_target_only_binds(lifecycle, registry, connect):
    session, channel = connect()

    outcome = lifecycle.handle(session, frame(type="call-response", **{"from": "alice"}))

    assert outcome == RoutingOutcome.no_target
    assert registry.resolve("alice") is channel
    assert channel.sent == []


def test_call_end_completes_latest_call(lifecycle, ledger, connect):
    alice, alice_ch = connect("alice")
    bob, _ = connect("bob")
    lifecycle.handle(alice, frame(type="call-request", **{"from": "alice", "to": "bob"}))

    end = frame(type="call-end", **{"from": "bob", "to": "alice"})
    assert lifecycle.handle(bob, end) == RoutingOutcome.forwarded

    assert alice_ch.sent == [end]
    [call] = ledger.recent_calls("alice")
    assert call.status == "completed"


def test_other_types_leave_ledger_alone(lifecycle, ledger, connect):
    alice, _ = connect("alice")
    connect("bob")
    for kind in ("offer", "answer", "ice-candidate", "call-response"):
        lifecycle.handle(alice, frame(type=kind, **{"from": "alice", "to": "bob"}))
    assert ledger.count() == 0


def test_ledger_failure_does_not_undo_forward(lifecycle, ledger, connect, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk gone"))

    monkeypatch.setattr(ledger, "create_record", broken)
    alice, alice_ch = connect("alice")
    _, bob_ch = connect("bob")

    outcome = lifecycle.handle(alice, frame(type="call-request", **{"from": "alice", "to": "bob"}))

    assert outcome == RoutingOutcome.forwarded
    assert len(bob_ch.sent) == 1
    assert alice_ch.sent == []
