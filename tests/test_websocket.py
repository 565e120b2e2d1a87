"""
Tests for Ersatz WebSocket expectations

Tests connection tracking, inbound message matching, reactions,
occurrence contracts and diagnostic snapshots.
"""

import pytest

from ersatz import ConfigurationError
from ersatz.common import WaitFor
from ersatz.mock import MessageType, Reaction, WebSocketExpectation
from ersatz.mock.predicates import greater_than_or_equal_to


@pytest.fixture
def socket():
    """WebSocket expectation with text and binary messages."""
    expectation = WebSocketExpectation('/ws')
    expectation.receives('ping').reaction('pong').reaction(b'\x01\x02')
    expectation.receives(b'\x00\xff')
    return expectation


class TestMessageType:
    """Test message type resolution."""

    def test_resolve(self):
        """Test bytes resolve to BINARY and everything else to TEXT."""
        assert MessageType.resolve(b'x') is MessageType.BINARY
        assert MessageType.resolve('x') is MessageType.TEXT


class TestConnection:
    """Test connection tracking."""

    def test_connect_idempotent(self, socket):
        """Test repeated connects keep the connected state."""
        assert not socket.connected

        socket.connect()
        socket.connect()

        assert socket.connected

    def test_on_connect_messages(self):
        """Test messages declared with sends() are kept in order."""
        expectation = WebSocketExpectation('/ws').sends('hello').sends(b'\x01')

        assert expectation.on_connect == [
            Reaction('hello', MessageType.TEXT),
            Reaction(b'\x01', MessageType.BINARY),
        ]


class TestMatching:
    """Test inbound message matching."""

    def test_text_match_returns_reactions(self, socket):
        """Test a matched text message exposes its reactions in order."""
        matched = socket.find_match('ping')

        assert matched is not None
        assert matched.count == 1
        assert matched.reactions == [
            Reaction('pong', MessageType.TEXT),
            Reaction(b'\x01\x02', MessageType.BINARY),
        ]

    def test_binary_match(self, socket):
        """Test binary payloads compare byte for byte."""
        assert socket.find_match(b'\x00\xff') is not None
        assert socket.find_match(b'\x00\xfe') is None

    def test_type_must_match(self, socket):
        """Test a text payload does not match a binary expectation."""
        assert socket.find_match('ping', MessageType.BINARY) is None

    def test_no_match(self, socket):
        """Test unknown messages match nothing and mark nothing."""
        assert socket.find_match('unknown') is None
        assert all(state.count == 0 for state in socket.snapshot().messages)

    def test_duplicates_fill_in_order(self):
        """Test repeated declarations are satisfied one send at a time."""
        expectation = WebSocketExpectation('/ws')
        first = expectation.receives('hi')
        second = expectation.receives('hi')

        assert expectation.find_match('hi') is first
        assert expectation.find_match('hi') is second
        assert expectation.find_match('hi') is first
        assert first.count == 2

    def test_resend_counts(self):
        """Test a resent message increments its occurrence count."""
        expectation = WebSocketExpectation('/ws')
        message = expectation.receives('hi').called(greater_than_or_equal_to(2))

        expectation.find_match('hi')
        assert not message.satisfied

        expectation.find_match('hi')
        assert message.satisfied


class TestVerification:
    """Test WebSocket verification."""

    def test_requires_connection(self, socket):
        """Test verification fails until connected."""
        socket.find_match('ping')
        socket.find_match(b'\x00\xff')

        assert not socket.verify(WaitFor(0.1))

        socket.connect()

        assert socket.verify(WaitFor(0.1))

    def test_requires_every_message(self, socket):
        """Test verification fails while a message is missing."""
        socket.connect()
        socket.find_match('ping')

        assert not socket.verify(WaitFor(0.1))

    def test_exact_occurrences(self):
        """Test an exact occurrence contract rejects extra sends."""
        expectation = WebSocketExpectation('/ws')
        expectation.receives('hi').called(1)
        expectation.connect()

        expectation.find_match('hi')
        assert expectation.verify(WaitFor(0.1))

        expectation.find_match('hi')
        assert not expectation.verify(WaitFor(0.1))


class TestSnapshot:
    """Test diagnostic snapshots."""

    def test_snapshot(self, socket):
        """Test the snapshot reports connection, counts and the unmatched message."""
        socket.connect()
        socket.find_match('ping')

        snapshot = socket.snapshot('nope')

        assert snapshot.path == '/ws'
        assert snapshot.connected
        assert [state.count for state in snapshot.messages] == [1, 0]
        assert [state.satisfied for state in snapshot.messages] == [True, False]
        assert snapshot.unmatched == Reaction('nope', MessageType.TEXT)


class TestPayloadTypes:
    """Test payloads declared with an explicit frame type."""

    def test_text_payload_declared_binary(self):
        """Test a str payload declared BINARY is held and matched as UTF-8 bytes."""
        expectation = WebSocketExpectation('/ws')
        message = expectation.receives('abc', MessageType.BINARY).reaction('pong', MessageType.BINARY)

        assert message.payload == b'abc'
        assert expectation.find_match(b'abc', MessageType.BINARY) is message
        assert expectation.find_match('abc', MessageType.TEXT) is None
        assert message.reactions == [Reaction(b'pong', MessageType.BINARY)]

    def test_bytes_payload_declared_text(self):
        """Test a UTF-8 bytes payload declared TEXT is held as str."""
        expectation = WebSocketExpectation('/ws').sends(b'hello', MessageType.TEXT)

        assert expectation.on_connect == [Reaction('hello', MessageType.TEXT)]

    def test_invalid_text_payload_rejected(self):
        """Test bytes that are not UTF-8 cannot be declared as a text message."""
        expectation = WebSocketExpectation('/ws')

        with pytest.raises(ConfigurationError):
            expectation.receives(b'\xff\xfe', MessageType.TEXT)

        with pytest.raises(ConfigurationError):
            expectation.receives('ping').reaction(b'\xff', MessageType.TEXT)

    def test_unsupported_binary_payload_rejected(self):
        """Test a binary message needs a bytes or str payload."""
        with pytest.raises(ConfigurationError):
            WebSocketExpectation('/ws').sends(42, MessageType.BINARY)
