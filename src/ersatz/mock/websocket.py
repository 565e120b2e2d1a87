"""
Ersatz WebSocket Expectations

Per-path WebSocket expectations: inbound messages the client should send,
reactions to send back when they arrive, and messages sent on connect.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from ..common.utils import WaitFor, is_true_before
from ..errors import ConfigurationError
from .predicates import Predicate, equal_to, greater_than_or_equal_to

Payload = Union[str, bytes]


class MessageType(Enum):
    """WebSocket frame type."""

    TEXT = 'text'
    BINARY = 'binary'

    @classmethod
    def resolve(cls, payload: Any) -> 'MessageType':
        """BINARY for bytes payloads, TEXT for everything else."""
        return cls.BINARY if isinstance(payload, (bytes, bytearray)) else cls.TEXT


@dataclass(frozen=True)
class Reaction:
    """A message to transmit: payload plus frame type."""

    payload: Payload
    message_type: MessageType

    @classmethod
    def of(cls, payload: Payload, message_type: Optional[MessageType] = None) -> 'Reaction':
        """
        Build a message whose payload agrees with its frame type.

        BINARY payloads are held as bytes (text is UTF-8 encoded) and TEXT
        payloads as str (bytes are UTF-8 decoded).

        Raises:
            ConfigurationError: If the payload cannot be carried by the frame type
        """
        message_type = message_type or MessageType.resolve(payload)

        if message_type is MessageType.BINARY:
            if isinstance(payload, str):
                return cls(payload.encode('utf-8'), message_type)
            if isinstance(payload, (bytes, bytearray)):
                return cls(bytes(payload), message_type)
            raise ConfigurationError(f"Binary message payload must be bytes or str, got {type(payload).__name__}")

        if isinstance(payload, (bytes, bytearray)):
            try:
                return cls(bytes(payload).decode('utf-8'), message_type)
            except UnicodeDecodeError as e:
                raise ConfigurationError(f"Text message payload is not valid UTF-8: {e}") from e
        return cls(str(payload), message_type)


@dataclass(frozen=True)
class MessageState:
    """Snapshot of one inbound message expectation."""

    payload: Payload
    message_type: MessageType
    count: int
    satisfied: bool


@dataclass(frozen=True)
class WebSocketSnapshot:
    """Queryable state of a WebSocket expectation, used for diagnostics."""

    path: str
    connected: bool
    messages: List[MessageState] = field(default_factory=list)
    unmatched: Optional[Reaction] = None


class InboundMessage:
    """
    An expected inbound message and the reactions it triggers.

    By default the message must arrive at least once; `called()` changes
    the occurrence contract.
    """

    def __init__(self, payload: Payload, message_type: Optional[MessageType] = None):
        declared = Reaction.of(payload, message_type)
        self.payload = declared.payload
        self.message_type = declared.message_type
        self._reactions: List[Reaction] = []
        self._contract: Predicate = greater_than_or_equal_to(1)
        self._count = 0

    def reaction(self, payload: Payload, message_type: Optional[MessageType] = None) -> 'InboundMessage':
        """Append a reaction sent back when this message matches."""
        self._reactions.append(Reaction.of(payload, message_type))
        return self

    def called(self, count: Any) -> 'InboundMessage':
        """Set the occurrence contract: an exact count or a predicate over the count."""
        self._contract = count if isinstance(count, Predicate) else equal_to(count)
        return self

    @property
    def reactions(self) -> List[Reaction]:
        return list(self._reactions)

    @property
    def count(self) -> int:
        return self._count

    @property
    def satisfied(self) -> bool:
        return self._contract(self._count)

    def matches(self, payload: Payload, message_type: MessageType) -> bool:
        if message_type != self.message_type:
            return False
        if message_type is MessageType.BINARY:
            received = payload.encode('utf-8') if isinstance(payload, str) else bytes(payload)
        elif isinstance(payload, (bytes, bytearray)):
            received = bytes(payload).decode('utf-8', errors='replace')
        else:
            received = str(payload)
        return received == self.payload

    def state(self) -> MessageState:
        return MessageState(self.payload, self.message_type, self._count, self.satisfied)

    def __str__(self) -> str:
        return f"{self.message_type.value} message {self.payload!r} (occurrences: {self._contract})"


class WebSocketExpectation:
    """
    Expectations for one WebSocket path.

    Example:
        ws = expectations.ws('/stomp')
        ws.sends('welcome')
        ws.receives('ping').reaction('pong')
    """

    def __init__(self, path: str):
        self.path = path
        self._connected = threading.Event()
        self._inbound: List[InboundMessage] = []
        self._on_connect: List[Reaction] = []
        self._lock = threading.Lock()

    def receives(self, payload: Payload, message_type: Optional[MessageType] = None) -> InboundMessage:
        """Declare a message the client is expected to send."""
        message = InboundMessage(payload, message_type)
        self._inbound.append(message)
        return message

    def sends(self, payload: Payload, message_type: Optional[MessageType] = None) -> 'WebSocketExpectation':
        """Declare a message sent to the client as soon as it connects."""
        self._on_connect.append(Reaction.of(payload, message_type))
        return self

    @property
    def messages(self) -> List[InboundMessage]:
        return list(self._inbound)

    @property
    def on_connect(self) -> List[Reaction]:
        return list(self._on_connect)

    def connect(self) -> None:
        """Mark the path as connected. Repeat calls have no further effect."""
        self._connected.set()

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def find_match(self, payload: Payload, message_type: Optional[MessageType] = None) -> Optional[InboundMessage]:
        """
        Find and mark the expected message equal to an inbound one.

        The first matching expectation whose contract is not yet satisfied
        wins; when all matching expectations are satisfied, the first
        matching one counts the extra occurrence.

        Returns:
            The marked InboundMessage, or None if nothing matches
        """
        message_type = message_type or MessageType.resolve(payload)

        with self._lock:
            candidates = [m for m in self._inbound if m.matches(payload, message_type)]
            if not candidates:
                return None

            chosen = next((m for m in candidates if not m.satisfied), candidates[0])
            chosen._count += 1
            return chosen

    def snapshot(self, unmatched: Optional[Payload] = None, message_type: Optional[MessageType] = None) -> WebSocketSnapshot:
        """Capture the current state, optionally recording an unmatched message."""
        with self._lock:
            states = [m.state() for m in self._inbound]

        missed = None
        if unmatched is not None:
            missed = Reaction(unmatched, message_type or MessageType.resolve(unmatched))

        return WebSocketSnapshot(self.path, self.connected, states, missed)

    def is_satisfied(self) -> bool:
        with self._lock:
            return self.connected and all(m.satisfied for m in self._inbound)

    def verify(self, wait: WaitFor = WaitFor.ONE_SECOND) -> bool:
        """Wait until connected and every inbound message contract holds."""
        return is_true_before(self.is_satisfied, wait)

    def __str__(self) -> str:
        messages = ', '.join(str(m) for m in self._inbound) or 'no messages'
        return f"WebSocket {self.path} ({messages})"
