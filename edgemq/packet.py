"""MQTT packet primitives: control packet types, property identifiers and wire helpers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

PROTOCOL_VERSION_V311 = 4
PROTOCOL_VERSION_V5 = 5

VARINT_MAX = 268_435_455
U16_MAX = 0xFFFF


class ProtocolError(ValueError):
    """Raised when bytes on the wire violate the MQTT protocol."""


class PacketType(enum.IntEnum):
    """MQTT control packet types (upper nibble of the fixed header)."""

    RESERVED = 0
    CONNECT = 1
    CONNACK = 2
    PUBLISH = 3
    PUBACK = 4
    PUBREC = 5
    PUBREL = 6
    PUBCOMP = 7
    SUBSCRIBE = 8
    SUBACK = 9
    UNSUBSCRIBE = 10
    UNSUBACK = 11
    PINGREQ = 12
    PINGRESP = 13
    DISCONNECT = 14
    AUTH = 15


class PropertyType(enum.IntEnum):
    """MQTT v5 property identifiers."""

    PAYLOAD_FORMAT_INDICATOR = 0x01
    MESSAGE_EXPIRY_INTERVAL = 0x02
    CONTENT_TYPE = 0x03
    RESPONSE_TOPIC = 0x08
    CORRELATION_DATA = 0x09
    SUBSCRIPTION_IDENTIFIER = 0x0B
    SESSION_EXPIRY_INTERVAL = 0x11
    ASSIGNED_CLIENT_IDENTIFIER = 0x12
    SERVER_KEEP_ALIVE = 0x13
    AUTHENTICATION_METHOD = 0x15
    AUTHENTICATION_DATA = 0x16
    REQUEST_PROBLEM_INFORMATION = 0x17
    WILL_DELAY_INTERVAL = 0x18
    REQUEST_RESPONSE_INFORMATION = 0x19
    RESPONSE_INFORMATION = 0x1A
    SERVER_REFERENCE = 0x1C
    REASON_STRING = 0x1F
    RECEIVE_MAXIMUM = 0x21
    TOPIC_ALIAS_MAXIMUM = 0x22
    TOPIC_ALIAS = 0x23
    MAXIMUM_QOS = 0x24
    RETAIN_AVAILABLE = 0x25
    USER_PROPERTY = 0x26
    MAXIMUM_PACKET_SIZE = 0x27
    WILDCARD_SUBSCRIPTION_AVAILABLE = 0x28
    SUBSCRIPTION_IDENTIFIER_AVAILABLE = 0x29
    SHARED_SUBSCRIPTION_AVAILABLE = 0x2A


@dataclass
class FixedHeader:
    """The first byte of an MQTT packet plus its remaining length."""

    packet_type: PacketType = PacketType.RESERVED
    qos: int = 0
    dup: bool = False
    retain: bool = False
    remain_len: int = 0

    @classmethod
    def from_byte(cls, value: int, remain_len: int = 0) -> FixedHeader:
        """Split a fixed-header byte into its fields."""
        if not 0 <= value <= 0xFF:
            raise ValueError(f"fixed header byte out of range: {value}")
        return cls(
            packet_type=PacketType(value >> 4),
            qos=(value >> 1) & 0x03,
            dup=bool((value >> 3) & 0x01),
            retain=bool(value & 0x01),
            remain_len=remain_len,
        )

    def to_byte(self) -> int:
        """Pack the flags and packet type into a single byte."""
        return (
            (int(self.packet_type) & 0x0F) << 4
            | (int(self.dup) & 0x01) << 3
            | (self.qos & 0x03) << 1
            | (int(self.retain) & 0x01)
        )


@dataclass
class TopicWithOption:
    """A topic filter together with its subscription options."""

    topic_filter: str
    qos: int = 0
    no_local: bool = False
    retain_as_publish: bool = False
    retain_handling: int = 0
    reason_code: int = 0

    @classmethod
    def from_option_byte(cls, topic_filter: str, value: int) -> TopicWithOption:
        """Build from a topic filter and a subscription-options byte."""
        return cls(
            topic_filter=topic_filter,
            qos=value & 0x03,
            no_local=bool((value >> 2) & 0x01),
            retain_as_publish=bool((value >> 3) & 0x01),
            retain_handling=(value >> 4) & 0x0F,
        )

    def option_byte(self) -> int:
        """Pack the subscription options into a single byte."""
        return (
            (self.retain_handling & 0x0F) << 4
            | (int(self.retain_as_publish) & 0x01) << 3
            | (int(self.no_local) & 0x01) << 2
            | (self.qos & 0x03)
        )


@dataclass
class PacketSubscribe:
    """A decoded SUBSCRIBE packet."""

    packet_id: int = 0
    sub_id: int = 0
    user_property: tuple[str, str] | None = None
    topics: list[TopicWithOption] = field(default_factory=list)


@dataclass
class PacketUnsubscribe:
    """A decoded UNSUBSCRIBE packet."""

    packet_id: int = 0
    user_property: tuple[str, str] | None = None
    topics: list[TopicWithOption] = field(default_factory=list)


@dataclass
class ClientContext:
    """Per-client subscription state kept by the broker."""

    pid: int
    sub_pkt: PacketSubscribe = field(default_factory=PacketSubscribe)
    cparam: Any = None
    proto_ver: int = PROTOCOL_VERSION_V311


def encode_varint(value: int) -> bytes:
    """Encode an MQTT variable byte integer."""
    if not 0 <= value <= VARINT_MAX:
        raise ValueError(f"variable byte integer out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Decode a variable byte integer at pos; return (value, next position)."""
    value = 0
    for shift in range(0, 28, 7):
        if pos >= len(data):
            raise ProtocolError("truncated variable byte integer")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
    raise ProtocolError("variable byte integer longer than four bytes")


def _take(data: bytes, pos: int, size: int) -> bytes:
    end = pos + size
    if pos < 0 or end > len(data):
        raise ProtocolError(f"need {size} bytes at offset {pos}, have {len(data) - pos}")
    return bytes(data[pos:end])


def read_u16(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Read a big-endian 16-bit integer; return (value, next position)."""
    return int.from_bytes(_take(data, pos, 2), "big"), pos + 2


def read_u32(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Read a big-endian 32-bit integer; return (value, next position)."""
    return int.from_bytes(_take(data, pos, 4), "big"), pos + 4


def read_binary(data: bytes, pos: int = 0) -> tuple[bytes, int]:
    """Read length-prefixed binary data; return (bytes, next position)."""
    length, pos = read_u16(data, pos)
    return _take(data, pos, length), pos + length


def read_utf8(data: bytes, pos: int = 0) -> tuple[str, int]:
    """Read a length-prefixed UTF-8 string; return (text, next position)."""
    raw, pos = read_binary(data, pos)
    try:
        return raw.decode("utf-8"), pos
    except UnicodeDecodeError as exc:
        raise ProtocolError("string is not valid UTF-8") from exc


def encode_utf8(text: str) -> bytes:
    """Encode text as a length-prefixed UTF-8 string."""
    raw = text.encode("utf-8")
    if len(raw) > U16_MAX:
        raise ValueError("string too long for MQTT")
    return len(raw).to_bytes(2, "big") + raw