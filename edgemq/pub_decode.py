"""Decoding of PUBLISH and publish-acknowledgement packets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .packet import (
    PROTOCOL_VERSION_V5,
    FixedHeader,
    PacketType,
    PropertyType,
    ProtocolError,
    decode_varint,
    read_binary,
    read_u16,
    read_u32,
    read_utf8,
)

log = logging.getLogger(__name__)

REASON_SUCCESS = 0x00

_ACK_TYPES = frozenset(
    {PacketType.PUBACK, PacketType.PUBREC, PacketType.PUBREL, PacketType.PUBCOMP}
)


@dataclass
class PublishProperties:
    """MQTT v5 properties carried by a PUBLISH packet."""

    payload_format_indicator: int | None = None
    message_expiry_interval: int | None = None
    topic_alias: int | None = None
    response_topic: str | None = None
    correlation_data: bytes | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)
    subscription_identifier: int | None = None
    content_type: str | None = None


@dataclass
class AckProperties:
    """MQTT v5 properties carried by PUBACK, PUBREC, PUBREL and PUBCOMP."""

    reason_string: str | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class PublishPacket:
    """A decoded PUBLISH packet or publish acknowledgement."""

    fixed_header: FixedHeader = field(default_factory=FixedHeader)
    topic: str = ""
    packet_id: int = 0
    properties: PublishProperties = field(default_factory=PublishProperties)
    properties_len: int = 0
    payload: bytes = b""
    reason_code: int = REASON_SUCCESS
    ack_properties: AckProperties = field(default_factory=AckProperties)


def _read_u8(data: bytes, pos: int) -> tuple[int, int]:
    if pos >= len(data):
        raise ProtocolError(f"need 1 byte at offset {pos}, have 0")
    return data[pos], pos + 1


def _to_fixed_header(header: FixedHeader | bytes | bytearray) -> FixedHeader:
    if isinstance(header, FixedHeader):
        return header
    data = bytes(header)
    if not data:
        raise ProtocolError("empty fixed header")
    remain_len = 0
    if len(data) > 1:
        remain_len, _ = decode_varint(data, 1)
    return FixedHeader.from_byte(data[0], remain_len)


def _property_block(body: bytes, pos: int) -> tuple[int, int, int]:
    """Return (length, start, end) of the property block starting at pos."""
    length, start = decode_varint(body, pos)
    end = start + length
    if end > len(body):
        raise ProtocolError("property length exceeds packet")
    return length, start, end


def _decode_publish_properties(
    body: bytes, pos: int, end: int, props: PublishProperties
) -> None:
    while pos < end:
        prop_id, pos = decode_varint(body, pos)
        try:
            prop = PropertyType(prop_id)
        except ValueError:
            raise ProtocolError(f"unknown property 0x{prop_id:02x}") from None

        if prop is PropertyType.USER_PROPERTY:
            key, pos = read_utf8(body, pos)
            value, pos = read_utf8(body, pos)
            props.user_properties.append((key, value))
        elif prop is PropertyType.PAYLOAD_FORMAT_INDICATOR:
            _reject_duplicate(props.payload_format_indicator, prop)
            props.payload_format_indicator, pos = _read_u8(body, pos)
        elif prop is PropertyType.MESSAGE_EXPIRY_INTERVAL:
            _reject_duplicate(props.message_expiry_interval, prop)
            props.message_expiry_interval, pos = read_u32(body, pos)
        elif prop is PropertyType.CONTENT_TYPE:
            _reject_duplicate(props.content_type, prop)
            props.content_type, pos = read_utf8(body, pos)
        elif prop is PropertyType.TOPIC_ALIAS:
            _reject_duplicate(props.topic_alias, prop)
            props.topic_alias, pos = read_u16(body, pos)
        elif prop is PropertyType.RESPONSE_TOPIC:
            _reject_duplicate(props.response_topic, prop)
            props.response_topic, pos = read_utf8(body, pos)
        elif prop is PropertyType.CORRELATION_DATA:
            _reject_duplicate(props.correlation_data, prop)
            props.correlation_data, pos = read_binary(body, pos)
        elif prop is PropertyType.SUBSCRIPTION_IDENTIFIER:
            _reject_duplicate(props.subscription_identifier, prop)
            value, pos = decode_varint(body, pos)
            if value == 0:
                raise ProtocolError("subscription identifier must not be 0")
            props.subscription_identifier = value
        else:
            raise ProtocolError(f"property {prop.name} not allowed in PUBLISH")

        if pos > end:
            raise ProtocolError("property overruns property length")


def _reject_duplicate(current: object, prop: PropertyType) -> None:
    if current is not None:
        raise ProtocolError(f"property {prop.name} appears twice")


def _decode_ack_properties(
    body: bytes, pos: int, end: int, props: AckProperties
) -> None:
    while pos < end:
        prop_id, pos = decode_varint(body, pos)
        if prop_id == PropertyType.REASON_STRING:
            props.reason_string, pos = read_utf8(body, pos)
        elif prop_id == PropertyType.USER_PROPERTY:
            key, pos = read_utf8(body, pos)
            value, pos = read_utf8(body, pos)
            props.user_properties.append((key, value))
        else:
            raise ProtocolError(f"property 0x{prop_id:02x} not allowed in ack")
        if pos > end:
            raise ProtocolError("property overruns property length")


def _decode_publish(packet: PublishPacket, body: bytes, proto_ver: int) -> None:
    topic, pos = read_utf8(body, 0)
    if "+" in topic or "#" in topic:
        raise ProtocolError(f"wildcard in publish topic: {topic!r}")
    packet.topic = topic
    log.debug("topic: [%s], qos: %d", topic, packet.fixed_header.qos)

    if packet.fixed_header.qos > 0:
        packet.packet_id, pos = read_u16(body, pos)

    if proto_ver == PROTOCOL_VERSION_V5:
        length, start, end = _property_block(body, pos)
        packet.properties_len = length
        _decode_publish_properties(body, start, end, packet.properties)
        pos = end

    packet.payload = bytes(body[pos:])


def _decode_ack(packet: PublishPacket, body: bytes) -> None:
    packet.packet_id, pos = read_u16(body, 0)
    remain_len = packet.fixed_header.remain_len
    if remain_len == 2:
        # A success reason code may be omitted when only the id is present.
        packet.reason_code = REASON_SUCCESS
        return
    packet.reason_code, pos = _read_u8(body, pos)
    if remain_len > 4:
        length, start, end = _property_block(body, pos)
        packet.properties_len = length
        _decode_ack_properties(body, start, end, packet.ack_properties)


def decode_pub_message(
    header: FixedHeader | bytes | bytearray,
    body: bytes | bytearray,
    proto_ver: int,
) -> PublishPacket:
    """Decode a PUBLISH, PUBACK, PUBREC, PUBREL or PUBCOMP packet body.

    header is either a FixedHeader or the raw fixed-header bytes (first
    byte followed by the remaining length). Raises ProtocolError when the
    packet is malformed.
    """
    fixed = _to_fixed_header(header)
    body = bytes(body)
    packet = PublishPacket(fixed_header=fixed)

    log.debug(
        "cmd: %d, retain: %d, qos: %d, dup: %d, remaining length: %d",
        fixed.packet_type,
        fixed.retain,
        fixed.qos,
        fixed.dup,
        fixed.remain_len,
    )

    if fixed.remain_len > len(body):
        raise ProtocolError("remaining length exceeds message length")

    if fixed.packet_type is PacketType.PUBLISH:
        _decode_publish(packet, body, proto_ver)
    elif fixed.packet_type in _ACK_TYPES:
        _decode_ack(packet, body)
    return packet