"""Decoding of UNSUBSCRIBE packets and encoding of UNSUBACK."""

from __future__ import annotations

import logging

from .packet import (
    PROTOCOL_VERSION_V5,
    FixedHeader,
    PacketType,
    PacketUnsubscribe,
    PropertyType,
    ProtocolError,
    TopicWithOption,
    decode_varint,
    encode_varint,
    read_u16,
    read_utf8,
)

log = logging.getLogger(__name__)

UNSUBACK_SUCCESS = 0x00
NO_SUBSCRIPTION_EXISTED = 0x11


def _decode_properties(body: bytes, pos: int, unsub_pkt: PacketUnsubscribe) -> int:
    length, pos = decode_varint(body, pos)
    end = pos + length
    if end > len(body):
        raise ProtocolError("property length exceeds packet")
    while pos < end:
        prop_id = body[pos]
        pos += 1
        if prop_id != PropertyType.USER_PROPERTY:
            raise ProtocolError(
                f"property 0x{prop_id:02x} not allowed in UNSUBSCRIBE"
            )
        key, pos = read_utf8(body, pos)
        value, pos = read_utf8(body, pos)
        unsub_pkt.user_property = (key, value)
    if pos > end:
        raise ProtocolError("property overruns property length")
    return pos


def decode_unsub_message(
    body: bytes | bytearray,
    remaining_len: int | None = None,
    proto_ver: int = 4,
) -> PacketUnsubscribe:
    """Decode the body (variable header and payload) of an UNSUBSCRIBE packet.

    remaining_len defaults to the length of body. Raises ProtocolError when a
    topic filter is not valid UTF-8 or the packet is truncated.
    """
    body = bytes(body)
    if remaining_len is None:
        remaining_len = len(body)

    unsub_pkt = PacketUnsubscribe()
    unsub_pkt.packet_id, pos = read_u16(body, 0)

    if proto_ver == PROTOCOL_VERSION_V5:
        pos = _decode_properties(body, pos, unsub_pkt)

    log.debug(
        "remain_len: [%d] packet_id : [%d]", remaining_len, unsub_pkt.packet_id
    )

    while True:
        topic_filter, pos = read_utf8(body, pos)
        unsub_pkt.topics.append(TopicWithOption(topic_filter=topic_filter))
        if pos >= remaining_len:
            break
    return unsub_pkt


def encode_unsuback_message(unsub_pkt: PacketUnsubscribe, proto_ver: int = 4) -> bytes:
    """Encode a complete UNSUBACK answering unsub_pkt.

    MQTT v5 adds an empty property block and one reason code per topic;
    MQTT v3.1.1 carries only the packet identifier.
    """
    body = bytearray(unsub_pkt.packet_id.to_bytes(2, "big"))
    if proto_ver == PROTOCOL_VERSION_V5:
        body += encode_varint(0)
        for topic in unsub_pkt.topics:
            body.append(topic.reason_code & 0xFF)
            log.debug("reason_code: [%x]", topic.reason_code)
    header = FixedHeader(packet_type=PacketType.UNSUBACK, remain_len=len(body))
    return bytes([header.to_byte()]) + encode_varint(len(body)) + bytes(body)