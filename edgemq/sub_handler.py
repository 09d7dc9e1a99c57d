"""Decoding of SUBSCRIBE packets, encoding of SUBACK and subscription bookkeeping."""

from __future__ import annotations

import copy
import logging

from .packet import (
    PROTOCOL_VERSION_V5,
    ClientContext,
    FixedHeader,
    PacketSubscribe,
    PacketType,
    PropertyType,
    ProtocolError,
    TopicWithOption,
    decode_varint,
    encode_varint,
    read_u16,
    read_utf8,
)

log = logging.getLogger(__name__)

SUBACK_FAILURE = 0x80
MAX_RETAIN_HANDLING = 2


def _decode_properties(body: bytes, pos: int, sub_pkt: PacketSubscribe) -> int:
    length, pos = decode_varint(body, pos)
    end = pos + length
    if end > len(body):
        raise ProtocolError("property length exceeds packet")
    while pos < end:
        prop_id = body[pos]
        pos += 1
        if prop_id == PropertyType.SUBSCRIPTION_IDENTIFIER:
            sub_pkt.sub_id, pos = decode_varint(body, pos)
        elif prop_id == PropertyType.USER_PROPERTY:
            key, pos = read_utf8(body, pos)
            value, pos = read_utf8(body, pos)
            sub_pkt.user_property = (key, value)
        else:
            raise ProtocolError(f"property 0x{prop_id:02x} not allowed in SUBSCRIBE")
    if pos > end:
        raise ProtocolError("property overruns property length")
    return pos


def decode_sub_message(
    body: bytes | bytearray,
    remaining_len: int | None = None,
    proto_ver: int = 4,
) -> PacketSubscribe:
    """Decode the body (variable header and payload) of a SUBSCRIBE packet.

    remaining_len defaults to the length of body. Raises ProtocolError for
    an empty topic filter, a retain-handling value above 2 or a malformed
    packet.
    """
    body = bytes(body)
    if remaining_len is None:
        remaining_len = len(body)

    sub_pkt = PacketSubscribe()
    sub_pkt.packet_id, pos = read_u16(body, 0)

    if proto_ver == PROTOCOL_VERSION_V5:
        pos = _decode_properties(body, pos, sub_pkt)

    log.debug("remainLen: [%d] packetid : [%d]", remaining_len, sub_pkt.packet_id)

    while True:
        length, _ = read_u16(body, pos)
        if length == 0:
            raise ProtocolError("topic filter length is zero")
        topic_filter, pos = read_utf8(body, pos)
        if pos >= len(body):
            raise ProtocolError("missing subscription options")
        option = TopicWithOption.from_option_byte(topic_filter, body[pos])
        pos += 1
        if option.retain_handling > MAX_RETAIN_HANDLING:
            raise ProtocolError("invalid retain handling flag")
        sub_pkt.topics.append(option)
        if pos >= remaining_len:
            break
    return sub_pkt


def encode_suback_message(sub_pkt: PacketSubscribe, proto_ver: int = 4) -> bytes:
    """Encode a complete SUBACK answering sub_pkt.

    Each topic yields its granted QoS, or 0x80 when its reason code marks
    a failure.
    """
    body = bytearray(sub_pkt.packet_id.to_bytes(2, "big"))
    if proto_ver == PROTOCOL_VERSION_V5:
        body += encode_varint(0)
    for topic in sub_pkt.topics:
        code = SUBACK_FAILURE if topic.reason_code == SUBACK_FAILURE else topic.qos
        body.append(code)
        log.debug("reason_code: [%x]", code)
    header = FixedHeader(packet_type=PacketType.SUBACK, remain_len=len(body))
    return bytes([header.to_byte()]) + encode_varint(len(body)) + bytes(body)


def merge_client_ctx(ctx_new: ClientContext, ctx: ClientContext) -> ClientContext:
    """Merge the subscriptions of ctx_new into ctx and return ctx.

    Known topic filters get their options updated; new ones are appended
    as copies. Nothing happens when the two contexts belong to different pipes.
    """
    if ctx.pid != ctx_new.pid:
        return ctx
    stored = ctx.sub_pkt.topics
    for new_topic in ctx_new.sub_pkt.topics:
        match = next(
            (t for t in stored if t.topic_filter == new_topic.topic_filter), None
        )
        if match is None:
            stored.append(copy.copy(new_topic))
        else:
            match.no_local = new_topic.no_local
            match.qos = new_topic.qos
            match.retain_as_publish = new_topic.retain_as_publish
            match.retain_handling = new_topic.retain_handling
    return ctx


def del_sub_ctx(ctx: ClientContext | None, target_topic: str) -> bool:
    """Remove target_topic from ctx's subscriptions.

    Return True when ctx holds no subscriptions afterwards and can be
    discarded; False when ctx is missing or still subscribed to something.
    """
    if ctx is None or ctx.sub_pkt is None:
        log.debug("ERROR : ctx or sub_pkt is null!")
        return False
    topics = ctx.sub_pkt.topics
    for index, topic in enumerate(topics):
        if topic.topic_filter == target_topic:
            del topics[index]
            break
    if not topics:
        ctx.sub_pkt.user_property = None
        return True
    return False