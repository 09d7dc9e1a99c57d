"""Encoding of PUBLISH packets and fan-out of a publish to subscribed clients."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .packet import (
    PROTOCOL_VERSION_V5,
    ClientContext,
    FixedHeader,
    PacketType,
    PropertyType,
    encode_utf8,
    encode_varint,
)
from .pub_decode import PublishPacket, PublishProperties

log = logging.getLogger(__name__)

_ACK_TYPES = frozenset(
    {PacketType.PUBACK, PacketType.PUBREC, PacketType.PUBREL, PacketType.PUBCOMP}
)


def _encode_binary(data: bytes) -> bytes:
    if len(data) > 0xFFFF:
        raise ValueError("binary data too long for MQTT")
    return len(data).to_bytes(2, "big") + data


def _encode_publish_properties(props: PublishProperties) -> bytes:
    out = bytearray()
    if props.payload_format_indicator is not None:
        out.append(PropertyType.PAYLOAD_FORMAT_INDICATOR)
        out.append(props.payload_format_indicator & 0xFF)
    if props.message_expiry_interval is not None:
        out.append(PropertyType.MESSAGE_EXPIRY_INTERVAL)
        out += props.message_expiry_interval.to_bytes(4, "big")
    if props.topic_alias is not None:
        out.append(PropertyType.TOPIC_ALIAS)
        out += props.topic_alias.to_bytes(2, "big")
    if props.response_topic:
        out.append(PropertyType.RESPONSE_TOPIC)
        out += encode_utf8(props.response_topic)
    if props.correlation_data:
        out.append(PropertyType.CORRELATION_DATA)
        out += _encode_binary(props.correlation_data)
    for key, value in props.user_properties:
        if not key:
            continue
        out.append(PropertyType.USER_PROPERTY)
        out += encode_utf8(key) + encode_utf8(value)
    if props.subscription_identifier is not None:
        out.append(PropertyType.SUBSCRIPTION_IDENTIFIER)
        out += encode_varint(props.subscription_identifier)
    if props.content_type:
        out.append(PropertyType.CONTENT_TYPE)
        out += encode_utf8(props.content_type)
    return bytes(out)


def _encode_publish(packet: PublishPacket, proto_ver: int, dup: bool) -> bytes:
    fixed = packet.fixed_header
    header = FixedHeader(
        packet_type=PacketType.PUBLISH,
        qos=fixed.qos,
        dup=dup,
        retain=fixed.retain,
    )

    body = bytearray()
    if packet.topic:
        body += encode_utf8(packet.topic)
    if fixed.qos > 0:
        body += packet.packet_id.to_bytes(2, "big")

    if proto_ver == PROTOCOL_VERSION_V5:
        props = _encode_publish_properties(packet.properties)
        body += encode_varint(len(props)) + props
    else:
        log.debug("pro_ver [%d]", proto_ver)

    body += packet.payload
    return bytes([header.to_byte()]) + encode_varint(len(body)) + bytes(body)


def _encode_ack(packet: PublishPacket, cmd: PacketType, dup: bool) -> bytes:
    log.debug("encode %d message", cmd)
    header = FixedHeader(packet_type=cmd, dup=dup, qos=0, retain=False, remain_len=2)
    return (
        bytes([header.to_byte()])
        + encode_varint(header.remain_len)
        + packet.packet_id.to_bytes(2, "big")
    )


def encode_pub_message(
    packet: PublishPacket,
    cmd: PacketType = PacketType.PUBLISH,
    proto_ver: int = 4,
    dup: bool = False,
) -> bytes:
    """Encode packet as a complete PUBLISH or publish acknowledgement.

    For PUBLISH the QoS and retain flags come from the packet's fixed
    header. Acknowledgements carry only the packet identifier. Raises
    ValueError for any other packet type.
    """
    cmd = PacketType(cmd)
    if cmd is PacketType.PUBLISH:
        return _encode_publish(packet, proto_ver, dup)
    if cmd in _ACK_TYPES:
        return _encode_ack(packet, cmd, dup)
    raise ValueError(f"cannot encode {cmd.name} as a publish message")


def copy_pub_packet(packet: PublishPacket) -> PublishPacket:
    """Return an independent copy of packet."""
    return copy.deepcopy(packet)


@dataclass
class PipeInfo:
    """One delivery of a publish to one client pipe."""

    index: int
    pipe: int
    cmd: PacketType
    qos: int
    packet: PublishPacket


@dataclass
class PipeContent:
    """The list of pipes a publish is to be delivered to."""

    pipe_info: list[PipeInfo] = field(default_factory=list)
    current_index: int = 0
    encode_msg: Callable[..., bytes] = field(default=encode_pub_message)

    @property
    def total(self) -> int:
        return len(self.pipe_info)


def _subscribed_qos(ctx: ClientContext, topic: str) -> int:
    topics = ctx.sub_pkt.topics
    if not topics:
        return 0
    match = next((t for t in topics if t.topic_filter == topic), topics[0])
    return match.qos


def foreach_client(
    clients: Iterable[ClientContext], packet: PublishPacket, pipe_ct: PipeContent
) -> PipeContent:
    """Append a delivery to pipe_ct for every client with a live pipe.

    The delivery QoS is the lower of the publish QoS and the client's
    subscription QoS. Clients whose pipe id is 0 are skipped.
    """
    pub_qos = packet.fixed_header.qos
    for ctx in clients:
        sub_qos = _subscribed_qos(ctx, packet.topic)
        if ctx.pid == 0:
            continue
        pipe_ct.pipe_info.append(
            PipeInfo(
                index=pipe_ct.total,
                pipe=ctx.pid,
                cmd=PacketType.PUBLISH,
                qos=min(pub_qos, sub_qos),
                packet=packet,
            )
        )
    log.debug("pipe_info size: [%d]", pipe_ct.total)
    return pipe_ct