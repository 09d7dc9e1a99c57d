"""HTTP management API: authorization and dispatch of JSON requests."""

from __future__ import annotations

import base64
import binascii
import enum
import json
import logging
import math
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, Iterable

log = logging.getLogger(__name__)

HTTP_DEFAULT_USER = "admin"
HTTP_DEFAULT_PORT = 8081

GET_METHOD = "GET"
POST_METHOD = "POST"
PUT_METHOD = "PUT"
DELETE_METHOD = "DELETE"

REQ_ENDPOINTS = 1
REQ_BROKERS = 2
REQ_NODES = 3
REQ_SUBSCRIPTIONS = 4
REQ_CLIENTS = 5
REQ_CTRL = 10


class ResultCode(enum.IntEnum):
    """Result codes carried in the "code" field of API responses."""

    SUCCEED = 0
    RPC_ERROR = 101
    UNKNOWN_MISTAKE = 102
    WRONG_USERNAME_OR_PASSWORD = 103
    EMPTY_USERNAME_OR_PASSWORD = 104
    USER_DOES_NOT_EXIST = 105
    ADMIN_CANNOT_BE_DELETED = 106
    MISSING_KEY_REQUEST_PARAMES = 107
    REQ_PARAM_ERROR = 108
    REQ_PARAMS_JSON_FORMAT_ILLEGAL = 109
    PLUGIN_IS_ENABLED = 110
    PLUGIN_IS_CLOSED = 111
    CLIENT_IS_OFFLINE = 112
    USER_ALREADY_EXISTS = 113
    OLD_PASSWORD_IS_WRONG = 114
    ILLEGAL_SUBJECT = 115


@dataclass
class HttpMessage:
    """An HTTP request or response as seen by the API."""

    status: int = HTTPStatus.OK
    request: int = 0
    content_type: str | None = None
    method: str | None = None
    uri: str | None = None
    token: str | None = None
    data: bytes = b""

    def json(self) -> Any:
        """Parse data as JSON."""
        return json.loads(self.data)


def _dump(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


def _number(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


TopicSource = Callable[[], Iterable[str]] | Iterable[str] | None


class RestApi:
    """Handles authorized JSON requests to the management API."""

    def __init__(
        self,
        username: str,
        password: str,
        topics: TopicSource = None,
        on_stop: Callable[[], Any] | None = None,
    ) -> None:
        self.username = username
        self.password = password
        self._topics = topics
        self._on_stop = on_stop
        self._handlers: dict[
            int, Callable[[dict[str, Any], HttpMessage, int], HttpMessage]
        ] = {
            REQ_BROKERS: self._get_broker,
            REQ_SUBSCRIPTIONS: self._get_subscriptions,
            REQ_CLIENTS: self._get_clients,
            REQ_CTRL: self._post_ctrl,
        }

    def authorize(self, msg: HttpMessage) -> ResultCode:
        """Check msg's Basic authorization against the configured credentials."""
        words = (msg.token or "").split()
        if len(words) < 2 or words[0] != "Basic":
            return ResultCode.EMPTY_USERNAME_OR_PASSWORD
        try:
            decoded = base64.b64decode(words[1])
        except (binascii.Error, ValueError):
            return ResultCode.WRONG_USERNAME_OR_PASSWORD
        expected = f"{self.username}:{self.password}".encode("utf-8")
        if decoded != expected:
            return ResultCode.WRONG_USERNAME_OR_PASSWORD
        return ResultCode.SUCCEED

    def process_request(self, msg: HttpMessage) -> HttpMessage:
        """Authorize and dispatch msg, returning the response message."""
        sequence = 0
        code = self.authorize(msg)
        if code is not ResultCode.SUCCEED:
            return self._error_response(msg, HTTPStatus.UNAUTHORIZED, code, sequence)

        try:
            obj = json.loads(msg.data) if msg.data else None
        except ValueError:
            obj = None
        if not isinstance(obj, dict):
            return self._error_response(
                msg,
                HTTPStatus.BAD_REQUEST,
                ResultCode.REQ_PARAMS_JSON_FORMAT_ILLEGAL,
                sequence,
            )

        msg.request = _number(obj.get("req"))
        sequence = _number(obj.get("seq"))

        handler = self._handlers.get(msg.request)
        if handler is None:
            return self._error_response(
                msg, HTTPStatus.NOT_FOUND, ResultCode.UNKNOWN_MISTAKE, sequence
            )
        log.debug("found handler: %d", msg.request)
        return handler(obj, msg, sequence)

    def _error_response(
        self, msg: HttpMessage, status: int, code: ResultCode, sequence: int
    ) -> HttpMessage:
        body: dict[str, Any] = {"code": int(code), "seq": sequence}
        if msg.request > 0:
            body["rep"] = msg.request
        return HttpMessage(status=status, content_type=msg.content_type, data=_dump(body))

    def _ok(self, msg: HttpMessage, body: dict[str, Any]) -> HttpMessage:
        return HttpMessage(
            status=HTTPStatus.OK, content_type=msg.content_type, data=_dump(body)
        )

    def _topic_list(self) -> list[str]:
        source = self._topics
        if source is None:
            return []
        if callable(source):
            source = source()
        return list(source)

    def _get_broker(
        self, data: dict[str, Any], msg: HttpMessage, sequence: int
    ) -> HttpMessage:
        return HttpMessage(status=HTTPStatus.OK, data=b"get_broker")

    def _get_subscriptions(
        self, data: dict[str, Any], msg: HttpMessage, sequence: int
    ) -> HttpMessage:
        topics = [{"topic": topic} for topic in self._topic_list()]
        return self._ok(
            msg,
            {
                "code": int(ResultCode.SUCCEED),
                "seq": sequence,
                "rep": msg.request,
                "subscriptions": topics,
            },
        )

    def _get_clients(
        self, data: dict[str, Any], msg: HttpMessage, sequence: int
    ) -> HttpMessage:
        return self._ok(
            msg,
            {"code": int(ResultCode.SUCCEED), "seq": sequence, "rep": msg.request},
        )

    def _post_ctrl(
        self, data: dict[str, Any], msg: HttpMessage, sequence: int
    ) -> HttpMessage:
        action = data.get("action")
        log.debug("get action: %s", action)
        if isinstance(action, str) and action.lower() == "stop":
            if self._on_stop is not None:
                self._on_stop()
        return HttpMessage(status=HTTPStatus.OK, data=b"post_ctrl")