# edgemq

Building blocks for a lightweight MQTT broker running at the edge:

- `edgemq.packet`: MQTT primitives. It has packet types (`PacketType`),
  property identifiers (`PropertyType`), fixed headers (`FixedHeader`) and
  subscription options (`TopicWithOption`). It also has the packet
  containers `PacketSubscribe`, `PacketUnsubscribe` and `ClientContext`,
  and helpers for variable-byte integers and length-prefixed strings and
  binaries (`encode_varint`, `decode_varint`, `read_u16`, `read_u32`,
  `read_utf8`, `read_binary`, `encode_utf8`). Malformed input raises
  `ProtocolError`, which is a subclass of `ValueError`.
- `edgemq.pub_decode`: `decode_pub_message(header, body, proto_ver)`.
  It decodes PUBLISH, PUBACK, PUBREC, PUBREL and PUBCOMP packets, including
  MQTT 5 properties, into a `PublishPacket`. The properties go into
  `PublishProperties` or `AckProperties`.
- `edgemq.pub_handler`: `encode_pub_message` builds an outgoing PUBLISH or
  a publish acknowledgement. `copy_pub_packet` deep-copies a packet.
  `foreach_client` fans a publish out to client contexts. For each client
  with a non-zero pipe id it appends a `PipeInfo` to a `PipeContent`. The
  delivery QoS is the lower of the publish QoS and the subscription QoS.
- `edgemq.sub_handler`: this module has four functions.
  - `decode_sub_message` decodes SUBSCRIBE.
  - `encode_suback_message` encodes SUBACK.
  - `merge_client_ctx` merges a client's new subscriptions into its stored
    context.
  - `del_sub_ctx` removes one topic filter from a context. It returns True
    when the context has no subscriptions left.
- `edgemq.unsub_handler`: `decode_unsub_message` and
  `encode_unsuback_message`.
- `edgemq.rest_api`: a small JSON control API with HTTP Basic
  authorisation (`RestApi`, `HttpMessage`, `ResultCode`).
- `edgemq.process`: helpers for POSIX processes.
  - `process_is_alive` checks whether a process exists.
  - `process_send_signal` and `pidgrp_send_signal` signal a process or its
    process group.
  - `process_daemonize` starts a new session, changes to `/` and redirects
    the standard streams to the null device.
  - `process_create_child` runs a callable on a background thread. The
    thread's `exitcode` is set once the callable finishes.
- `edgemq.cli`: a launcher that dispatches to registered applications.

No third-party libraries are needed.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Command line

The `edgemq` command prints the version:

```
edgemq -v
```

Run with no arguments, it lists the registered applications, prints the
version and exits with status 1.

To run an application, give its name and then an optional action: `start`,
`stop` or `restart`. Any other argument goes to the application's default
command. An application is described by `edgemq.cli.App`, whose optional
commands are `dflt`, `start`, `stop` and `restart`. Each command takes a
list of arguments. You make an application known with
`edgemq.cli.register_app`.

`edgemq.cli.run(argv, apps)` does the same dispatch against an explicit list
of applications and returns the exit status:

```python
from edgemq.cli import App, run

hello = App(name="hello", dflt=lambda args: print("hello", args))
run(["edgemq", "hello", "world"], [hello])   # prints: hello ['world'] and returns 0
```

## Library use

```python
from edgemq.packet import encode_varint, decode_varint

data = encode_varint(321)
print(decode_varint(data, 0))   # (321, 2)
```

`RestApi` takes these arguments:

- the configured credentials;
- the subscribed topics, as an iterable or as a callable that returns one;
- a callback that is invoked when a stop request arrives.

```python
from edgemq.rest_api import RestApi

password = "password"
api = RestApi(username="admin", password=password, topics=[], on_stop=lambda: None)
```

Requests go to `api.process_request(msg)` as `HttpMessage` objects. A
request must carry a `token` of the form `Basic <base64 of user:password>`.
Its `data` must be a JSON object with a numeric `req` and, optionally, a
`seq`.

| `req` | Reply |
|-------|-------|
| 4 (subscriptions) | The list of topics |
| 5 (clients) | `code`, `seq` and `rep` |
| 2 (broker) | The plain text `get_broker` |
| 10 (control) | The plain text `post_ctrl`. An `"action": "stop"` calls the stop callback. |

If authorisation fails, the reply has status 401. If the body is not a JSON
object, the status is 400. An unknown request number gives 404.

## What this package does not do

This package is a set of codecs and helpers, not a running broker. It
leaves these parts out:

- There is no network listener and no MQTT session handling.
- There is no topic tree for routing publishes, and no store for retained
  messages or cached sessions. `foreach_client` works on the client
  contexts you pass to it.
- `RestApi` only turns `HttpMessage` requests into responses. It does not
  run an HTTP server.
- The `edgemq` command registers no applications of its own. Until an
  application is added with `register_app`, it can only print the version
  and its usage.