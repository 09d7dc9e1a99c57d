"""MQTT broker building blocks: packet codecs, subscription handling, a REST control API, process helpers and an application launcher."""

__version__ = "0.3.0"

__all__ = [
    "cli",
    "packet",
    "process",
    "pub_decode",
    "pub_handler",
    "rest_api",
    "sub_handler",
    "unsub_handler",
]