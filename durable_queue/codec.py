"""
Payload codecs.

The queue never looks inside a payload. A codec turns it into the string
stored in the data column and back. Codec failures never escape: the
safe_* helpers log them and return None, which callers treat as "drop
this item".
"""

import json
from typing import Any, Callable, Optional

from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Codec")


class PayloadCodec:
    """
    Serialize/deserialize pair supplied by the owning application.

    Subclass and override both methods, or build one from two callables
    with PayloadCodec.from_functions().
    """

    def serialize(self, item: Any) -> Optional[str]:
        raise NotImplementedError

    def deserialize(self, data: str) -> Any:
        raise NotImplementedError

    @classmethod
    def from_functions(
        cls,
        serialize: Callable[[Any], Optional[str]],
        deserialize: Callable[[str], Any],
    ) -> 'PayloadCodec':
        codec = cls()
        codec.serialize = serialize
        codec.deserialize = deserialize
        return codec


class JsonCodec(PayloadCodec):
    """JSON text codec, the default."""

    def serialize(self, item: Any) -> Optional[str]:
        return json.dumps(item, separators=(',', ':'))

    def deserialize(self, data: str) -> Any:
        if not data:
            return None
        return json.loads(data)


def safe_serialize(codec: PayloadCodec, item: Any) -> Optional[str]:
    """
    Serialize an item, never raising.

    A None result from the codec is stored as an empty string.

    Returns:
        Serialized string, or None if the codec raised
    """
    try:
        data = codec.serialize(item)
    except Exception as e:
        log_warn(f"Could not serialize item, dropping it: {type(e).__name__}: {e}")
        return None
    return data if data is not None else ''


def safe_deserialize(codec: PayloadCodec, data: Optional[str]) -> Any:
    """
    Deserialize a stored string, never raising.

    Returns:
        The item, or None if the row should be dropped
    """
    if data is None:
        return None
    try:
        return codec.deserialize(data)
    except Exception as e:
        log_warn(f"Could not deserialize stored item, dropping it: {type(e).__name__}: {e}")
        return None


__all__ = ['PayloadCodec', 'JsonCodec', 'safe_serialize', 'safe_deserialize']
