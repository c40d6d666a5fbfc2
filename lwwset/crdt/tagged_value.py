"""
Tagged value: one add or remove event for one logical value.
"""

import base64
import binascii
import math
from typing import Any, Dict, Tuple

from .errors import StateFormatError


class TaggedValue:
    """
    An immutable record of "this payload, as of this timestamp".

    Equality and hashing look at the payload only. Two events for the same
    logical value compare equal whatever their timestamps; the timestamp is
    only used to decide which event wins a conflict.
    """

    __slots__ = ('_payload', '_timestamp')

    def __init__(self, payload: bytes, timestamp: float):
        """
        Args:
            payload: Serialized form of the logical value
            timestamp: When the event was created
        """
        object.__setattr__(self, '_payload', bytes(payload))
        object.__setattr__(self, '_timestamp', float(timestamp))

    @property
    def payload(self) -> bytes:
        return self._payload

    @property
    def timestamp(self) -> float:
        return self._timestamp

    @property
    def key(self) -> Tuple[bytes, float]:
        """Event identity used to deduplicate logs."""
        return (self._payload, self._timestamp)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TaggedValue):
            return NotImplemented
        return self._payload == other._payload

    def __hash__(self) -> int:
        return hash(self._payload)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'payload': base64.b64encode(self._payload).decode('ascii'),
            'timestamp': self._timestamp
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TaggedValue':
        """
        Rebuild an event from its dictionary form.

        Raises:
            StateFormatError: If a field is missing, cannot be decoded, or the
                timestamp is NaN or infinite
        """
        try:
            payload = base64.b64decode(data['payload'], validate=True)
            timestamp = float(data['timestamp'])
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise StateFormatError(f"Malformed tagged value {data!r}: {e}") from e
        if not math.isfinite(timestamp):
            raise StateFormatError(f"Non-finite timestamp in tagged value {data!r}")
        return cls(payload, timestamp)

    def __repr__(self) -> str:
        preview = self._payload[:16]
        more = "..." if len(self._payload) > 16 else ""
        return f"TaggedValue(payload={preview!r}{more}, timestamp={self._timestamp})"
