"""
Value adapters that turn logical values into opaque byte payloads.

The LWW-Set core only ever compares payload bytes. Any value kind can take
part in a replica as long as it can produce a deterministic byte sequence,
either by implementing ``Serializable`` or by being one of the plain types
``to_payload`` understands (bytes-like objects, ``str`` and numpy arrays).
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict

import numpy as np

from .errors import ConversionError


class Serializable(ABC):
    """Capability of a value that can be stored in an LWW-Set."""

    @abstractmethod
    def serialize(self) -> bytes:
        """
        Produce the canonical byte form of this value.

        Two values that should count as the same set element must return
        identical bytes.
        """
        pass


class TextValue(Serializable):
    """A text value, stored as UTF-8."""

    def __init__(self, text: str):
        self.text = text

    def serialize(self) -> bytes:
        return self.text.encode('utf-8')

    def __repr__(self) -> str:
        return f"TextValue({self.text!r})"


class BytesValue(Serializable):
    """Raw bytes, stored unchanged."""

    def __init__(self, data: bytes):
        self.data = bytes(data)

    def serialize(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"BytesValue(size={len(self.data)})"


class RecordValue(Serializable):
    """
    A structured record stored as canonical JSON.

    Keys are sorted and separators are compact, so two records with the same
    content serialize to the same bytes regardless of insertion order.
    """

    def __init__(self, fields: Dict[str, Any]):
        self.fields = dict(fields)

    def serialize(self) -> bytes:
        text = json.dumps(
            self.fields,
            sort_keys=True,
            separators=(',', ':'),
            ensure_ascii=False,
            allow_nan=False
        )
        return text.encode('utf-8')

    def __repr__(self) -> str:
        return f"RecordValue(keys={sorted(self.fields)})"


class ImageValue(Serializable):
    """
    An image held as a numpy pixel array.

    The payload is a short header carrying dtype and shape followed by the
    C-ordered pixel buffer, so a 2x8 and a 4x4 image with the same bytes
    are still distinct elements.
    """

    def __init__(self, pixels: np.ndarray):
        self.pixels = np.asarray(pixels)

    def serialize(self) -> bytes:
        if self.pixels.dtype == object:
            raise ConversionError("ImageValue requires a numeric pixel array")
        pixels = np.ascontiguousarray(self.pixels)
        shape = ','.join(str(dim) for dim in pixels.shape)
        header = f"{pixels.dtype.str}|{shape}|".encode('ascii')
        return header + pixels.tobytes()

    def __repr__(self) -> str:
        return f"ImageValue(shape={self.pixels.shape}, dtype={self.pixels.dtype})"


def to_payload(value: Any) -> bytes:
    """
    Convert a logical value to its byte payload.

    Args:
        value: bytes-like object, str, numpy array or Serializable

    Returns:
        The payload bytes

    Raises:
        ConversionError: If the value has no byte form
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)

    if isinstance(value, str):
        adapter = TextValue(value)
    elif isinstance(value, Serializable):
        adapter = value
    elif isinstance(value, np.ndarray):
        adapter = ImageValue(value)
    else:
        raise ConversionError(
            f"Cannot convert value of type {type(value).__name__} to bytes"
        )

    try:
        payload = adapter.serialize()
    except ConversionError:
        raise
    except (ValueError, TypeError, OverflowError) as e:
        raise ConversionError(f"Failed to serialize {adapter!r}: {e}") from e

    if not isinstance(payload, (bytes, bytearray)):
        raise ConversionError(
            f"{type(adapter).__name__}.serialize() returned "
            f"{type(payload).__name__}, expected bytes"
        )
    return bytes(payload)
