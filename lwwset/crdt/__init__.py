"""CRDT module for the last-writer-wins set."""

from .base import CRDT
from .errors import LWWSetError, ConversionError, StateFormatError
from .adapters import Serializable, TextValue, BytesValue, RecordValue, ImageValue, to_payload
from .tagged_value import TaggedValue
from .lww_set import LWWSet

__all__ = [
    'CRDT',
    'LWWSetError',
    'ConversionError',
    'StateFormatError',
    'Serializable',
    'TextValue',
    'BytesValue',
    'RecordValue',
    'ImageValue',
    'to_payload',
    'TaggedValue',
    'LWWSet',
]
