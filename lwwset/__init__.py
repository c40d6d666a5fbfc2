"""Last-writer-wins set replicas that converge by merging their logs."""

from .crdt import LWWSet, TaggedValue, ConversionError

__all__ = ['LWWSet', 'TaggedValue', 'ConversionError']
