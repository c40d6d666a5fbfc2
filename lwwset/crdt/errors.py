"""
Exceptions raised by the LWW-Set package.
"""


class LWWSetError(Exception):
    """Base class for all LWW-Set errors."""


class ConversionError(LWWSetError, TypeError):
    """
    A value could not be turned into a byte payload.

    Raised by add, remove and lookup before any log is touched.
    """


class StateFormatError(LWWSetError, ValueError):
    """A serialized replica or event dictionary is malformed."""
