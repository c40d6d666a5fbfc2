"""Utility modules for lwwset."""

from .clock import MonotonicClock
from .config import NodeConfig, parse_args, configure_logging

__all__ = [
    'MonotonicClock',
    'NodeConfig',
    'parse_args',
    'configure_logging',
]
