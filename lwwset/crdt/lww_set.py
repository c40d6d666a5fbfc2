"""
Last-Writer-Wins Set (LWW-Set) CRDT implementation.
"""

import base64
import logging
import threading
import time
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .adapters import to_payload
from .base import CRDT
from .errors import StateFormatError
from .tagged_value import TaggedValue

logger = logging.getLogger(__name__)


class LWWSet(CRDT):
    """
    Last-Writer-Wins Set CRDT.

    Each replica keeps an add-log and a remove-log of tagged values and a
    membership view derived from them. ``add`` and ``remove`` only append to
    the logs; the membership view is recomputed from both logs on every
    ``merge``. Merging a replica with itself materializes its own writes.

    An add entry survives unless some remove of the same payload carries a
    strictly greater timestamp, so an add and a remove with equal timestamps
    leave the value present. Several add entries of the same payload may
    survive at once; ``lookup`` treats any of them as presence.

    Events already present in a log (same payload and timestamp) are not
    appended again, so repeated merges of the same peers keep the logs
    bounded.
    """

    def __init__(self, node_id: str = 'local', clock: Optional[Callable[[], float]] = None):
        """
        Initialize an empty LWW-Set replica.

        Args:
            node_id: Unique identifier for the node
            clock: Timestamp source used when add/remove get no timestamp
                (defaults to time.time)
        """
        super().__init__(node_id)
        self._clock = clock if clock is not None else time.time
        self._lock = threading.RLock()
        self._add_log: List[TaggedValue] = []
        self._remove_log: List[TaggedValue] = []
        self._add_keys: Set[Tuple[bytes, float]] = set()
        self._remove_keys: Set[Tuple[bytes, float]] = set()
        self._membership: List[TaggedValue] = []
        self._members: FrozenSet[bytes] = frozenset()

    @property
    def add_log(self) -> Tuple[TaggedValue, ...]:
        with self._lock:
            return tuple(self._add_log)

    @property
    def remove_log(self) -> Tuple[TaggedValue, ...]:
        with self._lock:
            return tuple(self._remove_log)

    @property
    def membership(self) -> Tuple[TaggedValue, ...]:
        """Surviving add entries as of the last merge."""
        with self._lock:
            return tuple(self._membership)

    def _tag(self, value: Any, timestamp: Optional[float]) -> TaggedValue:
        payload = to_payload(value)
        if timestamp is None:
            timestamp = self._clock()
        return TaggedValue(payload, timestamp)

    @staticmethod
    def _append(log: List[TaggedValue], keys: Set[Tuple[bytes, float]],
                entry: TaggedValue) -> bool:
        if entry.key in keys:
            return False
        keys.add(entry.key)
        log.append(entry)
        return True

    def add(self, value: Any, timestamp: Optional[float] = None) -> TaggedValue:
        """
        Record an add event for a value.

        The membership view is not updated until the next merge.

        Args:
            value: Value to add (anything ``to_payload`` accepts)
            timestamp: Event time (uses the replica's clock if None)

        Returns:
            The tagged value that was recorded

        Raises:
            ConversionError: If the value cannot be converted to bytes
        """
        entry = self._tag(value, timestamp)
        with self._lock:
            appended = self._append(self._add_log, self._add_keys, entry)
        logger.debug("%s: add %r (new=%s)", self.node_id, entry, appended)
        return entry

    def remove(self, value: Any, timestamp: Optional[float] = None) -> TaggedValue:
        """
        Record a remove event (tombstone) for a value.

        Removing a value that was never added is allowed and has no effect
        on membership unless a matching add shows up later with an older
        timestamp.

        Args:
            value: Value to remove
            timestamp: Event time (uses the replica's clock if None)

        Returns:
            The tagged value that was recorded

        Raises:
            ConversionError: If the value cannot be converted to bytes
        """
        entry = self._tag(value, timestamp)
        with self._lock:
            appended = self._append(self._remove_log, self._remove_keys, entry)
        logger.debug("%s: remove %r (new=%s)", self.node_id, entry, appended)
        return entry

    def lookup(self, value: Any) -> bool:
        """
        Check whether a value is a member as of the last merge.

        Raises:
            ConversionError: If the value cannot be converted to bytes
        """
        payload = to_payload(value)
        with self._lock:
            return payload in self._members

    @staticmethod
    def resolve(add_log: Iterable[TaggedValue],
                remove_log: Iterable[TaggedValue]) -> List[TaggedValue]:
        """
        Compute the membership view from an add-log and a remove-log.

        An add entry is discarded when a remove of the same payload has a
        strictly greater timestamp. Removes are indexed by payload, keeping
        only the latest remove per payload.

        Returns:
            Surviving add entries, in add-log order
        """
        latest_remove: Dict[bytes, float] = {}
        for entry in remove_log:
            current = latest_remove.get(entry.payload)
            if current is None or entry.timestamp > current:
                latest_remove[entry.payload] = entry.timestamp

        return [
            entry for entry in add_log
            if entry.payload not in latest_remove
            or entry.timestamp >= latest_remove[entry.payload]
        ]

    def _snapshot(self) -> Tuple[Tuple[TaggedValue, ...], Tuple[TaggedValue, ...]]:
        with self._lock:
            return tuple(self._add_log), tuple(self._remove_log)

    def _materialize(self) -> None:
        self._membership = self.resolve(self._add_log, self._remove_log)
        self._members = frozenset(entry.payload for entry in self._membership)

    def merge(self, other: 'LWWSet') -> 'LWWSet':
        """
        Merge another LWW-Set replica into this one.

        Appends the other replica's add and remove events to this replica's
        logs, then recomputes membership from the combined logs. The other
        replica is only read: its logs are snapshotted under its own lock
        before this replica's lock is taken.

        Args:
            other: Another LWWSet instance (may be this replica)

        Returns:
            Self with merged state
        """
        if not isinstance(other, LWWSet):
            raise TypeError(f"Cannot merge LWWSet with {type(other).__name__}")

        other_adds, other_removes = other._snapshot()

        with self._lock:
            new_adds = sum(
                self._append(self._add_log, self._add_keys, entry)
                for entry in other_adds
            )
            new_removes = sum(
                self._append(self._remove_log, self._remove_keys, entry)
                for entry in other_removes
            )
            self._materialize()
            members = len(self._members)

        logger.debug(
            "%s: merged from %s (+%d adds, +%d removes, %d members)",
            self.node_id, other.node_id, new_adds, new_removes, members
        )
        return self

    def values(self) -> Set[bytes]:
        """
        Get all distinct member payloads.

        Returns:
            Set of payloads present as of the last merge
        """
        with self._lock:
            return set(self._members)

    def copy(self) -> 'LWWSet':
        """Return an independent replica with the same logs and membership."""
        duplicate = LWWSet(self.node_id, clock=self._clock)
        with self._lock:
            duplicate._add_log = list(self._add_log)
            duplicate._remove_log = list(self._remove_log)
            duplicate._add_keys = set(self._add_keys)
            duplicate._remove_keys = set(self._remove_keys)
            duplicate._membership = list(self._membership)
            duplicate._members = self._members
        return duplicate

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the LWW-Set to a dictionary.

        Only the logs are carried; membership is derived on the other side.
        """
        adds, removes = self._snapshot()
        return {
            'type': 'LWWSet',
            'node_id': self.node_id,
            'add_log': [entry.to_dict() for entry in adds],
            'remove_log': [entry.to_dict() for entry in removes]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  clock: Optional[Callable[[], float]] = None) -> 'LWWSet':
        """
        Create an LWWSet from a dictionary representation.

        Membership is recomputed from the logs rather than taken from the
        sender.

        Raises:
            StateFormatError: If the dictionary is not a serialized LWWSet
        """
        if not isinstance(data, dict):
            raise StateFormatError(f"Expected a dict, got {type(data).__name__}")
        if data.get('type', 'LWWSet') != 'LWWSet':
            raise StateFormatError(f"Expected LWWSet state, got {data.get('type')!r}")

        add_log = data.get('add_log', [])
        remove_log = data.get('remove_log', [])
        if not isinstance(add_log, list) or not isinstance(remove_log, list):
            raise StateFormatError("add_log and remove_log must be lists")

        replica = cls(node_id=str(data.get('node_id', 'local')), clock=clock)
        for item in add_log:
            cls._append(replica._add_log, replica._add_keys, TaggedValue.from_dict(item))
        for item in remove_log:
            cls._append(replica._remove_log, replica._remove_keys, TaggedValue.from_dict(item))
        replica._materialize()
        return replica

    def get_summary(self) -> Dict[str, Any]:
        """
        Get a human-readable summary of the replica.

        Member payloads are shown as UTF-8 text when they decode, base64
        otherwise.
        """
        with self._lock:
            members = sorted(_display(payload) for payload in self._members)
            return {
                'node_id': self.node_id,
                'add_log_size': len(self._add_log),
                'remove_log_size': len(self._remove_log),
                'membership_size': len(self._membership),
                'members': members
            }

    def __repr__(self) -> str:
        values_list = sorted(self.values())
        preview = values_list[:5]
        more = f", ... +{len(values_list) - 5} more" if len(values_list) > 5 else ""
        return f"LWWSet(node_id={self.node_id}, size={len(values_list)}, members={preview}{more})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __contains__(self, value: Any) -> bool:
        return self.lookup(value)


def _display(payload: bytes) -> str:
    try:
        return payload.decode('utf-8')
    except UnicodeDecodeError:
        return 'base64:' + base64.b64encode(payload).decode('ascii')
