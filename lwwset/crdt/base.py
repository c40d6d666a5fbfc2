"""
Common interface for state-based replicated types.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Set, TypeVar

T = TypeVar('T', bound='CRDT')


class CRDT(ABC):
    """
    A replica of a state-based CRDT.

    Replicas change only through their own local operations and through
    ``merge``, which absorbs another replica's state in place. ``values``
    is the derived view that every replica holding the same events agrees
    on, whatever order the events arrived in.
    """

    def __init__(self, node_id: str):
        self.node_id = node_id

    @abstractmethod
    def merge(self: T, other: T) -> T:
        """
        Absorb ``other``'s state into this replica and return this replica.

        ``other`` is read, never mutated, and may be this replica. For any
        replicas a, b and c:

        - a.copy().merge(b) and b.copy().merge(a) report the same values
        - merging a, b and c into a fresh replica in any order gives the
          same values
        - a.merge(a) and a repeated a.merge(b) leave values unchanged
        """

    @abstractmethod
    def values(self) -> Set[Any]:
        """Current derived view of the replica."""

    @abstractmethod
    def copy(self: T) -> T:
        """Independent replica holding the same state."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form used to ship state to another node."""

    @classmethod
    @abstractmethod
    def from_dict(cls: type[T], data: Dict[str, Any]) -> T:
        """Rebuild a replica from ``to_dict`` output."""

    @abstractmethod
    def get_summary(self) -> Dict[str, Any]:
        """Human-readable state for dashboards and logs."""

    def same_state(self, other: 'CRDT') -> bool:
        """
        Check whether two replicas report the same derived view.

        Args:
            other: Another replica of the same type

        Returns:
            True if both replicas' values are equal
        """
        return self.values() == other.values()
