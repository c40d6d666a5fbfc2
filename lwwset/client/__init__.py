"""Client for talking to LWW-Set replica nodes."""

from .replica_client import ReplicaClient, ReplicaUnavailableError

__all__ = ['ReplicaClient', 'ReplicaUnavailableError']
