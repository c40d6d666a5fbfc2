import base64
import logging

import requests

logger = logging.getLogger(__name__)


class ReplicaUnavailableError(Exception):
    """No replica node answered the request."""


def encode_value(value):
    """Returns (value, encoding) fields for a request body or query."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode('ascii'), 'base64'
    if isinstance(value, str):
        return value, 'text'
    raise TypeError(f"Replica nodes accept str or bytes values, got {type(value).__name__}")


class ReplicaClient:
    def __init__(self, node_urls, timeout=10):
        if not node_urls:
            raise ValueError("ReplicaClient needs at least one node URL")
        self.node_urls = [url.rstrip('/') for url in node_urls]
        self.current_node_idx = 0
        self.timeout = timeout

    def get_node_url(self):
        """Returns current node URL."""
        return self.node_urls[self.current_node_idx]

    def try_next_node(self):
        """Cycles to next node index."""
        self.current_node_idx = (self.current_node_idx + 1) % len(self.node_urls)

    def _request(self, method, path, **kwargs):
        """
        Sends a request, failing over to the next node on connection
        errors and 5xx responses. Client errors (4xx) are raised as
        requests.HTTPError without failover since every node would
        reject the same request.

        Returns the decoded JSON body, or None if every node failed.
        """
        for attempt in range(len(self.node_urls)):
            node_url = self.get_node_url()
            url = f"{node_url}{path}"

            try:
                response = requests.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as e:
                logger.warning("Failed to connect to node %s: %s", node_url, e)
                self.try_next_node()
                continue

            if response.status_code >= 500:
                logger.warning("Node %s returned %s", node_url, response.status_code)
                self.try_next_node()
                continue

            response.raise_for_status()
            return response.json()

        return None

    def add(self, value, timestamp=None):
        """Adds a value on the current node."""
        encoded, encoding = encode_value(value)
        body = {'value': encoded, 'encoding': encoding, 'timestamp': timestamp}
        return self._request('POST', '/set/add', json=body)

    def remove(self, value, timestamp=None):
        """Removes a value on the current node."""
        encoded, encoding = encode_value(value)
        body = {'value': encoded, 'encoding': encoding, 'timestamp': timestamp}
        return self._request('POST', '/set/remove', json=body)

    def lookup(self, value):
        """Returns whether the current node reports the value as a member."""
        encoded, encoding = encode_value(value)
        result = self._request('GET', '/set/lookup', params={'value': encoded, 'encoding': encoding})
        if result is None:
            raise ReplicaUnavailableError(f"No node in {self.node_urls} answered lookup")
        return result['present']

    def members(self):
        result = self._request('GET', '/set/members')
        return result['members'] if result is not None else None

    def get_state(self):
        """Returns the serialized replica logs of the current node."""
        return self._request('GET', '/crdt/state')

    def get_summary(self):
        return self._request('GET', '/crdt/summary')

    def gossip(self):
        """Asks the current node to push its state to its peers."""
        return self._request('POST', '/crdt/gossip')

    def health(self):
        return self._request('GET', '/health')
