"""
Tests for the HTTP replica node.
"""

import base64
import pytest
import sys
import os

import requests
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lwwset.crdt.lww_set import LWWSet
from lwwset.node import server
from lwwset.utils.config import NodeConfig


PEERS = ['http://peer-1:8002', 'http://peer-2:8003']


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def client():
    server.init_node(NodeConfig(node_id='test-node', port=8001, peers=list(PEERS)))
    return TestClient(server.app)


class TestSetEndpoints:
    """Tests for add/remove/lookup over HTTP."""

    def test_add_then_lookup(self, client):
        response = client.post('/set/add', json={'value': 'apple', 'timestamp': 1.0})
        assert response.status_code == 200
        assert response.json()['status'] == 'added'

        response = client.get('/set/lookup', params={'value': 'apple'})
        assert response.json() == {'value': 'apple', 'present': True}

    def test_remove_after_add(self, client):
        client.post('/set/add', json={'value': 'apple', 'timestamp': 1.0})
        client.post('/set/remove', json={'value': 'apple', 'timestamp': 2.0})

        response = client.get('/set/lookup', params={'value': 'apple'})
        assert response.json()['present'] is False

    def test_equal_timestamps_keep_value(self, client):
        client.post('/set/add', json={'value': 'apple', 'timestamp': 5.0})
        client.post('/set/remove', json={'value': 'apple', 'timestamp': 5.0})

        response = client.get('/set/lookup', params={'value': 'apple'})
        assert response.json()['present'] is True

    def test_default_timestamp_from_node_clock(self, client):
        first = client.post('/set/add', json={'value': 'a'}).json()['timestamp']
        second = client.post('/set/add', json={'value': 'b'}).json()['timestamp']
        assert second > first

    def test_base64_values(self, client):
        encoded = base64.b64encode(b'\x00\xff').decode('ascii')
        client.post('/set/add', json={'value': encoded, 'encoding': 'base64', 'timestamp': 1.0})

        response = client.get('/set/lookup', params={'value': encoded, 'encoding': 'base64'})
        assert response.json()['present'] is True

    def test_invalid_base64_rejected(self, client):
        response = client.post('/set/add', json={'value': '***', 'encoding': 'base64'})
        assert response.status_code == 400
        assert server.replica.add_log == ()

    def test_unknown_encoding_rejected(self, client):
        response = client.post('/set/add', json={'value': 'x', 'encoding': 'rot13'})
        assert response.status_code == 422

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_timestamp_rejected(self, client, literal):
        """A non-finite timestamp is refused and the node keeps working."""
        response = client.post(
            '/set/add',
            content='{"value": "x", "timestamp": %s}' % literal,
            headers={'Content-Type': 'application/json'}
        )
        assert response.status_code == 422
        assert server.replica.add_log == ()

        assert client.get('/crdt/state').status_code == 200
        added = client.post('/set/add', json={'value': 'y'})
        assert added.status_code == 200

        client.post('/set/add', json={'value': 'x', 'timestamp': 1.0})
        client.post('/set/remove', json={'value': 'x'})
        assert client.get('/set/lookup', params={'value': 'x'}).json()['present'] is False

    def test_members(self, client):
        client.post('/set/add', json={'value': 'b', 'timestamp': 1.0})
        client.post('/set/add', json={'value': 'a', 'timestamp': 1.0})
        client.post('/set/remove', json={'value': 'c', 'timestamp': 1.0})

        response = client.get('/set/members')
        assert response.json() == {'members': ['a', 'b']}

    def test_uninitialized_node(self, client):
        server.replica = None
        response = client.get('/set/members')
        assert response.status_code == 503


class TestCRDTEndpoints:
    """Tests for state exchange between nodes."""

    def test_state_round_trip(self, client):
        client.post('/set/add', json={'value': 'x', 'timestamp': 1.0})

        state = client.get('/crdt/state').json()

        assert state['type'] == 'LWWSet'
        assert state['node_id'] == 'test-node'
        assert LWWSet.from_dict(state).lookup('x')

    def test_sync_merges_peer_state(self, client):
        """A later remove from a peer beats a local add."""
        client.post('/set/add', json={'value': 'x', 'timestamp': 5.0})

        peer = LWWSet('peer')
        peer.remove('x', 10.0)
        peer.add('y', 1.0)

        response = client.post('/crdt/sync', json={'crdt_state': peer.to_dict()})
        assert response.status_code == 200
        assert response.json() == {'status': 'synced', 'members': 1}

        assert client.get('/set/lookup', params={'value': 'x'}).json()['present'] is False
        assert client.get('/set/lookup', params={'value': 'y'}).json()['present'] is True

    def test_sync_advances_clock(self, client):
        peer = LWWSet('peer')
        peer.add('far', 1e12)
        client.post('/crdt/sync', json={'crdt_state': peer.to_dict()})

        timestamp = client.post('/set/remove', json={'value': 'far'}).json()['timestamp']

        assert timestamp > 1e12
        assert client.get('/set/lookup', params={'value': 'far'}).json()['present'] is False

    def test_sync_is_idempotent(self, client):
        peer = LWWSet('peer')
        peer.add('x', 1.0)
        for _ in range(3):
            client.post('/crdt/sync', json={'crdt_state': peer.to_dict()})

        summary = client.get('/crdt/summary').json()
        assert summary['add_log_size'] == 1
        assert summary['members'] == ['x']

    def test_sync_rejects_malformed_state(self, client):
        bad = {'type': 'LWWSet', 'add_log': [{'payload': '!!', 'timestamp': 1.0}]}
        response = client.post('/crdt/sync', json={'crdt_state': bad})
        assert response.status_code == 400

    @pytest.mark.parametrize("timestamp", ["inf", "-inf", "nan"])
    def test_sync_rejects_non_finite_timestamp(self, client, timestamp):
        """Peer state carrying a non-finite timestamp is refused whole."""
        client.post('/set/add', json={'value': 'x', 'timestamp': 5.0})
        bad = {
            'type': 'LWWSet',
            'node_id': 'peer',
            'add_log': [{'payload': 'eQ==', 'timestamp': 1.0}],
            'remove_log': [{'payload': 'eA==', 'timestamp': timestamp}]
        }

        response = client.post('/crdt/sync', json={'crdt_state': bad})

        assert response.status_code == 400
        assert len(server.replica.remove_log) == 0
        assert client.get('/set/lookup', params={'value': 'y'}).json()['present'] is False
        assert client.get('/crdt/state').status_code == 200

        later = client.post('/set/remove', json={'value': 'x'}).json()['timestamp']
        assert later > 5.0
        assert client.get('/set/lookup', params={'value': 'x'}).json()['present'] is False

    def test_gossip_reports_each_peer(self, client, monkeypatch):
        sent = []

        def fake_post(url, json, timeout):
            sent.append((url, json))
            if url.startswith(PEERS[1]):
                raise requests.ConnectionError("peer down")
            return FakeResponse(200)

        monkeypatch.setattr(server.requests, 'post', fake_post)
        client.post('/set/add', json={'value': 'x', 'timestamp': 1.0})

        response = client.post('/crdt/gossip')

        assert response.json()['peers'] == {PEERS[0]: True, PEERS[1]: False}
        assert sent[0][0] == f"{PEERS[0]}/crdt/sync"
        assert sent[0][1]['crdt_state']['add_log'][0]['payload'] == 'eA=='

    def test_gossip_non_200_is_failure(self, client, monkeypatch):
        monkeypatch.setattr(server.requests, 'post', lambda url, json, timeout: FakeResponse(500))
        assert server.sync_with_peers() == {PEERS[0]: False, PEERS[1]: False}

    def test_summary_and_health(self, client):
        assert client.get('/health').json() == {
            'status': 'healthy', 'node_id': 'test-node', 'port': 8001
        }
        summary = client.get('/crdt/summary').json()
        assert summary['node_id'] == 'test-node'
        assert summary['members'] == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
