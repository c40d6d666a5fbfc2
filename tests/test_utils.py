"""
Unit tests for clock and configuration utilities.
"""

import logging
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lwwset.utils.clock import MonotonicClock
from lwwset.utils.config import NodeConfig, parse_args, configure_logging, split_peers


class TestMonotonicClock:
    """Tests for MonotonicClock."""

    def test_follows_source(self):
        clock = MonotonicClock(source=lambda: 100.0)
        assert clock() == 100.0

    def test_strictly_increasing_when_source_stalls(self):
        clock = MonotonicClock(source=lambda: 5.0)
        first = clock()
        second = clock()
        assert second > first

    def test_never_goes_backwards(self):
        readings = iter([10.0, 3.0, 11.0])
        clock = MonotonicClock(source=lambda: next(readings))
        values = [clock(), clock(), clock()]
        assert values[0] == 10.0
        assert values[1] > 10.0
        assert values[2] == 11.0

    def test_observe_advances_past_remote_timestamp(self):
        clock = MonotonicClock(source=lambda: 1.0)
        clock.observe(50.0)
        assert clock() > 50.0

    def test_observe_older_timestamp_ignored(self):
        clock = MonotonicClock(source=lambda: 100.0)
        clock.observe(50.0)
        assert clock() == 100.0

    def test_observe_non_finite_ignored(self):
        """Infinite or NaN readings never stall the clock."""
        clock = MonotonicClock(source=lambda: 100.0)
        clock.observe(float('inf'))
        clock.observe(float('nan'))
        assert clock() == 100.0
        assert clock() > 100.0


class TestConfig:
    """Tests for NodeConfig and argument parsing."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('LWWSET_NODE_ID', 'replica-9')
        monkeypatch.setenv('LWWSET_PORT', '9001')
        monkeypatch.setenv('LWWSET_PEERS', 'http://a:1/, http://b:2')
        monkeypatch.setenv('LWWSET_SYNC_INTERVAL', '2.5')
        monkeypatch.setenv('LWWSET_LOG_LEVEL', 'debug')

        config = NodeConfig.from_env()

        assert config.node_id == 'replica-9'
        assert config.port == 9001
        assert config.peers == ['http://a:1', 'http://b:2']
        assert config.sync_interval == 2.5
        assert config.log_level == 'DEBUG'

    def test_defaults(self, monkeypatch):
        for name in ['LWWSET_NODE_ID', 'LWWSET_PORT', 'LWWSET_PEERS', 'LWWSET_SYNC_INTERVAL']:
            monkeypatch.delenv(name, raising=False)

        config = NodeConfig.from_env()

        assert config.node_id == 'replica-1'
        assert config.port == 8001
        assert config.peers == []

    def test_parse_args_default_peers_exclude_own_port(self, monkeypatch):
        monkeypatch.delenv('LWWSET_PEERS', raising=False)

        config = parse_args(['--node-id', 'replica-2', '--port', '8002'])

        assert config.node_id == 'replica-2'
        assert config.peers == ['http://localhost:8001', 'http://localhost:8003']

    def test_parse_args_explicit_peers(self):
        config = parse_args(['--peers', 'http://x:1,http://y:2', '--sync-interval', '3'])
        assert config.peers == ['http://x:1', 'http://y:2']
        assert config.sync_interval == 3.0

    def test_parse_args_rejects_unknown_level(self):
        with pytest.raises(SystemExit):
            parse_args(['--log-level', 'LOUD'])

    def test_split_peers_ignores_blanks(self):
        assert split_peers(' , http://a:1 ,,') == ['http://a:1']

    def test_configure_logging(self):
        configure_logging('DEBUG')
        package_logger = logging.getLogger('lwwset')
        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1

        package_logger.handlers = []
        package_logger.propagate = True
        package_logger.setLevel(logging.NOTSET)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
