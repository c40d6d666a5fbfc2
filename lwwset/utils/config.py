"""
Configuration for replica nodes.

Settings come from environment variables and can be overridden on the
command line:

    LWWSET_NODE_ID        node identifier (default: replica-1)
    LWWSET_HOST           bind address (default: 0.0.0.0)
    LWWSET_PORT           HTTP port (default: 8001)
    LWWSET_PEERS          comma separated peer base URLs
    LWWSET_SYNC_INTERVAL  seconds between background gossip rounds, 0 disables
    LWWSET_LOG_LEVEL      DEBUG, INFO, WARNING, ERROR
"""

import argparse
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_PORTS = [8001, 8002, 8003]


@dataclass
class NodeConfig:
    node_id: str = 'replica-1'
    host: str = '0.0.0.0'
    port: int = 8001
    peers: List[str] = field(default_factory=list)
    sync_interval: float = 0.0
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'NodeConfig':
        """Build a config from LWWSET_* environment variables."""
        return cls(
            node_id=os.environ.get('LWWSET_NODE_ID', 'replica-1'),
            host=os.environ.get('LWWSET_HOST', '0.0.0.0'),
            port=int(os.environ.get('LWWSET_PORT', 8001)),
            peers=split_peers(os.environ.get('LWWSET_PEERS', '')),
            sync_interval=float(os.environ.get('LWWSET_SYNC_INTERVAL', 0.0)),
            log_level=os.environ.get('LWWSET_LOG_LEVEL', 'INFO').upper()
        )


def split_peers(raw: str) -> List[str]:
    return [url.strip().rstrip('/') for url in raw.split(',') if url.strip()]


def default_peers(port: int) -> List[str]:
    """Local cluster peers, excluding the node's own port."""
    return [f"http://localhost:{p}" for p in DEFAULT_PORTS if p != port]


def parse_args(argv: Optional[Sequence[str]] = None) -> NodeConfig:
    """
    Parse command line arguments on top of the environment.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        The resolved NodeConfig
    """
    env = NodeConfig.from_env()

    parser = argparse.ArgumentParser(description="LWW-Set replica node")
    parser.add_argument("--node-id", type=str, default=env.node_id, help="Unique node ID")
    parser.add_argument("--host", type=str, default=env.host, help="Address to bind")
    parser.add_argument("--port", type=int, default=env.port, help="Port to run server on")
    parser.add_argument("--peers", type=str, default=None,
                        help="Comma separated peer URLs (default: other local nodes)")
    parser.add_argument("--sync-interval", type=float, default=env.sync_interval,
                        help="Seconds between background gossip rounds (0 disables)")
    parser.add_argument("--log-level", type=str, default=env.log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level")

    args = parser.parse_args(argv)

    if args.peers is not None:
        peers = split_peers(args.peers)
    elif env.peers:
        peers = env.peers
    else:
        peers = default_peers(args.port)

    return NodeConfig(
        node_id=args.node_id,
        host=args.host,
        port=args.port,
        peers=peers,
        sync_interval=args.sync_interval,
        log_level=args.log_level
    )


class EndpointFilter(logging.Filter):
    """Filter to suppress access logs for polling endpoints."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(endpoint in msg for endpoint in ["GET /health", "GET /crdt/summary"])


def configure_logging(level: str = 'INFO') -> None:
    """
    Send lwwset logs to the console.

    The library itself never installs handlers; nodes and scripts call this
    once at startup.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))

    package_logger = logging.getLogger('lwwset')
    package_logger.handlers = [handler]
    package_logger.setLevel(level.upper())
    package_logger.propagate = False

    logging.getLogger("uvicorn.access").addFilter(EndpointFilter())
