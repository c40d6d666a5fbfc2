"""
HTTP replica node.

Each node owns one LWW-Set replica. Clients add, remove and look up values
over HTTP; nodes exchange their logs by pushing serialized state to each
other's /crdt/sync endpoint, either on demand (/crdt/gossip) or from a
background thread every ``sync_interval`` seconds.

Run with:

    python -m lwwset.node.server --node-id replica-1 --port 8001
"""

import base64
import binascii
import logging
import threading
from typing import Dict, Literal, Optional, Union

import requests
import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from lwwset.crdt import ConversionError, LWWSet, StateFormatError
from lwwset.utils.clock import MonotonicClock
from lwwset.utils.config import NodeConfig, configure_logging, parse_args

logger = logging.getLogger(__name__)

Encoding = Literal["text", "base64"]


# Global variables
app = FastAPI(title="LWW-Set replica")
config = NodeConfig.from_env()
replica: Optional[LWWSet] = None
clock: Optional[MonotonicClock] = None
_gossip_stop = threading.Event()
_gossip_thread: Optional[threading.Thread] = None


# Pydantic models
class ElementRequest(BaseModel):
    value: str
    encoding: Encoding = "text"
    timestamp: Optional[float] = Field(None, allow_inf_nan=False)


class CRDTSyncRequest(BaseModel):
    crdt_state: dict


def init_node(node_config: NodeConfig) -> LWWSet:
    """Create a fresh replica for this node."""
    global config, replica, clock
    config = node_config
    clock = MonotonicClock()
    replica = LWWSet(node_config.node_id, clock=clock)
    logger.info("Replica %s initialized with peers %s", config.node_id, config.peers)
    return replica


def get_replica() -> LWWSet:
    if replica is None:
        raise HTTPException(status_code=503, detail="Replica not initialized")
    return replica


def decode_value(value: str, encoding: Encoding) -> Union[str, bytes]:
    """Turn a request value into something the replica can convert."""
    if encoding == "base64":
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ConversionError(f"Invalid base64 value: {e}") from e
    return value


# Internal functions
def sync_with_peers() -> Dict[str, bool]:
    """
    Push this node's replica state to every peer.

    Returns:
        Mapping of peer URL to whether the push succeeded
    """
    state = get_replica().to_dict()
    results = {}

    for url in config.peers:
        try:
            response = requests.post(
                f"{url}/crdt/sync",
                json={"crdt_state": state},
                timeout=10
            )
            results[url] = response.status_code == 200
            if results[url]:
                logger.info("Successfully synced with %s", url)
            else:
                logger.warning("Failed to sync with %s: %s", url, response.status_code)
        except requests.RequestException as e:
            results[url] = False
            logger.warning("Failed to sync with %s: %s", url, e)

    return results


def _gossip_loop(interval: float) -> None:
    while not _gossip_stop.wait(interval):
        sync_with_peers()


def start_background_gossip(interval: float) -> None:
    """Start pushing state to peers every ``interval`` seconds."""
    global _gossip_thread
    if interval <= 0 or (_gossip_thread is not None and _gossip_thread.is_alive()):
        return
    _gossip_stop.clear()
    _gossip_thread = threading.Thread(target=_gossip_loop, args=(interval,), daemon=True)
    _gossip_thread.start()
    logger.info("Background gossip every %.1fs", interval)


def stop_background_gossip() -> None:
    _gossip_stop.set()


@app.on_event("startup")
async def startup_event():
    """Initialize the replica on startup if main() has not."""
    if replica is None:
        init_node(config)
    start_background_gossip(config.sync_interval)
    logger.info("Replica node %s started on port %s", config.node_id, config.port)


@app.on_event("shutdown")
async def shutdown_event():
    stop_background_gossip()


# FastAPI Endpoints
@app.post("/set/add")
async def add_element(request: ElementRequest):
    """Record an add event and materialize it locally."""
    current = get_replica()
    try:
        entry = current.add(decode_value(request.value, request.encoding), request.timestamp)
    except ConversionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.timestamp is not None and clock is not None:
        clock.observe(request.timestamp)
    current.merge(current)

    return {"status": "added", "timestamp": entry.timestamp, "add_log": len(current.add_log)}


@app.post("/set/remove")
async def remove_element(request: ElementRequest):
    """Record a remove event and materialize it locally."""
    current = get_replica()
    try:
        entry = current.remove(decode_value(request.value, request.encoding), request.timestamp)
    except ConversionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.timestamp is not None and clock is not None:
        clock.observe(request.timestamp)
    current.merge(current)

    return {"status": "removed", "timestamp": entry.timestamp, "remove_log": len(current.remove_log)}


@app.get("/set/lookup")
async def lookup_element(value: str, encoding: Encoding = "text"):
    """Check whether a value is currently a member."""
    try:
        present = get_replica().lookup(decode_value(value, encoding))
    except ConversionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"value": value, "present": present}


@app.get("/set/members")
async def list_members():
    return {"members": get_replica().get_summary()['members']}


@app.get("/crdt/state")
async def get_crdt_state():
    """Return the serialized replica logs."""
    return get_replica().to_dict()


@app.post("/crdt/sync")
async def sync_crdt(request: CRDTSyncRequest):
    """Receive and merge replica state from another node."""
    current = get_replica()
    try:
        incoming = LWWSet.from_dict(request.crdt_state)
    except StateFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    current.merge(incoming)

    if clock is not None:
        for entry in incoming.add_log + incoming.remove_log:
            clock.observe(entry.timestamp)

    logger.info("Merged state from %s, %d members", incoming.node_id, len(current))
    return {"status": "synced", "members": len(current)}


@app.post("/crdt/gossip")
def gossip():
    """Push this node's state to all peers now."""
    results = sync_with_peers()
    return {"status": "gossiped", "peers": results}


@app.get("/crdt/summary")
async def get_crdt_summary():
    """Return replica state summary."""
    return get_replica().get_summary()


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "node_id": config.node_id, "port": config.port}


def main(argv=None):
    node_config = parse_args(argv)
    configure_logging(node_config.log_level)
    init_node(node_config)
    uvicorn.run(app, host=node_config.host, port=node_config.port,
                log_level=node_config.log_level.lower())


if __name__ == "__main__":
    main()
