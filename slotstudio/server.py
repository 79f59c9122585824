"""SlotStudio FastAPI server."""
import os
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from slotstudio import __version__
from slotstudio.graph import Graph, GraphNode, Link
from slotstudio.models import (
    GraphSnapshot, IncompatibleSlotError, LinkModel, LinkNotFoundError, NodeModel,
    SlotGroupError, SlotGroupModel, SlotModel, SlotNamingError, SlotNotFoundError,
    SlotOccupiedError, UnknownNodeTypeError, DuplicateSlotError,
)
from slotstudio.plugin_api import create_node
from slotstudio.plugin_loader import get_full_registry, reload_plugins
from slotstudio.validator import validate_graph
from slotstudio.variadic import VariadicNode

# --- State ---

PLUGINS_DIR = os.environ.get(
    "SLOTSTUDIO_PLUGINS_DIR",
    os.path.join(os.path.dirname(__file__), "..", "plugins"),
)
_manifests: List[Dict] = []
_events: List[dict] = []
_start_time = time.time()


def _record_event(event_type: str, data: dict):
    _events.append({"event": event_type, **data})


graph = Graph(event_handler=_record_event)


# --- Lifespan ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    global _manifests
    abs_plugins = os.path.abspath(PLUGINS_DIR)
    print(f"Loading plugins from: {abs_plugins}")
    _manifests = reload_plugins(abs_plugins)
    loaded = [m["name"] for m in _manifests if m.get("_loaded")]
    failed = [m["name"] for m in _manifests if not m.get("_loaded")]
    print(f"Plugins loaded: {loaded}")
    if failed:
        print(f"Plugins FAILED: {failed}")
    yield


# --- App setup ---

app = FastAPI(title="SlotStudio", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:5174",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- WebSocket manager ---

class ConnectionManager:
    def __init__(self):
        self.connections: List[WebSocket] = []

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.connections.append(ws)

    def disconnect(self, ws: WebSocket):
        if ws in self.connections:
            self.connections.remove(ws)

    async def broadcast(self, message: dict):
        for ws in list(self.connections):
            try:
                await ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                self.disconnect(ws)


ws_manager = ConnectionManager()


@app.websocket("/ws/graph")
async def ws_graph(ws: WebSocket):
    await ws_manager.connect(ws)
    try:
        while True:
            await ws.receive_json()
    except WebSocketDisconnect:
        ws_manager.disconnect(ws)


async def _flush_events():
    """Broadcast graph events recorded since the last request."""
    pending = list(_events)
    _events.clear()
    for evt in pending:
        await ws_manager.broadcast(evt)
    return pending


# --- Serialization ---

def serialize_node(node: GraphNode) -> NodeModel:
    groups = []
    if isinstance(node, VariadicNode):
        groups = [
            SlotGroupModel(
                base_name=g.base_name,
                data_type=g.data_type,
                direction=g.direction.value,
                count=g.count,
            )
            for g in node.groups.values()
        ]
    return NodeModel(
        id=node.id,
        type=node.type,
        title=node.title,
        size=list(node.size),
        inputs=[SlotModel(name=s.name, type=s.type, link=s.link, extra=s.extra) for s in node.inputs],
        outputs=[SlotModel(name=s.name, type=s.type, links=list(s.links), extra=s.extra) for s in node.outputs],
        groups=groups,
    )


def serialize_link(link: Link) -> LinkModel:
    return LinkModel(
        id=link.id, type=link.type,
        origin_id=link.origin_id, origin_slot=link.origin_slot,
        target_id=link.target_id, target_slot=link.target_slot,
    )


def serialize_graph(g: Graph) -> GraphSnapshot:
    return GraphSnapshot(
        nodes=[serialize_node(n) for n in g.nodes.values()],
        links=[serialize_link(link) for link in g.links.values()],
    )


def _node_or_404(node_id: int) -> GraphNode:
    try:
        return graph.get_node(node_id)
    except LookupError:
        raise HTTPException(404, f"Node {node_id} not found")


# --- Endpoints ---

@app.get("/api/nodes/types")
def get_node_types():
    """Return node registry from all loaded plugins."""
    return get_full_registry()


@app.get("/api/graph", response_model=GraphSnapshot)
def get_graph():
    return serialize_graph(graph)


class CreateNodeRequest(BaseModel):
    type: str
    title: Optional[str] = None


@app.post("/api/graph/nodes", response_model=NodeModel)
async def add_node(req: CreateNodeRequest):
    """Create a node of a registered type and add it to the graph."""
    try:
        node = create_node(req.type, req.title)
    except UnknownNodeTypeError as e:
        raise HTTPException(404, str(e))
    except (DuplicateSlotError, SlotGroupError) as e:
        raise HTTPException(400, str(e))
    graph.add(node)
    await _flush_events()
    return serialize_node(node)


@app.delete("/api/graph/nodes/{node_id}")
async def remove_node(node_id: int):
    node = _node_or_404(node_id)
    try:
        graph.remove(node)
    except SlotNamingError as e:
        raise HTTPException(409, str(e))
    finally:
        await _flush_events()
    return {"status": "removed", "id": node_id}


@app.post("/api/graph/nodes/{node_id}/clone", response_model=NodeModel)
async def clone_node(node_id: int):
    """Duplicate a node; variadic groups start over from their base slot."""
    node = _node_or_404(node_id)
    duplicate = graph.clone_node(node)
    await _flush_events()
    return serialize_node(duplicate)


class ConnectRequest(BaseModel):
    origin_id: int
    origin_slot: Union[int, str]
    target_id: int
    target_slot: Union[int, str]


@app.post("/api/graph/links", response_model=LinkModel)
async def connect(req: ConnectRequest):
    """Link an output to an input. Variadic nodes grow as a side effect."""
    origin = _node_or_404(req.origin_id)
    target = _node_or_404(req.target_id)
    try:
        link = graph.connect(origin, req.origin_slot, target, req.target_slot)
    except SlotNotFoundError as e:
        raise HTTPException(404, str(e))
    except IncompatibleSlotError as e:
        raise HTTPException(400, str(e))
    except (SlotOccupiedError, SlotNamingError) as e:
        raise HTTPException(409, str(e))
    finally:
        await _flush_events()
    return serialize_link(link)


@app.delete("/api/graph/links/{link_id}")
async def disconnect(link_id: int):
    """Remove a link. Variadic nodes shrink and renumber as a side effect."""
    try:
        graph.disconnect(link_id)
    except LinkNotFoundError as e:
        raise HTTPException(404, str(e))
    except SlotNamingError as e:
        raise HTTPException(409, str(e))
    finally:
        await _flush_events()
    return {"status": "removed", "id": link_id}


@app.get("/api/graph/validate")
def validate_graph_endpoint():
    """Validate slot consistency of the whole graph and return issues."""
    return validate_graph(graph)


@app.post("/api/graph/reset")
async def reset_graph():
    """Drop every node and link."""
    global graph
    graph = Graph(event_handler=_record_event)
    _events.clear()
    await ws_manager.broadcast({"event": "reset"})
    return {"status": "reset"}


@app.post("/api/plugins/reload")
def reload_all_plugins():
    """Reload all plugins (hot-reload)."""
    global _manifests
    _manifests = reload_plugins(os.path.abspath(PLUGINS_DIR))
    loaded = [m["name"] for m in _manifests if m.get("_loaded")]
    return {"status": "reloaded", "plugins": loaded, "node_count": len(get_full_registry())}


@app.get("/api/health")
def health():
    return {
        "status": "healthy",
        "version": __version__,
        "uptime_seconds": round(time.time() - _start_time),
        "plugins_loaded": len([m for m in _manifests if m.get("_loaded")]),
        "nodes": len(graph.nodes),
        "links": len(graph.links),
        "websocket_clients": len(ws_manager.connections),
    }
