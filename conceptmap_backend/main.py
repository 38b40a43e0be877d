"""
Concept Map Backend - FastAPI Application

This is the main entry point for the concept map backend.
It provides:
- REST API for map operations (CRUD for nodes/edges, layouts, undo/redo)
- JSON import/export and CSV export
- CORS configuration for local frontend development

Property edits (PATCH on nodes/edges, node moves) are applied at once and
committed to history after a quiet period, so those handlers are async and
run on the server's event loop.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from conceptmap_core import (
    ConnectionType, EdgeNotFoundError, LayoutMode, MapImportError,
    NodeNotFoundError, NodeShape, get_config, validation_summary,
)
from conceptmap_core.models import (
    AlignRequest, CreateEdgeRequest, CreateNodeRequest, LayoutRequest,
    MoveNodeRequest, Position, TitleRequest, UpdateEdgeRequest,
    UpdateNodeRequest, UpdateSettingsRequest,
)

from .map_manager import describe_connection, map_manager

logger = logging.getLogger(__name__)

config = get_config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective settings on startup; stop pending history commits on shutdown."""
    logger.info("Concept map backend started (debounce %.2fs)", config.debounce_delay)

    yield

    # Cleanup: nothing may commit after the session is gone
    map_manager.close()


# --- FastAPI App ---

app = FastAPI(
    title="Concept Map API",
    description="Backend API for the concept map editor",
    version="1.0.0",
    lifespan=lifespan
)

# Browser frontend runs on a separate dev-server origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _state_response(**extra) -> dict:
    return {"success": True, **extra, "state": map_manager.get_state()}


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Liveness check."""
    return {"status": "ok"}


# --- Map State ---

@app.get("/api/state")
async def get_state():
    """Get the current map state."""
    return map_manager.get_state()


@app.put("/api/title")
async def set_title(request: TitleRequest):
    """Rename the map."""
    return {"success": True, "title": map_manager.set_title(request.title)}


@app.get("/api/settings")
async def get_settings():
    return {"success": True, "settings": map_manager.settings.to_json_dict()}


@app.put("/api/settings")
async def update_settings(request: UpdateSettingsRequest):
    """Update canvas settings (partial update)."""
    try:
        settings = map_manager.update_settings(**request.model_dump(exclude_none=True))
        return {"success": True, "settings": settings.to_json_dict()}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/reset")
async def reset_workspace():
    """Reset the workspace to the default map."""
    map_manager.reset()
    return _state_response(message="Workspace reset to default")


# --- Undo/Redo ---

@app.post("/api/undo")
async def undo():
    """Step back one history entry."""
    if map_manager.undo() is not None:
        return _state_response(message="Undone")
    return {"success": False, "message": "Nothing to undo"}


@app.post("/api/redo")
async def redo():
    """Step forward one history entry."""
    if map_manager.redo() is not None:
        return _state_response(message="Redone")
    return {"success": False, "message": "Nothing to redo"}


# --- Node Operations ---

@app.post("/api/nodes")
async def create_node(request: CreateNodeRequest):
    """Add a concept to the map."""
    position = None
    if request.x is not None and request.y is not None:
        position = Position(x=request.x, y=request.y)

    node = map_manager.add_node(shape=request.shape, position=position, label=request.label)
    return {"success": True, "node": node.to_json_dict(), "message": "Node added"}


@app.get("/api/nodes/{node_id}")
async def get_node(node_id: str):
    """Fetch one concept by id."""
    node = map_manager.get_node(node_id)
    if node:
        return {"success": True, "node": node.to_json_dict()}
    raise HTTPException(status_code=404, detail="Node not found")


@app.patch("/api/nodes/{node_id}")
async def update_node(node_id: str, request: UpdateNodeRequest):
    """Update a node's display data. Committed to history after a quiet period."""
    try:
        node = map_manager.update_node(node_id, **request.model_dump(exclude_none=True))
        return {"success": True, "node": node.to_json_dict()}
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.put("/api/nodes/{node_id}/position")
async def move_node(node_id: str, request: MoveNodeRequest):
    """Move a node. Committed to history after a quiet period."""
    try:
        node = map_manager.move_node(node_id, request.x, request.y)
        return {"success": True, "node": node.to_json_dict()}
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/nodes/{node_id}/duplicate")
async def duplicate_node(node_id: str):
    """Duplicate a node next to the original."""
    try:
        node = map_manager.duplicate_node(node_id)
        return {"success": True, "node": node.to_json_dict(), "message": "Node duplicated"}
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/api/nodes/{node_id}")
async def delete_node(node_id: str):
    """Remove a concept together with its connections."""
    try:
        map_manager.delete_node(node_id)
        return {"success": True, "message": "Node deleted"}
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/align")
async def align_nodes(request: AlignRequest):
    """Line up nodes on their mean coordinate."""
    if map_manager.align_nodes(node_ids=request.node_ids, axis=request.axis):
        return {"success": True, "message": "Nodes aligned"}
    return {"success": False, "message": "Need at least two nodes and an axis of 'x' or 'y'"}


# --- Edge Operations ---

@app.post("/api/edges")
async def create_edge(request: CreateEdgeRequest):
    """Connect two nodes."""
    try:
        edge = map_manager.connect(
            source=request.source,
            target=request.target,
            source_handle=request.source_handle,
            target_handle=request.target_handle
        )
        source_node = map_manager.get_node(edge.source)
        return {
            "success": True,
            "edge": edge.to_json_dict(),
            "message": describe_connection(source_node.data.label, request.source_handle)
        }
    except NodeNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/edges/{edge_id}")
async def get_edge(edge_id: str):
    """Fetch one connection by id."""
    edge = map_manager.get_edge(edge_id)
    if edge:
        return {"success": True, "edge": edge.to_json_dict()}
    raise HTTPException(status_code=404, detail="Edge not found")


@app.patch("/api/edges/{edge_id}")
async def update_edge(edge_id: str, request: UpdateEdgeRequest):
    """Update an edge's display data. Committed to history after a quiet period."""
    try:
        edge = map_manager.update_edge(edge_id, **request.model_dump(mode="json", exclude_none=True))
        return {"success": True, "edge": edge.to_json_dict()}
    except EdgeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/edges/{edge_id}")
async def delete_edge(edge_id: str):
    """Remove a connection."""
    try:
        map_manager.delete_edge(edge_id)
        return {"success": True, "message": "Connection deleted"}
    except EdgeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# --- Layout ---

@app.post("/api/layout")
async def apply_layout(request: LayoutRequest):
    """Switch to a layout mode (restores cached positions when revisiting a mode)."""
    try:
        nodes = map_manager.apply_layout(request.mode)
        return {
            "success": True,
            "view_mode": map_manager.view_mode,
            "nodes": [n.to_json_dict() for n in nodes]
        }
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- Import / Export ---

@app.get("/api/export/json")
async def export_json():
    """Download the map as pretty-printed JSON."""
    return Response(
        content=map_manager.export_json(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{map_manager.export_file_name("json")}"'}
    )


@app.get("/api/export/csv")
async def export_csv():
    """Download the map's nodes as CSV."""
    return Response(
        content=map_manager.export_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{map_manager.export_file_name("csv")}"'}
    )


@app.post("/api/import")
async def import_map(request: Request):
    """Replace the map with an uploaded JSON document (raw request body)."""
    body = await request.body()
    try:
        map_manager.import_json(body)
    except MapImportError as e:
        logger.warning("Failed to import map: %s", e)
        raise HTTPException(status_code=400, detail=f"Failed to import map: {e}")
    return _state_response(message="Map imported successfully")


# --- Reporting ---

@app.get("/api/summary")
async def summarize_current_map():
    """Structural summary of the current map (status bar data)."""
    return {"success": True, "summary": map_manager.summary().to_dict()}


@app.get("/api/validate")
async def validate_current_map():
    """
    Validate the current map.

    Issues are listed in check order, with per-severity counts in `summary`.
    """
    issues = map_manager.validate()
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


# --- Enums for Frontend ---

@app.get("/api/enums/shapes")
async def get_shapes():
    return {"shapes": [s.value for s in NodeShape]}


@app.get("/api/enums/layouts")
async def get_layouts():
    return {"layouts": [m.value for m in LayoutMode]}


@app.get("/api/enums/connection-types")
async def get_connection_types():
    return {"connection_types": [c.value for c in ConnectionType]}


# --- Run with uvicorn ---

def run(host: Optional[str] = None, port: Optional[int] = None):
    """Start the backend with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    uvicorn.run(app, host=host or config.host, port=port or config.port)


if __name__ == "__main__":
    run()
