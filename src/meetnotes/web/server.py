from __future__ import annotations

from pathlib import Path
from typing import Any


def create_app(*, config_path: str | Path | None = None, context_factory=None):
    # Lazy import so core CLI works without web deps.
    from fastapi import Body, FastAPI, HTTPException
    from fastapi.responses import JSONResponse

    from ..config import Settings, load_config
    from ..tools import TOOLS, ToolContext, call_tool, list_tools

    path = Path(config_path) if config_path is not None else Settings().config_path

    def _context() -> ToolContext:
        # Fresh config per request so edits made by the CLI are picked up.
        if context_factory is not None:
            return context_factory()
        return ToolContext(config=load_config(path), config_path=path)

    app = FastAPI(title="MeetNotes", version="0.1.0")

    @app.get("/api/tools")
    def tools():
        return {"tools": list_tools()}

    @app.post("/api/tools/{name}")
    def run_tool(name: str, args: dict[str, Any] | None = Body(default=None)):
        if name not in TOOLS:
            raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")
        result = call_tool(name, args or {}, _context())
        return JSONResponse(result, status_code=200 if result.get("success") else 400)

    @app.get("/api/graph")
    def graph(project: str | None = None):
        ctx = _context()
        return ctx.linker.get_note_graph(project).to_dict()

    return app
