# sandboxfs_server/http_app.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from sandboxfs.di import Container, build_container
from sandboxfs.logging import configure_logging
from sandboxfs_server.registry import build_tool_registry, dispatch_tool_call, list_tools_payload

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"  # aligns with current spec draft dates
SERVER_INFO = {"name": "sandboxfs-http", "version": "0.1.0"}
RECENT_OUTCOMES = 20


def _jsonrpc_error(id_: Any, code: int, message: str, data: Any | None = None) -> JSONResponse:
    body: Dict[str, Any] = {"jsonrpc": "2.0", "id": id_, "error": {"code": code, "message": message}}
    if data is not None:
        body["error"]["data"] = data
    return JSONResponse(body)


def _jsonrpc_result(id_: Any, result: Any) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": id_, "result": result})


def create_http_app(container: Container | None = None) -> FastAPI:
    container = container or build_container()
    settings = container.settings
    registry = build_tool_registry(container)

    app = FastAPI(title="SandboxFS MCP HTTP Server", version="0.1.0")

    # ---------- Security: Origin validation & Bearer token ----------

    def _origin_allowed(req: Request) -> bool:
        origin = req.headers.get("origin")
        if not origin:
            return settings.MCP_HTTP_ALLOW_NO_ORIGIN
        allowed = {o.strip().lower() for o in settings.MCP_HTTP_ALLOWED_ORIGINS.split(",") if o.strip()}
        return origin.lower() in allowed

    def _require_auth(req: Request):
        auth = req.headers.get("authorization", "")
        if not auth.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Missing Bearer token")
        token = auth.split(" ", 1)[1]
        if token != settings.MCP_HTTP_BEARER_TOKEN:
            raise HTTPException(status_code=401, detail="Invalid Bearer token")

    @app.middleware("http")
    async def origin_validation_mw(request: Request, call_next):
        # MCP spec requires Origin validation to prevent DNS rebinding
        if not _origin_allowed(request):
            return JSONResponse({"error": {"code": 403, "message": "Forbidden origin"}}, status_code=403)
        return await call_next(request)

    # ---------- MCP JSON-RPC endpoint (Streamable HTTP) ----------

    @app.post(settings.MCP_HTTP_PATH)
    async def mcp_endpoint(request: Request):
        _require_auth(request)

        try:
            payload = await request.json()
        except ValueError:
            return _jsonrpc_error(None, -32700, "Parse error")
        if not isinstance(payload, dict):
            return _jsonrpc_error(None, -32600, "Invalid Request")

        id_ = payload.get("id")
        method = payload.get("method")
        params = payload.get("params") or {}
        if not isinstance(params, dict):
            return _jsonrpc_error(id_, -32602, "Invalid params")

        if method == "initialize":
            return _jsonrpc_result(id_, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": SERVER_INFO,
            })

        if method == "tools/list":
            return _jsonrpc_result(id_, list_tools_payload(registry))

        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str):
                return _jsonrpc_error(id_, -32602, "Invalid params: tool name must be a string")
            args = params.get("arguments", {})
            try:
                # tool failures come back as results; only unknown tools raise
                result = dispatch_tool_call(registry, name, args)
            except KeyError as ke:
                return _jsonrpc_error(id_, -32601, str(ke.args[0]))

            content_block = {"type": "json", "json": result}
            return _jsonrpc_result(id_, {"content": [content_block], "isError": not result["success"]})

        return _jsonrpc_error(id_, -32601, f"Method not found: {method}")

    # ---------- Runtime diagnostics (opt-in) ----------

    @app.get("/runtime")
    async def runtime_diagnostics(request: Request):
        if not settings.MCP_HTTP_DIAGNOSTICS_ENABLED:
            return JSONResponse({"error": "Not found"}, status_code=404)
        _require_auth(request)
        diagnostics = {
            "filesystem": {
                "toolsEnabled": settings.FS_TOOLS_ENABLED,
                "allowedRoot": str(container.toolset_config.allowed_root),
                "exposedToolNames": sorted(registry),
                "maxReadBytes": container.toolset_config.max_read_bytes,
                "maxWriteBytes": container.toolset_config.max_write_bytes,
                "maxEntries": container.toolset_config.max_entries,
            }
        }
        if container.outcome_log is not None:
            diagnostics["recentOutcomes"] = container.outcome_log.list(limit=RECENT_OUTCOMES)["records"]
        logger.info("runtime diagnostics served: %s", diagnostics["filesystem"]["exposedToolNames"])
        return {"ok": True, "diagnostics": diagnostics}

    return app


if __name__ == "__main__":
    import uvicorn
    from sandboxfs.config import Settings

    settings = Settings()
    if not settings.MCP_HTTP_ENABLED:
        raise SystemExit("HTTP transport disabled (MCP_HTTP_ENABLED=false)")
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "sandboxfs_server.http_app:create_http_app",
        factory=True,
        host=settings.MCP_HTTP_HOST,
        port=settings.MCP_HTTP_PORT,
        reload=False,
    )
