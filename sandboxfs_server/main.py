# sandboxfs_server/main.py
from fastmcp import FastMCP
from sandboxfs.di import Container, build_container
from sandboxfs.logging import configure_logging
from sandboxfs_server.registry import build_tool_registry
from sandboxfs_server.tools.files import register_file_tools

def create_app(container: Container | None = None) -> FastMCP:
    """
    Build DI container, create FastMCP host, and register tools.
    Keep the server (protocol) separate from tool/service logic.
    """
    container = container or build_container()
    configure_logging(container.settings.LOG_LEVEL)

    mcp = FastMCP("SandboxFS", version="0.1.0")

    # Register tools (thin adapters over the shared registry)
    register_file_tools(mcp, build_tool_registry(container))

    return mcp


if __name__ == "__main__":
    app = create_app()
    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    app.run(transport="stdio")
