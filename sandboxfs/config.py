# sandboxfs/config.py
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_MAX_READ_BYTES = 256 * 1024
DEFAULT_MAX_WRITE_BYTES = 256 * 1024
DEFAULT_MAX_LIST_ENTRIES = 1000
DEFAULT_MAX_EDIT_OPERATIONS = 20


@dataclass(frozen=True)
class ToolSetConfig:
    """
    Immutable limits for one tool set. The root is canonicalized once here;
    every containment check compares against this value.
    """
    allowed_root: Path
    max_read_bytes: int = DEFAULT_MAX_READ_BYTES
    max_write_bytes: int = DEFAULT_MAX_WRITE_BYTES
    max_entries: int = DEFAULT_MAX_LIST_ENTRIES
    max_edit_operations: int = DEFAULT_MAX_EDIT_OPERATIONS
    allow_delete: bool = False

    def __post_init__(self):
        root = Path(self.allowed_root)
        if not root.is_absolute():
            raise ValueError(f"allowed_root must be absolute: {root}")
        try:
            canonical = root.resolve(strict=True)
        except FileNotFoundError:
            raise ValueError(f"allowed_root does not exist: {root}") from None
        if not canonical.is_dir():
            raise ValueError(f"allowed_root is not a directory: {root}")
        for name in ("max_read_bytes", "max_write_bytes", "max_entries", "max_edit_operations"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer")
        # frozen dataclass: bypass __setattr__ to store the canonical root
        object.__setattr__(self, "allowed_root", canonical)


class Settings(BaseSettings):
    # Filesystem tools
    FS_TOOLS_ENABLED: bool = True
    FS_ALLOWED_ROOT: Path = Path("./.sandbox")
    FS_MAX_READ_BYTES: int = Field(DEFAULT_MAX_READ_BYTES, gt=0)
    FS_MAX_WRITE_BYTES: int = Field(DEFAULT_MAX_WRITE_BYTES, gt=0)
    FS_MAX_LIST_ENTRIES: int = Field(DEFAULT_MAX_LIST_ENTRIES, gt=0)
    FS_MAX_EDIT_OPERATIONS: int = Field(DEFAULT_MAX_EDIT_OPERATIONS, gt=0)
    FS_DELETE_ENABLED: bool = False

    # HTTP MCP transport
    MCP_HTTP_ENABLED: bool = True
    MCP_HTTP_HOST: str = "127.0.0.1"
    MCP_HTTP_PORT: int = 8080
    MCP_HTTP_PATH: str = "/mcp"
    MCP_HTTP_DIAGNOSTICS_ENABLED: bool = False

    # Security: Bearer token and allowed origins
    MCP_HTTP_BEARER_TOKEN: str = "change-me"         # set in .env for prod
    MCP_HTTP_ALLOWED_ORIGINS: str = "http://localhost, http://127.0.0.1"
    MCP_HTTP_ALLOW_NO_ORIGIN: bool = True            # allow non-browser clients

    # Logging
    LOG_LEVEL: str = "INFO"

    # Tool outcome log (append-only NDJSON); keep it outside FS_ALLOWED_ROOT
    AUDIT_DIR: Path | None = None
    AUDIT_MAX_BYTES: int = 10_000_000  # rotate when file exceeds this size

    class Config:
        env_file = ".env"

    def toolset_config(self) -> ToolSetConfig:
        root = self.FS_ALLOWED_ROOT.expanduser().absolute()
        root.mkdir(parents=True, exist_ok=True)
        return ToolSetConfig(
            allowed_root=root,
            max_read_bytes=self.FS_MAX_READ_BYTES,
            max_write_bytes=self.FS_MAX_WRITE_BYTES,
            max_entries=self.FS_MAX_LIST_ENTRIES,
            max_edit_operations=self.FS_MAX_EDIT_OPERATIONS,
            allow_delete=self.FS_DELETE_ENABLED,
        )
