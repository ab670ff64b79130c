# sandboxfs_server/registry.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Type

from pydantic import BaseModel, ValidationError

from sandboxfs.di import Container
from sandboxfs.errors import ErrorCode, FsToolError, failure, from_os_error
from sandboxfs.logging import log_tool_call, log_tool_result
from sandboxfs.services.audit import OutcomeLog

from sandboxfs_server.tools.files import (
    DeleteFileIn,
    EditFileIn,
    ListDirIn,
    MakeDirectoryIn,
    ReadFileIn,
    WriteFileIn,
)

logger = logging.getLogger(__name__)


def _echo_path(model: Type[BaseModel], arguments: Any) -> str:
    if not isinstance(arguments, dict):
        return ""
    field = model.model_fields.get("path")
    default = field.default if field is not None and isinstance(field.default, str) else ""
    path = arguments.get("path", default)
    return path if isinstance(path, str) else ""


def _validation_message(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or "arguments"
        parts.append(f"{loc}: {e['msg']}")
    return "; ".join(parts)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel], Dict[str, Any]]
    outcome_log: OutcomeLog | None = None

    def invoke(self, arguments: Any) -> Dict[str, Any]:
        """
        Validate, run, and shape one call. Every failure comes back as a
        failure result; nothing raised below this point reaches the caller.
        """
        started = time.perf_counter()
        args = arguments if isinstance(arguments, dict) else {}
        log_tool_call(logger, self.name, args)

        echo = _echo_path(self.input_model, arguments)

        try:
            if not isinstance(arguments, dict):
                raise FsToolError(ErrorCode.INVALID_ARGUMENT, "Arguments must be a JSON object.")
            result = self.handler(self.input_model.model_validate(arguments))
        except ValidationError as e:
            result = failure(echo, ErrorCode.INVALID_ARGUMENT, _validation_message(e))
        except FsToolError as e:
            result = failure(echo, e.code, e.message)
        except OSError as e:
            err = from_os_error(e)
            result = failure(echo, err.code, err.message)
        except Exception as e:
            logger.exception("tool %s crashed", self.name)
            result = failure(echo, ErrorCode.IO_ERROR, f"Unexpected error: {e.__class__.__name__}")

        duration_ms = (time.perf_counter() - started) * 1000
        log_tool_result(logger, self.name, result, duration_ms)
        if self.outcome_log is not None:
            try:
                self.outcome_log.append(self.name, args, result, duration_ms=duration_ms)
            except OSError:
                logger.exception("failed to record outcome for %s", self.name)
        return result


class ToolHandlers:
    """
    Named handlers for each tool (no lambdas).
    Map validated input models onto the filesystem service.
    """
    def __init__(self, container: Container):
        self.container = container
        self.fs = container.fs_service

    def list_dir(self, args: ListDirIn) -> dict:
        return self.fs.list_dir(args.path)

    def read_file(self, args: ReadFileIn) -> dict:
        return self.fs.read_file(args.path)

    def write_file(self, args: WriteFileIn) -> dict:
        return self.fs.write_file(
            args.path, args.content, mode=args.mode, create_parents=args.createParents
        )

    def edit_file(self, args: EditFileIn) -> dict:
        return self.fs.edit_file(args.path, args.edits)

    def make_directory(self, args: MakeDirectoryIn) -> dict:
        return self.fs.make_directory(args.path, parents=args.parents)

    def delete_file(self, args: DeleteFileIn) -> dict:
        return self.fs.delete_file(args.path, confirm=args.confirm)


def _schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    return model.model_json_schema()


def build_tool_registry(container: Container) -> Dict[str, ToolSpec]:
    """
    Build a registry once at startup from the DI container.
    Transport layers (stdio/HTTP) read from this registry to expose tools.
    """
    if not container.settings.FS_TOOLS_ENABLED:
        return {}

    handlers = ToolHandlers(container)
    log = container.outcome_log

    reg: Dict[str, ToolSpec] = {
        "list_dir": ToolSpec(
            name="list_dir",
            description="List files and directories under the allowed workspace root. "
                        "Never use absolute paths outside the workspace.",
            input_model=ListDirIn,
            handler=handlers.list_dir,
            outcome_log=log,
        ),
        "read_file": ToolSpec(
            name="read_file",
            description="Read a UTF-8 text file under the allowed workspace root. "
                        "Fails for files larger than configured limits.",
            input_model=ReadFileIn,
            handler=handlers.read_file,
            outcome_log=log,
        ),
        "write_file": ToolSpec(
            name="write_file",
            description="Write UTF-8 text files under the allowed workspace root. "
                        "Supports overwrite and append modes with size checks.",
            input_model=WriteFileIn,
            handler=handlers.write_file,
            outcome_log=log,
        ),
        "edit_file": ToolSpec(
            name="edit_file",
            description="Apply bounded text replacement edits to a file under the allowed "
                        "workspace root. Edits are sequential.",
            input_model=EditFileIn,
            handler=handlers.edit_file,
            outcome_log=log,
        ),
        "make_directory": ToolSpec(
            name="make_directory",
            description="Create a directory under the allowed workspace root.",
            input_model=MakeDirectoryIn,
            handler=handlers.make_directory,
            outcome_log=log,
        ),
    }

    # Destructive tool only when explicitly enabled.
    if container.toolset_config.allow_delete:
        reg["delete_file"] = ToolSpec(
            name="delete_file",
            description="Delete a file under the allowed workspace root. "
                        "Requires confirm=true for destructive safety.",
            input_model=DeleteFileIn,
            handler=handlers.delete_file,
            outcome_log=log,
        )

    return reg


def list_tools_payload(registry: Dict[str, ToolSpec]) -> Dict[str, Any]:
    """
    Produce the `tools/list` payload body as per MCP Tools spec.
    """
    tools = []
    for spec in registry.values():
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "inputSchema": _schema_from_model(spec.input_model),
        })
    return {"tools": tools}


def dispatch_tool_call(registry: Dict[str, ToolSpec], name: str, arguments: Any) -> Dict[str, Any]:
    """
    Look up the named tool and invoke it; unknown names are a transport error.
    """
    if not isinstance(name, str) or name not in registry:
        raise KeyError(f"Tool not found: {name}")
    return registry[name].invoke(arguments)
