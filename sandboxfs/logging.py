# sandboxfs/logging.py
import json
import logging
import os
import re
from typing import Any, Dict

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction
MAX_LOGGED_STR = 200  # file content and other long strings are summarized


def configure_logging(level: str | None = None):
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_str(s: str) -> str:
    if len(s) > MAX_LOGGED_STR:
        return f"<{len(s)} chars>"
    return PII_RE.sub("[redacted-email]", s)


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return redact_str(value)
    if isinstance(value, dict):
        return {k: _redact(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


def redact_args(args: Dict[str, Any]) -> Dict[str, Any]:
    safe = json.loads(json.dumps(args, default=str))  # deep copy via JSON
    return {k: _redact(v) for k, v in safe.items()}


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("tool_call %s %s", name, redact_args(args))


def log_tool_result(logger: logging.Logger, name: str, result: Dict[str, Any], duration_ms: float):
    if result.get("success"):
        logger.info("tool_result %s ok %.1fms", name, duration_ms)
    else:
        logger.warning(
            "tool_result %s failed code=%s %.1fms", name, result.get("code"), duration_ms
        )
