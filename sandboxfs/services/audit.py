# sandboxfs/services/audit.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import json

from sandboxfs.logging import redact_args


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass
class OutcomeLog:
    """
    Append/list NDJSON records of tool outcomes:
      <base_dir>/<YYYY-MM>/outcomes-NNNN.ndjson

    One record per tool call: tool name, redacted arguments, success flag,
    failure code and duration. Rotation: a new file once the current one
    exceeds max_bytes. Injected into the registry handlers; never global.
    """
    base_dir: Path
    max_bytes: int = 10_000_000  # ~10MB per file

    def __post_init__(self):
        self.base = Path(self.base_dir).resolve()
        self.base.mkdir(parents=True, exist_ok=True)

    # ---------- Public API ----------

    def append(
        self,
        tool: str,
        args: Dict[str, Any],
        result: Dict[str, Any],
        *,
        duration_ms: float,
    ) -> Dict[str, Any]:
        record = {
            "ts": _iso_now(),
            "tool": tool,
            "args": redact_args(args),
            "success": bool(result.get("success")),
            **({"code": result["code"]} if "code" in result else {}),
            "durationMs": round(duration_ms, 3),
        }
        month_dir = self._month_dir()
        month_dir.mkdir(parents=True, exist_ok=True)
        path = self._ensure_current_file(month_dir)
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
        return {"ok": True, "file": str(path), "ts": record["ts"]}

    def list(self, *, limit: int = 50, order: str = "desc") -> Dict[str, Any]:
        """Most recent records of the current month ('desc' = newest first)."""
        lines: List[str] = []
        for fp in self._glob_indices(self._month_dir()):
            with open(fp, "r", encoding="utf-8") as f:
                lines.extend(f.readlines())

        if order == "desc":
            chosen = list(reversed(lines))[:limit]
        else:
            chosen = lines[:limit]
        records = [json.loads(x) for x in chosen]
        return {"count": len(records), "records": records}

    # ---------- Internals ----------

    def _month_dir(self, dt: Optional[datetime] = None) -> Path:
        dt = dt or datetime.now(timezone.utc)
        return self.base / f"{dt.year:04d}-{dt.month:02d}"

    def _glob_indices(self, month_dir: Path) -> List[Path]:
        return sorted(month_dir.glob("outcomes-*.ndjson"))

    def _ensure_current_file(self, month_dir: Path) -> Path:
        existing = self._glob_indices(month_dir)
        if not existing:
            return month_dir / "outcomes-0001.ndjson"

        current = existing[-1]
        try:
            sz = current.stat().st_size
        except FileNotFoundError:
            return month_dir / "outcomes-0001.ndjson"

        if sz >= self.max_bytes:
            # Rotate
            idx = int(current.stem.split("-")[-1])
            return month_dir / f"outcomes-{idx + 1:04d}.ndjson"
        return current
