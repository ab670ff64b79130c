# sandboxfs/di.py
from dataclasses import dataclass
from sandboxfs.config import Settings, ToolSetConfig
from sandboxfs.services.filesystem import FileSystemService
from sandboxfs.services.audit import OutcomeLog

@dataclass
class Container:
    settings: Settings
    toolset_config: ToolSetConfig
    fs_service: FileSystemService
    outcome_log: OutcomeLog | None

def build_container(settings: Settings | None = None) -> Container:
    s = settings or Settings()
    config = s.toolset_config()
    fs = FileSystemService(config)

    outcomes = OutcomeLog(base_dir=s.AUDIT_DIR, max_bytes=s.AUDIT_MAX_BYTES) if s.AUDIT_DIR else None

    return Container(s, config, fs, outcomes)
