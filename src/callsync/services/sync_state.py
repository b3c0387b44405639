from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from callsync.domain.models import SyncFailure, SyncStats

SYNC_STATE_FILE = ".sync_state.json"
STAT_FIELDS = ("total", "processed", "success", "skipped", "failed", "contact_matched", "company_matched")


@dataclass
class SyncState:
    last_run_at: str | None = None
    last_window: dict[str, str] = field(default_factory=dict)
    last_stats: SyncStats | None = None


def load_sync_state(workspace_path: Path) -> SyncState:
    path = workspace_path / SYNC_STATE_FILE
    if not path.exists():
        return SyncState()
    data = json.loads(path.read_text(encoding="utf-8"))
    last_window = data.get("last_window") or {}
    if not isinstance(last_window, dict):
        last_window = {}
    last_run_at = data.get("last_run_at")
    return SyncState(
        last_run_at=str(last_run_at) if last_run_at else None,
        last_window={str(k): str(v) for k, v in last_window.items()},
        last_stats=_stats_from_dict(data.get("last_stats")),
    )


def save_sync_state(workspace_path: Path, state: SyncState) -> None:
    path = workspace_path / SYNC_STATE_FILE
    payload: dict[str, Any] = {
        "last_run_at": state.last_run_at,
        "last_window": state.last_window,
    }
    if state.last_stats is not None:
        payload["last_stats"] = asdict(state.last_stats)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n", encoding="utf-8"
    )


def _stats_from_dict(data: Any) -> SyncStats | None:
    if not isinstance(data, dict):
        return None
    stats = SyncStats(**{name: int(data.get(name) or 0) for name in STAT_FIELDS})
    for item in data.get("errors") or []:
        if not isinstance(item, dict):
            continue
        stats.errors.append(
            SyncFailure(
                uuid=str(item.get("uuid") or ""),
                number=str(item.get("number") or ""),
                error=str(item.get("error") or ""),
                timestamp=str(item.get("timestamp") or ""),
            )
        )
    return stats
