from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

WORKSPACES_DIR = Path("workspaces")
CURRENT_WORKSPACE_FILE = WORKSPACES_DIR / ".current"
WORKSPACE_FILENAME = "workspace.yaml"

HUBSPOT_BASE_URL = "https://api.hubapi.com"
SANTRAL_BASE_URL = "https://api.bulutsantralim.com"


@dataclass(frozen=True)
class HubspotConfig:
    base_url: str = HUBSPOT_BASE_URL
    lookup_delay_seconds: float = 0.3
    association_batch_size: int = 100


@dataclass(frozen=True)
class SantralConfig:
    base_url: str = SANTRAL_BASE_URL
    max_requests_per_minute: int = 5


@dataclass(frozen=True)
class SyncConfig:
    window_hours: int = 24
    page_limit: int = 100
    fetch_recording_urls: bool = False


@dataclass(frozen=True)
class WorkspaceConfig:
    name: str
    hubspot: HubspotConfig
    santral: SantralConfig
    sync: SyncConfig
    path: Path


class WorkspaceError(RuntimeError):
    pass


def ensure_workspaces_dir() -> None:
    WORKSPACES_DIR.mkdir(parents=True, exist_ok=True)


def set_current_workspace(name: str) -> None:
    ensure_workspaces_dir()
    CURRENT_WORKSPACE_FILE.write_text(f"{name}\n", encoding="utf-8")


def get_current_workspace_name() -> str:
    if not CURRENT_WORKSPACE_FILE.exists():
        raise WorkspaceError("No active workspace. Run `callsync workspace use <name>`.")
    return CURRENT_WORKSPACE_FILE.read_text(encoding="utf-8").strip()


def workspace_path(name: str) -> Path:
    return WORKSPACES_DIR / name


def workspace_config_path(name: str) -> Path:
    return workspace_path(name) / WORKSPACE_FILENAME


def load_workspace(name: str | None = None) -> WorkspaceConfig:
    if name is None:
        name = get_current_workspace_name()
    config_path = workspace_config_path(name)
    if not config_path.exists():
        raise WorkspaceError(f"Workspace config not found: {config_path}")
    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise WorkspaceError(f"Invalid workspace config: {config_path}")
    return WorkspaceConfig(
        name=name,
        hubspot=_parse_hubspot(data.get("hubspot")),
        santral=_parse_santral(data.get("santral")),
        sync=_parse_sync(data.get("sync")),
        path=config_path.parent,
    )


def write_workspace_config(name: str, max_requests_per_minute: int | None = None) -> Path:
    ensure_workspaces_dir()
    ws_dir = workspace_path(name)
    ws_dir.mkdir(parents=True, exist_ok=True)
    hubspot = HubspotConfig()
    santral = SantralConfig()
    sync = SyncConfig()
    config = {
        "workspace": name,
        "hubspot": {
            "base_url": hubspot.base_url,
            "lookup_delay_seconds": hubspot.lookup_delay_seconds,
            "association_batch_size": hubspot.association_batch_size,
        },
        "santral": {
            "base_url": santral.base_url,
            "max_requests_per_minute": max_requests_per_minute or santral.max_requests_per_minute,
        },
        "sync": {
            "window_hours": sync.window_hours,
            "page_limit": sync.page_limit,
            "fetch_recording_urls": sync.fetch_recording_urls,
        },
    }
    config_path = workspace_config_path(name)
    config_path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return config_path


def _section(data: Any, name: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise WorkspaceError(f"Workspace {name} configuration must be a mapping.")
    return data


def _parse_hubspot(data: Any) -> HubspotConfig:
    section = _section(data, "hubspot")
    defaults = HubspotConfig()
    return HubspotConfig(
        base_url=os.getenv("HUBSPOT_API_BASE_URL") or section.get("base_url") or defaults.base_url,
        lookup_delay_seconds=_number(
            section.get("lookup_delay_seconds", defaults.lookup_delay_seconds),
            "hubspot.lookup_delay_seconds",
            float,
        ),
        association_batch_size=_number(
            section.get("association_batch_size", defaults.association_batch_size),
            "hubspot.association_batch_size",
            int,
        ),
    )


def _parse_santral(data: Any) -> SantralConfig:
    section = _section(data, "santral")
    defaults = SantralConfig()
    max_requests = os.getenv("MAX_REQUESTS_PER_MINUTE") or section.get(
        "max_requests_per_minute", defaults.max_requests_per_minute
    )
    return SantralConfig(
        base_url=os.getenv("SANTRAL_API_BASE_URL") or section.get("base_url") or defaults.base_url,
        max_requests_per_minute=_number(max_requests, "santral.max_requests_per_minute", int),
    )


def _parse_sync(data: Any) -> SyncConfig:
    section = _section(data, "sync")
    defaults = SyncConfig()
    return SyncConfig(
        window_hours=_number(section.get("window_hours", defaults.window_hours), "sync.window_hours", int),
        page_limit=_number(section.get("page_limit", defaults.page_limit), "sync.page_limit", int),
        fetch_recording_urls=bool(section.get("fetch_recording_urls", defaults.fetch_recording_urls)),
    )


def _number(value: Any, field: str, kind: type) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        raise WorkspaceError(f"Workspace {field} must be a number.") from exc
    if number < 0:
        raise WorkspaceError(f"Workspace {field} must not be negative.")
    return number
