from __future__ import annotations

from datetime import UTC, datetime


class ValidationError(ValueError):
    pass


def require(value: str | None, field: str) -> None:
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{field} is required.")


def dialable_part(raw: str | None) -> str:
    """Return the first whitespace-separated token of a provider number.

    ``"1002 (905318865036)"`` becomes ``"1002"``.
    """
    if not raw:
        return ""
    parts = raw.split()
    return parts[0] if parts else ""


def parse_duration(value: str | None, field: str = "duration") -> int:
    """Convert ``HH:MM:SS`` (or ``MM:SS``) to seconds."""
    if value is None or value.strip() == "":
        return 0
    parts = value.strip().split(":")
    if len(parts) > 3:
        raise ValidationError(f"{field} must be HH:MM:SS.")
    try:
        numbers = [int(part) for part in parts]
    except ValueError as exc:
        raise ValidationError(f"{field} must be HH:MM:SS.") from exc
    seconds = 0
    for number in numbers:
        seconds = seconds * 60 + number
    return seconds


def parse_start_stamp(value: str | None, field: str = "start_stamp") -> datetime | None:
    """Parse Santral timestamps such as ``2024-11-05 11:34:51 +0300``."""
    if value is None or value.strip() == "":
        return None
    cleaned = value.strip()
    if cleaned.endswith(" UTC"):
        cleaned = cleaned[: -len(" UTC")] + " +0000"
    for fmt in ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%dT%H:%M:%S%z"):
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"{field} must be a timestamp.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_bool_text(value: str | bool | None) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"true", "1", "yes"}
