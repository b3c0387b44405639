"""Phone-number normalization for Turkish CDRs and CRM lookups.

Numbers arrive from the PBX and from HubSpot in mixed shapes: ``05xx``,
``5xx``, ``905xx``, ``+905xx``, sometimes with spaces, parentheses or URL
encoding. :func:`normalize` folds all of them into E.164.
"""
from __future__ import annotations

import logging
import re
from urllib.parse import unquote

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

LOGGER = logging.getLogger(__name__)

DEFAULT_REGION = "TR"
DEFAULT_CALLING_CODE = "90"
NATIONAL_LENGTH = 11
INTERNATIONAL_LENGTH = 12

_STRIP_RE = re.compile(r"[\s()\-]")


def clean(raw: str) -> str:
    return unquote(_STRIP_RE.sub("", raw))


def _parse_valid(candidate: str, region: str | None = None) -> str | None:
    try:
        parsed = phonenumbers.parse(candidate, region)
    except NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def _candidates(cleaned: str) -> list[tuple[str, str | None]]:
    candidates: list[tuple[str, str | None]] = []
    if cleaned.startswith("+"):
        candidates.append((cleaned, None))
    if cleaned.startswith("0") and len(cleaned) == NATIONAL_LENGTH:
        candidates.append((f"+{DEFAULT_CALLING_CODE}{cleaned[1:]}", None))
    if cleaned.startswith(DEFAULT_CALLING_CODE) and len(cleaned) == INTERNATIONAL_LENGTH:
        candidates.append((f"+{cleaned}", None))
    variants = [
        cleaned,
        cleaned[1:] if cleaned.startswith("0") else cleaned,
        cleaned[len(DEFAULT_CALLING_CODE):] if cleaned.startswith(DEFAULT_CALLING_CODE) else cleaned,
        cleaned[len(DEFAULT_CALLING_CODE) + 1:]
        if cleaned.startswith(f"+{DEFAULT_CALLING_CODE}")
        else cleaned,
    ]
    candidates.extend((variant, DEFAULT_REGION) for variant in variants)
    return candidates


def normalize(raw: str | None) -> str | None:
    """Return the E.164 form of ``raw`` or ``None`` when no variant is valid."""
    if not raw:
        return None
    cleaned = clean(raw)
    if not cleaned:
        return None
    for candidate, region in _candidates(cleaned):
        formatted = _parse_valid(candidate, region)
        if formatted:
            return formatted
    LOGGER.warning("No valid phone format found for %r", raw)
    return None


def is_valid(raw: str | None) -> bool:
    return normalize(raw) is not None


def to_display_form(raw: str) -> str:
    normalized = normalize(raw)
    if not normalized:
        return raw
    try:
        parsed = phonenumbers.parse(normalized, None)
    except NumberParseException:
        return raw
    return phonenumbers.format_number(parsed, PhoneNumberFormat.INTERNATIONAL)


def lookup_variants(normalized: str) -> list[str]:
    """Textual forms a CRM may have stored for ``normalized``, most specific first."""
    prefix = f"+{DEFAULT_CALLING_CODE}"
    subscriber = normalized[len(prefix):] if normalized.startswith(prefix) else normalized.lstrip("+")
    variants = [
        normalized,
        normalized.lstrip("+"),
        subscriber,
        f"0{subscriber}",
    ]
    seen: set[str] = set()
    ordered: list[str] = []
    for variant in variants:
        if variant and variant not in seen:
            seen.add(variant)
            ordered.append(variant)
    return ordered
