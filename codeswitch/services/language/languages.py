"""Languages offered to the UI and their display names for prompts."""

from __future__ import annotations

AUTO_DETECT = "auto"
DEFAULT_TARGET_LANGUAGE = "en"

# code -> display name
LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "ru": "Russian",
    "kk": "Kazakh",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "ar": "Arabic",
    "nl": "Dutch",
    "pl": "Polish",
}

# The UI historically used "kz" for Kazakh.
_ALIASES = {"kz": "kk"}


def normalize_code(code: str) -> str:
    code = code.strip().lower()
    return _ALIASES.get(code, code)


def language_name(code: str) -> str:
    """Human-readable name for ``code``; unknown codes are returned as given."""
    return LANGUAGE_NAMES.get(normalize_code(code), code)


def is_auto_detect(hints: list[str] | None) -> bool:
    """Empty hints or any ``auto`` entry means full auto-detection."""
    if not hints:
        return True
    return any(normalize_code(h) == AUTO_DETECT for h in hints)


def clean_hints(hints: list[str] | None) -> list[str]:
    """Normalise hint codes, dropping blanks and duplicates, keeping order."""
    seen: dict[str, None] = {}
    for hint in hints or []:
        if not isinstance(hint, str) or not hint.strip():
            continue
        seen.setdefault(normalize_code(hint), None)
    return list(seen)


def supported_languages() -> list[dict[str, str]]:
    """Language picker entries, auto-detect first."""
    entries = [{"code": AUTO_DETECT, "name": "Auto-detect"}]
    entries.extend({"code": c, "name": n} for c, n in LANGUAGE_NAMES.items())
    return entries
