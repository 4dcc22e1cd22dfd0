"""Text cleanup shared by all extractors: sanitize, truncate, JSON normalisation."""
import json
import re

from docchat.config import settings

# C0 controls and DEL, except tab (\x09), LF (\x0a) and CR (\x0d)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_LINE_BREAKS = re.compile(r"\r\n?")
_HORIZONTAL_WS = re.compile(r"[ \t]+")
_TRAILING_WS = re.compile(r"[ \t]+(?=\n)")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def sanitize(text: str) -> str:
    """
    Removes control characters and normalises whitespace.
    Idempotent: sanitize(sanitize(s)) == sanitize(s).
    """
    text = _CONTROL_CHARS.sub("", text)
    text = _LINE_BREAKS.sub("\n", text)
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _TRAILING_WS.sub("", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def truncate(text: str, max_chars: int | None = None) -> str:
    limit = settings.max_output_chars if max_chars is None else max_chars
    return text[:limit]


def normalize_storage_path(path: str) -> str:
    """Strips leading separators so the key cannot escape into another prefix."""
    return path.lstrip("/\\")


def decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


def format_json(raw: str) -> str:
    """
    Re-serialises valid JSON with 2-space indentation; invalid JSON is kept as text.

    Indentation of the dump is kept; only DEL, which json leaves unescaped, is stripped.
    """
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError:
        return sanitize(raw)
    return _CONTROL_CHARS.sub("", json.dumps(obj, indent=2, ensure_ascii=False))
