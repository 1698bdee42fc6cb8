# finance_tracker/sanitize.py
# XSS protection for user-generated text, built on bleach

import json
import re
from typing import Any, Dict, Iterable, List
from urllib.parse import urlparse

import bleach

# Allowed markup per level
STRICT_TAGS: List[str] = []
BASIC_TAGS = ["b", "i", "em", "strong", "u", "br", "p"]
RICH_TAGS = BASIC_TAGS + ["a", "ul", "ol", "li", "h1", "h2", "h3", "h4", "h5", "h6"]
RICH_ATTRIBUTES = {"a": ["href", "title", "target"]}

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_FILENAME_INVALID = re.compile(r'[<>:"|?*\x00-\x1F]')
_HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


def _clean(value: Any, tags, attributes=None) -> str:
    if not value or not isinstance(value, str):
        return ""
    return bleach.clean(value, tags=tags, attributes=attributes or {}, strip=True)


# ===== LEVELS =====

def sanitize_strict(value: Any) -> str:
    """Plain text only, every tag stripped."""
    return _clean(value, STRICT_TAGS)

def sanitize_basic(value: Any) -> str:
    return _clean(value, BASIC_TAGS)

def sanitize_rich(value: Any) -> str:
    return _clean(value, RICH_TAGS, RICH_ATTRIBUTES)


# ===== FIELD HELPERS =====

def sanitize_transaction_description(description: Any) -> str:
    return sanitize_strict(description)

def sanitize_category_name(name: Any) -> str:
    return sanitize_strict(name)

def sanitize_budget_notes(notes: Any) -> str:
    return sanitize_basic(notes)

def sanitize_chatbot_response(response: Any) -> str:
    return sanitize_rich(response)


def sanitize_object(obj: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Copy of `obj` with the named string fields strictly sanitized."""
    sanitized = dict(obj)
    for field in fields:
        if isinstance(sanitized.get(field), str):
            sanitized[field] = sanitize_strict(sanitized[field])
    return sanitized

def sanitize_list(items: Iterable[Dict[str, Any]], fields: Iterable[str]) -> List[Dict[str, Any]]:
    fields = list(fields)
    return [sanitize_object(item, fields) for item in items]


# ===== SPECIFIC FORMATS =====

def remove_special_characters(value: Any) -> str:
    """Drop null bytes and control characters, keeping tabs and newlines."""
    if not value or not isinstance(value, str):
        return ""
    return _CONTROL_CHARS.sub("", value).strip()

def sanitize_email(email: Any) -> str:
    """Lowercased, trimmed address, or '' when it does not look like one."""
    if not email or not isinstance(email, str):
        return ""
    cleaned = email.lower().strip()
    return cleaned if _EMAIL.match(cleaned) else ""

def sanitize_url(url: Any) -> str:
    """Only http(s) URLs with a host survive."""
    if not url or not isinstance(url, str):
        return ""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return ""
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ""
    return parsed.geturl()

def sanitize_filename(filename: Any) -> str:
    if not filename or not isinstance(filename, str):
        return ""
    cleaned = re.sub(r"[/\\]", "", filename)
    cleaned = cleaned.replace("..", "")
    cleaned = _FILENAME_INVALID.sub("", cleaned)
    return cleaned.strip()

def escape_html(value: Any) -> str:
    if not value or not isinstance(value, str):
        return ""
    return "".join(_HTML_ENTITIES.get(ch, ch) for ch in value)

def sanitize_json(value: Any) -> str:
    """Re-serialize valid JSON; anything else becomes '{}'."""
    if not value or not isinstance(value, str):
        return "{}"
    try:
        return json.dumps(json.loads(value), separators=(",", ":"))
    except ValueError:
        return "{}"
