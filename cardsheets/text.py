import re
from typing import Callable

type Measure = Callable[[str], float]

# core PDF fonts (helvetica etc.) only cover Latin-1
ELLIPSIS = "..."

_CORE_FONT_REPLACEMENTS = {
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
    "•": "*",
    "…": "...",
}


def core_font_text(text: str) -> str:
    for src, dst in _CORE_FONT_REPLACEMENTS.items():
        text = text.replace(src, dst)
    return text.encode("latin-1", "replace").decode("latin-1")


def clip_text(text: str, max_width: float, measure: Measure, ellipsis: str = ELLIPSIS) -> str:
    """
    Clip text to max_width, appending an ellipsis when anything was cut.
    Text that already fits is returned unchanged. Never raises: in the worst case
    the bare ellipsis comes back.
    """
    raw = str(text or "")
    if measure(raw) <= max_width:
        return raw

    ellipsis_width = measure(ellipsis)
    result = ""
    for ch in raw:
        candidate = result + ch
        if measure(candidate) + ellipsis_width > max_width:
            break
        result = candidate

    return f"{result}{ellipsis}"


def normalize_name(text: str | None) -> str:
    return re.sub(r"\s+", " ", text.lower()).strip() if text else ""


def sanitize_file_name(text: str | None) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
