from dataclasses import dataclass
from pathlib import Path

from .text import sanitize_file_name
from .units import (
    CARD_HEIGHT_MM,
    CARD_WIDTH_MM,
    CUT_MARK_LENGTH_MM,
    GAP_BETWEEN_CARDS_MM,
    PageSize,
    mm_to_pt,
    page_size_pt,
)

DEFAULT_CACHE_ROOT = Path(".cache")


@dataclass(frozen=True)
class SheetOptions:
    """Everything a proxy sheet needs to know about its geometry and labelling."""

    grid_size: int = 3
    card_width_mm: float = CARD_WIDTH_MM
    card_height_mm: float = CARD_HEIGHT_MM
    gap_mm: float = GAP_BETWEEN_CARDS_MM
    cut_mark_length_mm: float = CUT_MARK_LENGTH_MM
    scale_factor: float = 1.0
    page_size: PageSize = "a4"
    label: str = "deck"
    fit_to_page: bool = True

    @property
    def cards_per_page(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def card_width_pt(self) -> float:
        return mm_to_pt(self.card_width_mm)

    @property
    def card_height_pt(self) -> float:
        return mm_to_pt(self.card_height_mm)

    @property
    def gap_pt(self) -> float:
        return mm_to_pt(self.gap_mm)

    @property
    def cut_mark_length_pt(self) -> float:
        return mm_to_pt(self.cut_mark_length_mm)

    @property
    def page_size_pt(self) -> tuple[float, float]:
        return page_size_pt(self.page_size)


def resolve_output_path(output: str | None, fallback_name: str, default: str = "deck") -> Path:
    """
    An explicit output wins (".pdf" appended when missing); otherwise the file is
    named after the sanitized fallback name in the working directory.
    """
    raw = (output or "").strip()
    if raw:
        path = Path(raw)
        if path.suffix.lower() != ".pdf":
            path = path.with_name(path.name + ".pdf")
        return path.resolve()

    base = sanitize_file_name(fallback_name) or default
    return Path(f"{base}.pdf").resolve()


def resolve_name_and_output(name: str | None, default: str = "deck") -> tuple[str, Path]:
    """--name doubles as the page label and the output file name."""
    raw = (name or "").strip() or default
    output = Path(raw if raw.lower().endswith(".pdf") else f"{raw}.pdf").resolve()
    label = Path(raw).name
    if label.lower().endswith(".pdf"):
        label = label[:-4]
    return label or default, output
