import math
from typing import Literal, get_args

# 1 inch = 25.4 mm = 72 pt
ONE_INCH_MM = 25.4
MM_TO_PT = 72 / ONE_INCH_MM

type PageSize = Literal["a4", "letter"]

PAGE_SIZE_CHOICES = get_args(PageSize.__value__)

PAGE_SIZES_MM: dict[PageSize, tuple[float, float]] = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
}

# standard poker-size card, 2.5" x 3.5"
CARD_WIDTH_MM = 63.5
CARD_HEIGHT_MM = 88.9

GAP_BETWEEN_CARDS_MM = 0.5
CUT_MARK_LENGTH_MM = 5.0


def mm_to_pt(value: float) -> float:
    if not math.isfinite(value) or value < 0:
        raise ValueError("Measurements must be non-negative numbers")
    return value * MM_TO_PT


def pt_to_mm(value: float) -> float:
    return value / MM_TO_PT


def page_size_mm(page_size: PageSize, landscape: bool = False) -> tuple[float, float]:
    try:
        width, height = PAGE_SIZES_MM[page_size]
    except KeyError:
        raise ValueError(
            f"Unknown page size {page_size!r} (expected one of {', '.join(PAGE_SIZE_CHOICES)})"
        ) from None
    return (height, width) if landscape else (width, height)


def page_size_pt(page_size: PageSize, landscape: bool = False) -> tuple[float, float]:
    width, height = page_size_mm(page_size, landscape)
    return mm_to_pt(width), mm_to_pt(height)
