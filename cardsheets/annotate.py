from dataclasses import dataclass

from fpdf import FPDF

from .layout import GridLayout
from .pdf import BLACK, RGB, draw_line, draw_text, text_width
from .units import mm_to_pt, pt_to_mm


@dataclass(frozen=True)
class Segment:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class RulerTick:
    mm: int
    length_mm: float
    label: str | None


def card_edges(layout: GridLayout) -> tuple[list[float], list[float]]:
    """Distinct x and y coordinates of every card edge, sorted."""
    edges_x: set[float] = set()
    edges_y: set[float] = set()
    for i in range(layout.grid_size):
        x = layout.origin_x + i * (layout.scaled_card_width + layout.scaled_gap)
        edges_x.update((x, x + layout.scaled_card_width))
        y = layout.origin_y + i * (layout.scaled_card_height + layout.scaled_gap)
        edges_y.update((y, y + layout.scaled_card_height))
    return sorted(edges_x), sorted(edges_y)


def cut_mark_segments(layout: GridLayout, cut_mark_length: float) -> list[Segment]:
    edges_x, edges_y = card_edges(layout)

    bottom = layout.origin_y
    top = layout.origin_y + layout.grid_height
    left = layout.origin_x
    right = layout.origin_x + layout.grid_width

    segments: list[Segment] = []
    for x in edges_x:
        segments.append(Segment(x, top, x, top + cut_mark_length))
        segments.append(Segment(x, bottom, x, bottom - cut_mark_length))
    for y in edges_y:
        segments.append(Segment(left, y, left - cut_mark_length, y))
        segments.append(Segment(right, y, right + cut_mark_length, y))
    return segments


def draw_cut_marks(pdf_doc: FPDF, layout: GridLayout, cut_mark_length: float, color: RGB = BLACK):
    for seg in cut_mark_segments(layout, cut_mark_length):
        draw_line(pdf_doc, seg.x1, seg.y1, seg.x2, seg.y2, color=color)


def ruler_ticks(width_mm: float, step_mm: int = 5) -> list[RulerTick]:
    ticks: list[RulerTick] = []
    for mm in range(0, int(width_mm) + 1, step_mm):
        if mm % 10 == 0:
            ticks.append(RulerTick(mm, 3.0, str(mm // 10)))
        else:
            ticks.append(RulerTick(mm, 1.5, None))
    return ticks


def draw_horizontal_ruler(
    pdf_doc: FPDF,
    base_y: float,
    direction: int,
    width_mm: float,
    color: RGB = BLACK,
    font_size: float = 6,
):
    """Ruler along base_y with ticks pointing up (direction=1) or down (direction=-1)."""
    label_offset = mm_to_pt(1)
    draw_line(pdf_doc, 0, base_y, pdf_doc.w, base_y, color=color)

    pdf_doc.set_font("helvetica", "", font_size)
    for tick in ruler_ticks(width_mm):
        x = mm_to_pt(tick.mm)
        length = mm_to_pt(tick.length_mm)
        draw_line(pdf_doc, x, base_y, x, base_y + length * direction, color=color)

        if tick.label is not None:
            label_width = text_width(pdf_doc, tick.label)
            text_y = base_y + (length + label_offset) * direction
            if direction < 0:
                text_y -= font_size
            draw_text(pdf_doc, tick.label, x - label_width / 2, text_y, font_size, color=color)


def draw_rulers(pdf_doc: FPDF, color: RGB = BLACK):
    margin = mm_to_pt(5)
    width_mm = pt_to_mm(pdf_doc.w)
    draw_horizontal_ruler(pdf_doc, pdf_doc.h - margin, -1, width_mm, color)
    draw_horizontal_ruler(pdf_doc, margin, 1, width_mm, color)


def page_label_text(label: str, page_number: int, total_pages: int) -> str:
    return f"{label} - Page {page_number}/{total_pages}"


def draw_page_label(
    pdf_doc: FPDF,
    label: str,
    page_number: int,
    total_pages: int,
    color: RGB = BLACK,
    font_size: float = 10,
):
    text = page_label_text(label, page_number, total_pages)
    pdf_doc.set_font("helvetica", "B", font_size)
    x = (pdf_doc.w - text_width(pdf_doc, text)) / 2
    draw_text(pdf_doc, text, x, mm_to_pt(5), font_size, bold=True, color=color)
