"""Full-page ruler grid, printed on both sides to check duplex alignment."""

from fpdf import FPDF

from .pdf import draw_line, draw_text, new_document, text_width
from .units import PageSize, mm_to_pt, page_size_mm

TICK_MINOR_MM = 1.5
TICK_MAJOR_MM = 3.0
LABEL_OFFSET_MM = 2.0
LABEL_SIZE = 6
LINE_WIDTH = 0.5


def grid_positions(extent_mm: float, step_mm: float) -> list[float]:
    """0, step, 2*step, ... up to extent, counted in steps to avoid float drift."""
    if step_mm <= 0:
        raise ValueError("step must be positive")
    count = int(extent_mm / step_mm + 1e-9)
    return [i * step_mm for i in range(count + 1)]


def is_major(mm: float, major_mm: float) -> bool:
    return abs(round(mm / major_mm) * major_mm - mm) < 1e-6


def _cm_label(mm: float) -> str:
    return f"{mm / 10:g}"


def draw_grid_lines(pdf_doc: FPDF, width_mm: float, height_mm: float, major_mm: float):
    for mm in grid_positions(width_mm, major_mm):
        x = mm_to_pt(mm)
        draw_line(pdf_doc, x, 0, x, pdf_doc.h, thickness=LINE_WIDTH)
    for mm in grid_positions(height_mm, major_mm):
        y = mm_to_pt(mm)
        draw_line(pdf_doc, 0, y, pdf_doc.w, y, thickness=LINE_WIDTH)


def draw_edge_ticks(pdf_doc: FPDF, width_mm: float, height_mm: float, major_mm: float, minor_mm: float):
    offset = mm_to_pt(LABEL_OFFSET_MM)
    pdf_doc.set_font("helvetica", "", LABEL_SIZE)

    for mm in grid_positions(width_mm, minor_mm):
        major = is_major(mm, major_mm)
        x = mm_to_pt(mm)
        length = mm_to_pt(TICK_MAJOR_MM if major else TICK_MINOR_MM)
        draw_line(pdf_doc, x, 0, x, length, thickness=LINE_WIDTH)
        draw_line(pdf_doc, x, pdf_doc.h, x, pdf_doc.h - length, thickness=LINE_WIDTH)

        if major and mm > 0:
            label = _cm_label(mm)
            label_x = x - text_width(pdf_doc, label) / 2
            draw_text(pdf_doc, label, label_x, pdf_doc.h - length - offset - LABEL_SIZE, LABEL_SIZE)
            draw_text(pdf_doc, label, label_x, length + offset, LABEL_SIZE)

    for mm in grid_positions(height_mm, minor_mm):
        major = is_major(mm, major_mm)
        y = mm_to_pt(mm)
        length = mm_to_pt(TICK_MAJOR_MM if major else TICK_MINOR_MM)
        draw_line(pdf_doc, 0, y, length, y, thickness=LINE_WIDTH)
        draw_line(pdf_doc, pdf_doc.w, y, pdf_doc.w - length, y, thickness=LINE_WIDTH)

        if major and mm > 0:
            label = _cm_label(mm)
            baseline = y - LABEL_SIZE / 2
            draw_text(pdf_doc, label, length + offset, baseline, LABEL_SIZE)
            draw_text(
                pdf_doc,
                label,
                pdf_doc.w - length - offset - text_width(pdf_doc, label),
                baseline,
                LABEL_SIZE,
            )


def build_ruler_grid_pdf(page_size: PageSize = "a4", major_cm: float = 1, minor_mm: float = 1) -> FPDF:
    if major_cm <= 0 or minor_mm <= 0:
        raise ValueError("grid spacing must be positive")

    width_mm, height_mm = page_size_mm(page_size)
    major_mm = major_cm * 10

    pdf_doc = new_document(mm_to_pt(width_mm), mm_to_pt(height_mm))
    pdf_doc.add_page()

    draw_grid_lines(pdf_doc, width_mm, height_mm, major_mm)
    draw_edge_ticks(pdf_doc, width_mm, height_mm, major_mm, minor_mm)

    caption = f"Ruler Grid - {minor_mm:g}mm ticks, {major_cm:g}cm grid"
    draw_text(pdf_doc, caption, mm_to_pt(5), mm_to_pt(5), 8, bold=True)
    return pdf_doc
