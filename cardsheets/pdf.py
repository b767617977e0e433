"""Thin helpers over fpdf2.

Layout code works in PDF points with the origin at the bottom-left of the page
(y grows upward). fpdf2 puts the origin at the top-left, so every helper here
flips y against the current page height.
"""

from pathlib import Path

import click
from fpdf import FPDF

from .text import core_font_text

type RGB = tuple[int, int, int]

CORE_FONT_FAMILIES = {"helvetica", "arial", "times", "courier"}

BLACK: RGB = (0, 0, 0)
WHITE: RGB = (255, 255, 255)


def new_document(page_width_pt: float, page_height_pt: float) -> FPDF:
    pdf_doc = FPDF(orientation="P", unit="pt", format=(page_width_pt, page_height_pt))
    pdf_doc.set_margin(0)
    pdf_doc.set_auto_page_break(False)
    return pdf_doc


def hex_to_rgb(value: str) -> RGB:
    raw = value.strip().lstrip("#")
    return int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16)


def draw_line(
    pdf_doc: FPDF,
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    color: RGB = BLACK,
    thickness: float = 0.5,
):
    pdf_doc.set_draw_color(*color)
    pdf_doc.set_line_width(thickness)
    pdf_doc.line(x1, pdf_doc.h - y1, x2, pdf_doc.h - y2)


def draw_rect(
    pdf_doc: FPDF,
    x: float,
    y: float,
    width: float,
    height: float,
    fill: RGB | None = None,
    border: RGB | None = None,
    border_width: float = 1,
    round_corners: float = 0,
):
    style = ("D" if border else "") + ("F" if fill else "")
    if not style:
        return
    if fill:
        pdf_doc.set_fill_color(*fill)
    if border:
        pdf_doc.set_draw_color(*border)
        pdf_doc.set_line_width(border_width)

    top = pdf_doc.h - y - height
    if round_corners > 0:
        radius = min(round_corners, width / 2, height / 2)
        pdf_doc.rect(x, top, width, height, style=style, round_corners=True, corner_radius=radius)
    else:
        pdf_doc.rect(x, top, width, height, style=style)


def _printable(pdf_doc: FPDF, text: str) -> str:
    if pdf_doc.font_family in CORE_FONT_FAMILIES:
        return core_font_text(text)
    return text


def text_width(pdf_doc: FPDF, text: str) -> float:
    return pdf_doc.get_string_width(_printable(pdf_doc, text))


def draw_text(
    pdf_doc: FPDF,
    text: str,
    x: float,
    baseline_y: float,
    size: float,
    bold: bool = False,
    color: RGB = BLACK,
    family: str = "helvetica",
    style: str | None = None,
):
    pdf_doc.set_font(family, style if style is not None else ("B" if bold else ""), size)
    pdf_doc.set_text_color(*color)
    pdf_doc.text(x, pdf_doc.h - baseline_y, _printable(pdf_doc, text))


def write_pdf(pdf_doc: FPDF, output_path: str | Path) -> Path:
    full_path = Path(output_path)
    full_path.parent.mkdir(parents=True, exist_ok=True)
    pdf_doc.output(str(full_path))
    click.echo(f"Created {full_path}")
    return full_path
