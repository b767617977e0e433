from fpdf import FPDF
from PIL import Image, ImageDraw

from .cards import FaceRef
from .layout import SlotRect
from .pdf import BLACK, RGB, draw_rect, draw_text, text_width
from .text import Measure, clip_text

PLACEHOLDER_FILL: RGB = (242, 242, 242)
PLACEHOLDER_FONT_SIZE = 10
PLACEHOLDER_PADDING = 10

# share of the short side
CORNER_RADIUS_RATIO = 0.05


def draw_card_background(pdf_doc: FPDF, rect: SlotRect, bleed: float, color: RGB = BLACK):
    draw_rect(
        pdf_doc,
        rect.x - bleed,
        rect.y - bleed,
        rect.width + bleed * 2,
        rect.height + bleed * 2,
        fill=color,
    )


def round_corners(img: Image.Image, radius_ratio: float = CORNER_RADIUS_RATIO) -> Image.Image:
    """RGBA copy of img with transparent rounded corners."""
    radius = round(min(img.size) * radius_ratio)
    mask = Image.new("L", img.size, 0)
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, img.width - 1, img.height - 1), radius=radius, fill=255)
    rounded = img.convert("RGBA")
    rounded.putalpha(mask)
    return rounded


def draw_card_image(pdf_doc: FPDF, img: Image.Image, rect: SlotRect):
    top = pdf_doc.h - rect.y - rect.height
    pdf_doc.image(round_corners(img), x=rect.x, y=top, w=rect.width, h=rect.height)


def placeholder_lines(face: FaceRef | None) -> list[str]:
    title = (face.card.name if face else "") or "Missing image"
    file_name = (face.image_src if face else "").strip()
    lines = [title]
    if file_name:
        lines.append(f"File: {file_name}")
    return lines


def placeholder_text(face: FaceRef | None, max_width: float, measure: Measure) -> list[str]:
    return [clip_text(line, max_width, measure) for line in placeholder_lines(face)]


def draw_missing_image_placeholder(
    pdf_doc: FPDF,
    rect: SlotRect,
    face: FaceRef | None,
    fill: RGB = PLACEHOLDER_FILL,
    stroke: RGB = BLACK,
):
    draw_rect(pdf_doc, rect.x, rect.y, rect.width, rect.height, fill=fill, border=stroke, border_width=1)

    pdf_doc.set_font("helvetica", "B", PLACEHOLDER_FONT_SIZE)
    max_width = rect.width - PLACEHOLDER_PADDING * 2
    cursor_y = rect.y + rect.height - PLACEHOLDER_PADDING - PLACEHOLDER_FONT_SIZE

    for line in placeholder_text(face, max_width, lambda s: text_width(pdf_doc, s)):
        draw_text(
            pdf_doc,
            line,
            rect.x + PLACEHOLDER_PADDING,
            cursor_y,
            PLACEHOLDER_FONT_SIZE,
            bold=True,
        )
        cursor_y -= PLACEHOLDER_FONT_SIZE + 4
