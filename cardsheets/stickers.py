"""
Deck-box sticker sheets described by a YAML file.

The YAML holds a ``sheet`` block (page, margins, sticker sizes, columns), optional
``debug`` guide positions, ``defaults`` shared by every sticker and the ``stickers``
list itself. Every field is validated up front and all problems are reported in
one go; nothing is rendered from a config with errors.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from fontTools.ttLib import TTLibError
from fpdf import FPDF
from PIL import Image, ImageDraw, UnidentifiedImageError

from .errors import AssetError, ConfigError
from .pdf import WHITE, RGB, draw_line, draw_rect, draw_text, hex_to_rgb, new_document, text_width
from .units import MM_TO_PT, PAGE_SIZE_CHOICES, mm_to_pt, page_size_mm

ORIENTATIONS = ("auto", "portrait", "landscape")
STICKER_KINDS = ("top", "front")
ALIGNMENTS = ("left", "center", "right")

DEFAULT_GRADIENT = "#f7d117"

STICKER_PADDING_MM = 1.2
GRADIENT_SOLID_MM = 20
# raster resolution for sticker backgrounds, about 300 dpi
PX_PER_MM = 12
EPSILON = 1e-6

STANDARD_FONTS = {
    "helvetica": ("helvetica", ""),
    "helvetica-bold": ("helvetica", "B"),
    "helvetica-oblique": ("helvetica", "I"),
    "helvetica-boldoblique": ("helvetica", "BI"),
    "helvetica-bold-oblique": ("helvetica", "BI"),
    "times": ("times", ""),
    "times-roman": ("times", ""),
    "times-bold": ("times", "B"),
    "times-italic": ("times", "I"),
    "times-bolditalic": ("times", "BI"),
    "times-bold-italic": ("times", "BI"),
    "courier": ("courier", ""),
    "courier-bold": ("courier", "B"),
    "courier-oblique": ("courier", "I"),
    "courier-boldoblique": ("courier", "BI"),
    "courier-bold-oblique": ("courier", "BI"),
}


@dataclass(frozen=True)
class MmRect:
    x: float
    y: float
    width: float
    height: float

    def inset(self, amount: float) -> "MmRect":
        return MmRect(
            self.x + amount,
            self.y + amount,
            max(0.0, self.width - amount * 2),
            max(0.0, self.height - amount * 2),
        )


@dataclass
class SheetSettings:
    page_size: str = "a4"
    orientation: str = "portrait"
    page_width_mm: float = 210.0
    page_height_mm: float = 297.0
    margin_mm: float = 8
    gutter_mm: float = 4
    sticker_width_mm: float = 70
    top_sticker_height_mm: float = 25
    front_sticker_height_mm: float = 40
    corner_radius_mm: float = 2
    columns: int = 2

    @property
    def usable_width_mm(self) -> float:
        return self.page_width_mm - self.margin_mm * 2

    @property
    def usable_height_mm(self) -> float:
        return self.page_height_mm - self.margin_mm * 2

    @property
    def grid_width_mm(self) -> float:
        return self.sticker_width_mm * self.columns + self.gutter_mm * (self.columns - 1)

    def height_for(self, kind: str) -> float:
        return self.front_sticker_height_mm if kind == "front" else self.top_sticker_height_mm


@dataclass
class DebugGuides:
    left_mm: float = 10
    right_from_right_mm: float = 40
    center_horizontal: bool = True


@dataclass
class StickerDefaults:
    logo: Path | None = None
    logo_offset_x_mm: float = 0
    logo_offset_y_mm: float = 0
    logo_max_width_mm: float = 28
    logo_max_height_mm: float = 18
    logo_scale: float = 1
    gradient: str = DEFAULT_GRADIENT
    gradient_width_mm: float = 34
    art_scale: float = 1


@dataclass
class TextOverlay:
    text: str
    x_mm: float = 0
    y_mm: float = 0
    font_size_mm: float = 3.6
    padding_mm: float = 1
    font: str = ""
    font_path: Path | None = None
    color: str = "#000000"
    background: str = ""
    align: str = "left"


@dataclass
class Sticker:
    name: str = ""
    kind: str = "top"
    logo: Path | None = None
    art: Path | None = None
    logo_offset_x_mm: float = 0
    logo_offset_y_mm: float = 0
    logo_max_width_mm: float = 28
    logo_max_height_mm: float = 18
    logo_scale: float = 1
    art_offset_x_mm: float = 0
    art_offset_y_mm: float = 0
    art_scale: float = 1
    gradient: str = DEFAULT_GRADIENT
    gradient_width_mm: float = 34
    text_overlays: list[TextOverlay] = field(default_factory=list)

    def is_renderable(self) -> bool:
        return bool(self.logo or self.art or any(o.text for o in self.text_overlays))


@dataclass
class StickerSheetConfig:
    version: int
    sheet: SheetSettings
    debug: DebugGuides
    defaults: StickerDefaults
    stickers: list[Sticker]


@dataclass(frozen=True)
class PackedSticker:
    rect: MmRect
    sticker: Sticker


@dataclass
class StickerPage:
    stickers: list[PackedSticker] = field(default_factory=list)


# Field parsing. Every helper appends to `errors` and hands back a usable value so
# validation can carry on and report everything at once.


def _is_blank(raw) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def parse_number(label: str, raw, errors: list[str], minimum: float, fallback: float) -> float:
    if _is_blank(raw):
        return fallback
    try:
        if isinstance(raw, bool):
            raise ValueError(raw)
        value = float(raw)
    except (TypeError, ValueError):
        errors.append(f"{label} must be a number")
        return fallback
    if not math.isfinite(value):
        errors.append(f"{label} must be a number")
        return fallback
    if value < minimum:
        errors.append(f"{label} must be >= {minimum:g}")
    return value


def parse_int(label: str, raw, errors: list[str], minimum: int, maximum: int, fallback: int) -> int:
    if _is_blank(raw):
        return fallback
    try:
        if isinstance(raw, bool):
            raise ValueError(raw)
        value = float(raw)
    except (TypeError, ValueError):
        errors.append(f"{label} must be an integer")
        return fallback
    if not value.is_integer():
        errors.append(f"{label} must be an integer")
        return fallback
    if not minimum <= value <= maximum:
        errors.append(f"{label} must be between {minimum} and {maximum}")
    return int(value)


def normalize_hex_color(value) -> str:
    raw = str(value if value is not None else "").strip().lstrip("#")
    if len(raw) == 6 and all(c in "0123456789abcdefABCDEF" for c in raw):
        return f"#{raw.lower()}"
    return ""


def parse_color(label: str, raw, errors: list[str], fallback: str) -> str:
    color = normalize_hex_color(raw)
    if not color:
        errors.append(f"{label} must be a 6-digit hex color like {fallback}")
        return fallback
    return color


def parse_gradient(label: str, src: dict, errors: list[str], fallback: str) -> str:
    """`gradient` with `yellow` as the legacy spelling; both set to different colours is an error."""
    raw = src.get("gradient", src.get("yellow"))
    if src.get("gradient") is not None and src.get("yellow") is not None:
        a, b = normalize_hex_color(src["gradient"]), normalize_hex_color(src["yellow"])
        if a and b and a != b:
            errors.append(f"{label}.gradient and {label}.yellow are both set (use only {label}.gradient)")
    if raw is None:
        return fallback
    return parse_color(f"{label}.gradient", raw, errors, DEFAULT_GRADIENT)


def resolve_optional_path(value, base_dir: Path) -> Path | None:
    raw = value.strip() if isinstance(value, str) else ""
    if not raw:
        return None
    path = Path(raw)
    return path if path.is_absolute() else (base_dir / path).resolve()


def _mapping(raw) -> dict:
    return raw if isinstance(raw, dict) else {}


def _format_mm(value: float) -> str:
    return f"{value:.1f}".removesuffix(".0")


def choose_orientation(
    page_size: str, orientation: str, margin_mm: float, grid_width_mm: float, min_height_mm: float
) -> tuple[str, float, float]:
    """Explicit orientation wins; `auto` prefers whichever fits, then the most slack."""
    candidates = []
    for name in ("portrait", "landscape"):
        width, height = page_size_mm(page_size, landscape=name == "landscape")
        usable_w, usable_h = width - margin_mm * 2, height - margin_mm * 2
        fits = grid_width_mm <= usable_w + EPSILON and min_height_mm <= usable_h + EPSILON
        slack = min(usable_w - grid_width_mm, usable_h - min_height_mm)
        candidates.append((name, width, height, fits, slack))

    if orientation in ("portrait", "landscape"):
        name, width, height, _, _ = next(c for c in candidates if c[0] == orientation)
        return name, width, height

    portrait, landscape = candidates
    if portrait[3] != landscape[3]:
        chosen = portrait if portrait[3] else landscape
    else:
        chosen = landscape if landscape[4] >= portrait[4] else portrait
    return chosen[0], chosen[1], chosen[2]


def normalize_sheet(raw, errors: list[str]) -> SheetSettings:
    src = _mapping(raw)

    page_size = str(src.get("pageSize") or "a4").strip().lower()
    if page_size not in PAGE_SIZE_CHOICES:
        errors.append("sheet.pageSize must be a4 or letter")
        page_size = "a4"

    orientation = str(src.get("orientation") or "auto").strip().lower()
    if orientation not in ORIENTATIONS:
        errors.append("sheet.orientation must be auto, portrait, or landscape")
        orientation = "auto"

    legacy_height = parse_number("sheet.stickerHeightMm", src.get("stickerHeightMm"), errors, 1, 25)
    sheet = SheetSettings(
        page_size=page_size,
        margin_mm=parse_number("sheet.marginMm", src.get("marginMm"), errors, 0, 8),
        gutter_mm=parse_number("sheet.gutterMm", src.get("gutterMm"), errors, 0, 4),
        sticker_width_mm=parse_number("sheet.stickerWidthMm", src.get("stickerWidthMm"), errors, 1, 70),
        top_sticker_height_mm=parse_number(
            "sheet.topStickerHeightMm", src.get("topStickerHeightMm"), errors, 1, legacy_height
        ),
        front_sticker_height_mm=parse_number(
            "sheet.frontStickerHeightMm", src.get("frontStickerHeightMm"), errors, 1, 40
        ),
        corner_radius_mm=parse_number("sheet.cornerRadiusMm", src.get("cornerRadiusMm"), errors, 0, 2),
        columns=parse_int("sheet.columns", src.get("columns"), errors, 1, 10, 2),
    )

    min_height = max(sheet.top_sticker_height_mm, sheet.front_sticker_height_mm)
    sheet.orientation, sheet.page_width_mm, sheet.page_height_mm = choose_orientation(
        page_size, orientation, sheet.margin_mm, sheet.grid_width_mm, min_height
    )
    return sheet


def normalize_debug(raw, errors: list[str]) -> DebugGuides:
    src = _mapping(raw)
    return DebugGuides(
        left_mm=parse_number("debug.leftMm", src.get("leftMm"), errors, -10000, 10),
        right_from_right_mm=parse_number("debug.rightFromRightMm", src.get("rightFromRightMm"), errors, -10000, 40),
        center_horizontal=src.get("centerHorizontal") is not False,
    )


def normalize_defaults(raw, errors: list[str], base_dir: Path) -> StickerDefaults:
    src = _mapping(raw)
    return StickerDefaults(
        logo=resolve_optional_path(src.get("logo"), base_dir),
        logo_offset_x_mm=parse_number("defaults.logoOffsetXMm", src.get("logoOffsetXMm"), errors, -1000, 0),
        logo_offset_y_mm=parse_number("defaults.logoOffsetYMm", src.get("logoOffsetYMm"), errors, -1000, 0),
        logo_max_width_mm=parse_number("defaults.logoMaxWidthMm", src.get("logoMaxWidthMm"), errors, 0.1, 28),
        logo_max_height_mm=parse_number("defaults.logoMaxHeightMm", src.get("logoMaxHeightMm"), errors, 0.1, 18),
        logo_scale=parse_number("defaults.logoScale", src.get("logoScale"), errors, 0.1, 1),
        gradient=parse_gradient("defaults", src, errors, DEFAULT_GRADIENT),
        gradient_width_mm=parse_number("defaults.gradientWidthMm", src.get("gradientWidthMm"), errors, 0, 34),
        art_scale=parse_number("defaults.artScale", src.get("artScale"), errors, 0.1, 1),
    )


def normalize_text_overlays(label: str, raw, errors: list[str], base_dir: Path) -> list[TextOverlay]:
    overlays: list[TextOverlay] = []

    for i, item in enumerate(raw if isinstance(raw, list) else []):
        prefix = f"{label}[{i}]"
        if not isinstance(item, dict):
            errors.append(f"{prefix} must be an object")
            continue

        font_path = resolve_optional_path(item.get("fontPath"), base_dir)
        if font_path and not font_path.exists():
            errors.append(f"{prefix}.fontPath does not exist: {font_path}")

        background_raw = item.get("background", item.get("backgroundColor"))
        background = ""
        if not _is_blank(background_raw):
            background = parse_color(f"{prefix}.background", background_raw, errors, "#ffffff")

        align = str(item.get("align") or "left").strip().lower()
        if align not in ALIGNMENTS:
            errors.append(f"{prefix}.align must be one of: {', '.join(ALIGNMENTS)}")
            align = "left"

        overlays.append(
            TextOverlay(
                text=str(item.get("text") or "").strip(),
                x_mm=parse_number(f"{prefix}.xMm", item.get("xMm"), errors, -10000, 0),
                y_mm=parse_number(f"{prefix}.yMm", item.get("yMm"), errors, -10000, 0),
                font_size_mm=parse_number(f"{prefix}.fontSizeMm", item.get("fontSizeMm"), errors, 0.1, 3.6),
                padding_mm=parse_number(f"{prefix}.paddingMm", item.get("paddingMm"), errors, 0, 1),
                font=str(item.get("font") or "").strip(),
                font_path=font_path,
                color=parse_color(f"{prefix}.color", item.get("color", "#000000"), errors, "#000000"),
                background=background,
                align=align,
            )
        )

    return overlays


def normalize_stickers(raw, defaults: StickerDefaults, errors: list[str], base_dir: Path) -> list[Sticker]:
    stickers: list[Sticker] = []

    for i, item in enumerate(raw if isinstance(raw, list) else []):
        src = _mapping(item)
        prefix = f"stickers[{i}]"

        kind = str(src.get("kind") or "top").strip().lower()
        if kind not in STICKER_KINDS:
            errors.append(f'{prefix}.kind must be "top" or "front"')
            kind = "top"

        logo = resolve_optional_path(src.get("logo"), base_dir) if src.get("logo") else defaults.logo
        art = resolve_optional_path(src.get("art"), base_dir)
        if logo and not logo.exists():
            errors.append(f"{prefix}.logo does not exist: {logo}")
        if art and not art.exists():
            errors.append(f"{prefix}.art does not exist: {art}")

        stickers.append(
            Sticker(
                name=str(src.get("name") or "").strip(),
                kind=kind,
                logo=logo,
                art=art,
                logo_offset_x_mm=parse_number(
                    f"{prefix}.logoOffsetXMm", src.get("logoOffsetXMm"), errors, -1000, defaults.logo_offset_x_mm
                ),
                logo_offset_y_mm=parse_number(
                    f"{prefix}.logoOffsetYMm", src.get("logoOffsetYMm"), errors, -1000, defaults.logo_offset_y_mm
                ),
                logo_max_width_mm=parse_number(
                    f"{prefix}.logoMaxWidthMm", src.get("logoMaxWidthMm"), errors, 0.1, defaults.logo_max_width_mm
                ),
                logo_max_height_mm=parse_number(
                    f"{prefix}.logoMaxHeightMm", src.get("logoMaxHeightMm"), errors, 0.1, defaults.logo_max_height_mm
                ),
                logo_scale=parse_number(f"{prefix}.logoScale", src.get("logoScale"), errors, 0.1, defaults.logo_scale),
                art_offset_x_mm=parse_number(f"{prefix}.artOffsetXMm", src.get("artOffsetXMm"), errors, -1000, 0),
                art_offset_y_mm=parse_number(f"{prefix}.artOffsetYMm", src.get("artOffsetYMm"), errors, -1000, 0),
                art_scale=parse_number(f"{prefix}.artScale", src.get("artScale"), errors, 0.1, defaults.art_scale),
                gradient=parse_gradient(prefix, src, errors, defaults.gradient),
                gradient_width_mm=parse_number(
                    f"{prefix}.gradientWidthMm", src.get("gradientWidthMm"), errors, 0, defaults.gradient_width_mm
                ),
                text_overlays=normalize_text_overlays(f"{prefix}.textOverlays", src.get("textOverlays"), errors, base_dir),
            )
        )

    return stickers


def normalize_sticker_config(raw, base_dir: str | Path) -> tuple[StickerSheetConfig, list[str]]:
    errors: list[str] = []
    base_dir = Path(base_dir)
    root = _mapping(raw)

    version = parse_int("version", root.get("version"), errors, 1, 1000, 1)
    sheet = normalize_sheet(root.get("sheet"), errors)
    debug = normalize_debug(root.get("debug"), errors)
    defaults = normalize_defaults(root.get("defaults"), errors, base_dir)
    stickers = normalize_stickers(root.get("stickers"), defaults, errors, base_dir)

    if not stickers:
        errors.append("stickers must be a non-empty array")

    # true size only; running out of height just means more pages
    max_height = max(sheet.top_sticker_height_mm, sheet.front_sticker_height_mm)
    if sheet.grid_width_mm > sheet.usable_width_mm + EPSILON:
        errors.append(
            f"Grid too wide for page at true size ({_format_mm(sheet.grid_width_mm)}mm > "
            f"{_format_mm(sheet.usable_width_mm)}mm usable). Reduce columns/sticker width/gutter/margins."
        )
    if max_height > sheet.usable_height_mm + EPSILON:
        errors.append(
            f"Sticker too tall for page at true size ({_format_mm(max_height)}mm > "
            f"{_format_mm(sheet.usable_height_mm)}mm usable). Reduce sticker height or margins."
        )

    return StickerSheetConfig(version, sheet, debug, defaults, stickers), errors


def load_sticker_config(text: str, base_dir: str | Path) -> StickerSheetConfig:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", header="") from e

    config, errors = normalize_sticker_config(raw, base_dir)
    if errors:
        raise ConfigError(errors)
    return config


def pack_sticker_pages(config: StickerSheetConfig) -> list[StickerPage]:
    """
    Place stickers top-down in columns. Each sticker goes into the column that
    would be left with the least room (tightest fit); when no column has room a
    new page starts. Stickers with nothing to draw are skipped.
    """
    sheet = config.sheet
    columns = sheet.columns
    origin_x = sheet.margin_mm + (sheet.usable_width_mm - sheet.grid_width_mm) / 2
    column_x = [origin_x + c * (sheet.sticker_width_mm + sheet.gutter_mm) for c in range(columns)]
    page_top = sheet.page_height_mm - sheet.margin_mm

    pages: list[StickerPage] = []
    current = StickerPage()
    cursors = [page_top] * columns

    for sticker in config.stickers:
        if not sticker.is_renderable():
            continue

        height = sheet.height_for(sticker.kind)
        if height > sheet.usable_height_mm + EPSILON:
            raise ConfigError(
                f"Sticker height {height:g}mm is too tall for the page's usable height "
                f"({sheet.usable_height_mm:g}mm).",
                header="",
            )

        best_col = None
        best_remaining = math.inf
        for col, top in enumerate(cursors):
            remaining = top - height - sheet.margin_mm
            if remaining < -EPSILON:
                continue
            if remaining < best_remaining:
                best_col, best_remaining = col, remaining

        if best_col is None:
            pages.append(current)
            current = StickerPage()
            cursors = [page_top] * columns
            best_col = 0

        y = cursors[best_col] - height
        current.stickers.append(
            PackedSticker(MmRect(column_x[best_col], y, sheet.sticker_width_mm, height), sticker)
        )
        cursors[best_col] = y - sheet.gutter_mm

    if current.stickers or not pages:
        pages.append(current)
    return pages


# Rendering. Rects are in mm with y growing upward; coordinates may go negative
# (offsets), so they are converted with MM_TO_PT directly rather than mm_to_pt.


def _pt(mm: float) -> float:
    return mm * MM_TO_PT


class StickerImages:
    """Decoded sticker images keyed by path."""

    def __init__(self):
        self._images: dict[Path, Image.Image] = {}

    def get(self, path: Path) -> Image.Image:
        cached = self._images.get(path)
        if cached is not None:
            return cached
        try:
            with Image.open(path) as img:
                img.load()
                decoded = img.convert("RGBA")
        except (OSError, UnidentifiedImageError) as e:
            raise AssetError(f"Unable to read image {path}: {e}") from e
        self._images[path] = decoded
        return decoded


def paste_cover(canvas: Image.Image, art: Image.Image, scale: float, offset_x_mm: float, offset_y_mm: float):
    """Scale art to cover the canvas, centred, then shift by the offsets (y up)."""
    factor = max(canvas.width / art.width, canvas.height / art.height) * scale
    size = (max(1, round(art.width * factor)), max(1, round(art.height * factor)))
    resized = art.resize(size, resample=Image.Resampling.LANCZOS)
    x = round((canvas.width - size[0]) / 2 + offset_x_mm * PX_PER_MM)
    y = round((canvas.height - size[1]) / 2 - offset_y_mm * PX_PER_MM)
    canvas.paste(resized, (x, y), resized)


def gradient_band_mask(size: tuple[int, int], width_mm: float, solid_mm: float = GRADIENT_SOLID_MM) -> Image.Image:
    """Opaque for solid_mm from the left edge, then fading out linearly up to width_mm."""
    width, height = size
    band = max(0, min(round(width_mm * PX_PER_MM), width))
    solid = max(0, min(round(solid_mm * PX_PER_MM), band))

    mask = Image.new("L", size, 0)
    if solid:
        mask.paste(255, (0, 0, solid, height))
    if band > solid:
        fade = Image.linear_gradient("L").rotate(-90).resize((band - solid, height))
        mask.paste(fade, (solid, 0))
    return mask


def rounded_mask(size: tuple[int, int], radius_mm: float) -> Image.Image:
    mask = Image.new("L", size, 0)
    radius = max(0, round(radius_mm * PX_PER_MM))
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, size[0] - 1, size[1] - 1), radius=radius, fill=255)
    return mask


def render_sticker_background(
    sticker: Sticker, rect: MmRect, corner_radius_mm: float, art: Image.Image | None
) -> Image.Image:
    size = (max(1, round(rect.width * PX_PER_MM)), max(1, round(rect.height * PX_PER_MM)))
    base: RGB = hex_to_rgb(sticker.gradient) if sticker.kind == "top" else WHITE

    canvas = Image.new("RGBA", size, (*base, 255))
    if art is not None:
        paste_cover(canvas, art, sticker.art_scale, sticker.art_offset_x_mm, sticker.art_offset_y_mm)
    canvas = canvas.convert("RGB")

    if sticker.kind == "top":
        band = Image.new("RGB", size, base)
        canvas = Image.composite(band, canvas, gradient_band_mask(size, sticker.gradient_width_mm))

    out = Image.new("RGB", size, WHITE)
    out.paste(canvas, (0, 0), rounded_mask(size, corner_radius_mm))
    return out


def draw_image_mm(pdf_doc: FPDF, img: Image.Image, rect: MmRect):
    pdf_doc.image(
        img,
        x=_pt(rect.x),
        y=pdf_doc.h - _pt(rect.y + rect.height),
        w=_pt(rect.width),
        h=_pt(rect.height),
    )


def contain_rect(img: Image.Image, target: MmRect) -> MmRect:
    scale = min(target.width / img.width, target.height / img.height)
    width, height = img.width * scale, img.height * scale
    return MmRect(target.x + (target.width - width) / 2, target.y + (target.height - height) / 2, width, height)


def logo_target(sticker: Sticker, safe: MmRect) -> MmRect:
    area_width = min(safe.width * 0.45, sticker.logo_max_width_mm + 6)
    return MmRect(
        safe.x + sticker.logo_offset_x_mm,
        safe.y + sticker.logo_offset_y_mm,
        min(sticker.logo_max_width_mm * sticker.logo_scale, area_width),
        min(sticker.logo_max_height_mm * sticker.logo_scale, safe.height),
    )


class OverlayFonts:
    def __init__(self, pdf_doc: FPDF):
        self.pdf_doc = pdf_doc
        self._families: dict[Path, str] = {}

    def resolve(self, overlay: TextOverlay) -> tuple[str, str]:
        if overlay.font_path is None:
            return STANDARD_FONTS.get(overlay.font.lower().replace(" ", "-"), ("helvetica", ""))

        family = self._families.get(overlay.font_path)
        if family is None:
            family = f"overlay{len(self._families)}"
            try:
                self.pdf_doc.add_font(family, "", str(overlay.font_path))
            except (OSError, TTLibError, RuntimeError) as e:
                raise AssetError(f"Unable to load font {overlay.font_path}: {e}") from e
            self._families[overlay.font_path] = family
        return family, ""


def draw_text_overlays(pdf_doc: FPDF, fonts: OverlayFonts, rect: MmRect, sticker: Sticker):
    active = [o for o in sticker.text_overlays if o.text]
    if not active:
        return

    with pdf_doc.rect_clip(_pt(rect.x), pdf_doc.h - _pt(rect.y + rect.height), _pt(rect.width), _pt(rect.height)):
        for overlay in active:
            family, style = fonts.resolve(overlay)
            size = _pt(overlay.font_size_mm)
            padding = _pt(overlay.padding_mm)
            line_height = size * 1.2

            pdf_doc.set_font(family, style, size)
            lines = overlay.text.replace("\r\n", "\n").split("\n")
            widths = [text_width(pdf_doc, line) for line in lines]
            box_width = max(widths, default=0) + padding * 2
            box_height = len(lines) * line_height + padding * 2

            x = _pt(rect.x + overlay.x_mm)
            y = _pt(rect.y + rect.height - overlay.y_mm) - box_height
            if overlay.background:
                draw_rect(pdf_doc, x, y, box_width, box_height, fill=hex_to_rgb(overlay.background))

            inner_width = box_width - padding * 2
            baseline = y + box_height - padding - size
            for line, width in zip(lines, widths):
                line_x = x + padding
                if overlay.align == "center":
                    line_x += (inner_width - width) / 2
                elif overlay.align == "right":
                    line_x += inner_width - width
                draw_text(
                    pdf_doc, line, line_x, baseline, size, color=hex_to_rgb(overlay.color), family=family, style=style
                )
                baseline -= line_height


def draw_debug_guides(pdf_doc: FPDF, rect: MmRect, debug: DebugGuides):
    red: RGB = (255, 0, 0)
    bottom, top = _pt(rect.y), _pt(rect.y + rect.height)
    for x in (rect.x + debug.left_mm, rect.x + rect.width - debug.right_from_right_mm):
        draw_line(pdf_doc, _pt(x), bottom, _pt(x), top, color=red, thickness=0.9)
    if debug.center_horizontal:
        y = _pt(rect.y + rect.height / 2)
        draw_line(pdf_doc, _pt(rect.x), y, _pt(rect.x + rect.width), y, color=red, thickness=0.9)


def draw_page_corner_marks(pdf_doc: FPDF, inset_mm: float = 0.7, length_mm: float = 7):
    inset, length = mm_to_pt(inset_mm), mm_to_pt(length_mm)
    for x, dx in ((inset, 1), (pdf_doc.w - inset, -1)):
        for y, dy in ((inset, 1), (pdf_doc.h - inset, -1)):
            draw_line(pdf_doc, x, y, x + length * dx, y, thickness=0.7)
            draw_line(pdf_doc, x, y, x, y + length * dy, thickness=0.7)


def build_sticker_sheet_pdf(config: StickerSheetConfig, debug: bool = False) -> tuple[FPDF, list[StickerPage]]:
    sheet = config.sheet
    pages = pack_sticker_pages(config)

    pdf_doc = new_document(mm_to_pt(sheet.page_width_mm), mm_to_pt(sheet.page_height_mm))
    images = StickerImages()
    fonts = OverlayFonts(pdf_doc)

    for page in pages:
        pdf_doc.add_page()

        for packed in page.stickers:
            rect, sticker = packed.rect, packed.sticker
            art = images.get(sticker.art) if sticker.art else None
            draw_image_mm(pdf_doc, render_sticker_background(sticker, rect, sheet.corner_radius_mm, art), rect)

            # outline to cut along
            draw_rect(
                pdf_doc,
                _pt(rect.x),
                _pt(rect.y),
                _pt(rect.width),
                _pt(rect.height),
                border=(200, 200, 200),
                border_width=0.25,
                round_corners=_pt(sheet.corner_radius_mm),
            )

            if sticker.logo:
                logo = images.get(sticker.logo)
                target = logo_target(sticker, rect.inset(STICKER_PADDING_MM))
                draw_image_mm(pdf_doc, logo, contain_rect(logo, target))

            if sticker.kind == "top":
                draw_text_overlays(pdf_doc, fonts, rect, sticker)

            if debug:
                draw_debug_guides(pdf_doc, rect, config.debug)

        draw_page_corner_marks(pdf_doc)

    return pdf_doc, pages
