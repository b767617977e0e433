"""
Marvel Champions style font lookup and the font sample sheet.

Each logical font key can be left to the default lookup in the fonts directory,
pointed at an explicit file, or suppressed (always use the Helvetica fallback).
"""

from dataclasses import dataclass
from pathlib import Path

from fontTools.ttLib import TTLibError
from fpdf import FPDF

from .pdf import RGB, draw_rect, draw_text, new_document
from .units import mm_to_pt, page_size_pt


@dataclass(frozen=True)
class Default:
    pass


@dataclass(frozen=True)
class Override:
    path: Path


@dataclass(frozen=True)
class Suppressed:
    pass


type FontChoice = Default | Override | Suppressed


@dataclass(frozen=True)
class PdfFont:
    family: str
    bold: bool = False


DEFAULT_FONT_FILES: dict[str, list[str]] = {
    "title": ["Exo2-Bold.ttf", "Exo2-Bold.otf", "Exo2[wght].ttf", "Exo 2 - Bold.ttf"],
    "statNumbers": ["ElektraMediumPro-BoldItalic.ttf", "Elektra Medium Pro - Bold Italic.ttf"],
    "statAbbr": ["FuturaLTBT-ExtraBlack.ttf", "Futura LT BT - ExtraBlack.ttf"],
    "heroAlterEgo": ["FuturaCondensedBT-Medium.ttf", "Futura Condensed BT - Medium.ttf"],
    "traits": ["KomikaTitle-Regular.ttf", "Komika Title - Regular.ttf"],
    "abilityNames": ["AvenirNextLTPro-Italic.ttf", "Avenir Next LT Pro - Italic.ttf"],
    "abilityTypes": ["AvenirNextLTPro-Demi.ttf", "Avenir Next LT Pro - Demi.ttf"],
    "body": ["AvenirNextLTPro-Regular.ttf", "AvenirNextLTPro-Regular.otf", "Avenir Next LT Pro - Regular.ttf"],
    "flavor": ["KomikaTextTight-Italic.ttf", "Komika Text Tight - Italic.ttf"],
    "handSizeHp": ["FuturaCondensedBT-Medium.ttf", "Futura Condensed BT - Medium.ttf"],
    "mouseprint": ["AvenirNextCondensed-Medium.ttf", "AvenirNextCondensed-Medium.otf"],
}

# keys whose Helvetica fallback is bold
BOLD_FALLBACKS = {"title", "statNumbers", "statAbbr", "heroAlterEgo", "traits", "abilityTypes", "handSizeHp"}

FONT_SAMPLES = [
    ("Title", "title", "CYCLOPS - EXO 2 BOLD"),
    ("Stat Numbers", "statNumbers", "0123456789"),
    ("Stat Abbreviations", "statAbbr", "ATK  THW  DEF"),
    ("Hero/Alter-Ego", "heroAlterEgo", "HERO / ALTER-EGO"),
    ("Traits", "traits", "MUTANT • X-MEN"),
    ("Ability Names", "abilityNames", "TACTICAL GENIUS"),
    ("Ability Types", "abilityTypes", "ACTION • RESPONSE • INTERRUPT"),
    ("Body", "body", "Draw 1 card. If you are in hero form, ready an ally."),
    ("Flavour", "flavor", "“To me, my X-Men!”"),
    ("Hand Size / HP", "handSizeHp", "HAND 5   •   HP 12"),
    ("Mouseprint", "mouseprint", "ILLUS. JOHN DOE • © MARVEL • 001"),
]


def find_first_existing(fonts_dir: Path | None, candidates: list[str]) -> Path | None:
    for file_name in candidates:
        candidate = (fonts_dir / file_name) if fonts_dir else Path(file_name)
        if candidate.exists():
            return candidate.resolve()
    return None


def resolve_font_paths(
    fonts_dir: str | Path | None, overrides: dict[str, FontChoice] | None = None
) -> tuple[dict[str, Path | None], list[str]]:
    """Font file per key (None means use the fallback) plus a note for every miss."""
    fonts_dir = Path(fonts_dir).resolve() if fonts_dir else None
    overrides = overrides or {}
    paths: dict[str, Path | None] = {}
    warnings: list[str] = []

    for key, candidates in DEFAULT_FONT_FILES.items():
        match overrides.get(key, Default()):
            case Suppressed():
                paths[key] = None
            case Override(path=path):
                resolved = Path(path).resolve()
                if resolved.exists():
                    paths[key] = resolved
                else:
                    warnings.append(f'Font override for "{key}" not found at: {resolved} (falling back)')
                    paths[key] = None
            case _:
                found = find_first_existing(fonts_dir, candidates)
                paths[key] = found
                if found is None:
                    warnings.append(
                        f'Missing font "{key}" in {fonts_dir or "(no fonts dir)"} '
                        f"(looked for: {', '.join(candidates)}; falling back)"
                    )

    return paths, warnings


def parse_font_overrides(raw: dict, base_dir: Path) -> dict[str, FontChoice]:
    """Config mapping key -> path (relative to the config file) or null to suppress."""
    choices: dict[str, FontChoice] = {}
    for key, value in (raw or {}).items():
        if value is None:
            choices[str(key)] = Suppressed()
            continue
        text = str(value).strip()
        if not text:
            continue
        path = Path(text)
        choices[str(key)] = Override(path if path.is_absolute() else base_dir / path)
    return choices


def register_fonts(pdf_doc: FPDF, font_paths: dict[str, Path | None]) -> tuple[dict[str, PdfFont], list[str]]:
    fonts: dict[str, PdfFont] = {}
    warnings: list[str] = []

    for key, path in font_paths.items():
        fallback = PdfFont("helvetica", bold=key in BOLD_FALLBACKS)
        if path is None:
            fonts[key] = fallback
            continue
        family = f"mc-{key.lower()}"
        try:
            pdf_doc.add_font(family, "", str(path))
        except (OSError, TTLibError, RuntimeError) as e:
            warnings.append(f'Could not embed font "{key}" from {path}: {e} (falling back)')
            fonts[key] = fallback
            continue
        fonts[key] = PdfFont(family)

    return fonts, warnings


def _draw(pdf_doc: FPDF, font: PdfFont, text: str, x_mm: float, y_mm: float, size_mm: float, color: RGB):
    draw_text(
        pdf_doc, text, mm_to_pt(x_mm), mm_to_pt(y_mm), mm_to_pt(size_mm), bold=font.bold, color=color, family=font.family
    )


def build_font_sheet_pdf(
    fonts_dir: str | Path | None = None, overrides: dict[str, FontChoice] | None = None
) -> tuple[FPDF, list[str]]:
    font_paths, warnings = resolve_font_paths(fonts_dir, overrides)

    page_width, page_height = page_size_pt("a4")
    pdf_doc = new_document(page_width, page_height)
    pdf_doc.add_page()

    fonts, embed_warnings = register_fonts(pdf_doc, font_paths)
    warnings.extend(embed_warnings)

    margin = 10
    box_w = page_width / mm_to_pt(1) - margin * 2
    box_h = 21
    gap = 6
    cursor_y = page_height / mm_to_pt(1) - margin

    _draw(pdf_doc, fonts["title"], "Marvel Champions Font Sheet", margin, cursor_y, 10, (26, 26, 26))
    cursor_y -= 14
    _draw(
        pdf_doc,
        fonts["mouseprint"],
        "This page tries to embed the official fonts (falls back to Helvetica when missing).",
        margin,
        cursor_y,
        3.2,
        (51, 51, 51),
    )
    cursor_y -= 10

    for label, key, sample in FONT_SAMPLES:
        if cursor_y - box_h < margin:
            break
        draw_rect(
            pdf_doc,
            mm_to_pt(margin),
            mm_to_pt(cursor_y - box_h),
            mm_to_pt(box_w),
            mm_to_pt(box_h),
            fill=(250, 250, 252),
            border=(38, 38, 46),
            border_width=0.6,
        )
        _draw(pdf_doc, fonts["mouseprint"], label, margin + 3, cursor_y - 5.5, 3.2, (64, 64, 64))
        _draw(pdf_doc, fonts[key], sample, margin + 3, cursor_y - 16.5, 7, (13, 13, 13))
        cursor_y -= box_h + gap

    if warnings:
        note = f"Missing fonts ({len(warnings)}): see console output for details."
        _draw(pdf_doc, fonts["mouseprint"], note, margin, margin, 3.2, (128, 26, 26))
    else:
        _draw(pdf_doc, fonts["mouseprint"], "All fonts embedded.", margin, margin, 3.2, (26, 102, 26))

    return pdf_doc, warnings
