from pathlib import Path

import pytest

from cardsheets.annotate import cut_mark_segments, page_label_text, ruler_ticks
from cardsheets.config import SheetOptions, resolve_name_and_output, resolve_output_path
from cardsheets.errors import ConfigError
from cardsheets.fonts import (
    DEFAULT_FONT_FILES,
    Override,
    Suppressed,
    build_font_sheet_pdf,
    parse_font_overrides,
    resolve_font_paths,
)
from cardsheets.layout import compute_grid_layout
from cardsheets.ruler_grid import build_ruler_grid_pdf, grid_positions, is_major


def test_ruler_grid_pdf():
    pdf_doc = build_ruler_grid_pdf("letter", major_cm=2, minor_mm=2.5)

    assert len(pdf_doc.pages) == 1
    assert pdf_doc.output().startswith(b"%PDF")


def test_ruler_grid_rejects_bad_spacing():
    with pytest.raises(ValueError):
        build_ruler_grid_pdf(minor_mm=0)


def test_grid_positions():
    assert grid_positions(30, 10) == [0, 10, 20, 30]
    assert len(grid_positions(210, 0.1)) == 2101
    assert is_major(20.0, 10)
    assert not is_major(25.0, 10)


def test_font_sheet_without_fonts_falls_back(tmp_path):
    pdf_doc, warnings = build_font_sheet_pdf(tmp_path)

    assert len(warnings) == len(DEFAULT_FONT_FILES)
    assert all("falling back" in w for w in warnings)
    assert pdf_doc.output().startswith(b"%PDF")


def test_font_overrides(tmp_path):
    choices = parse_font_overrides({"title": None, "body": "fonts/Body.ttf", "flavor": "  "}, tmp_path)

    assert choices == {"title": Suppressed(), "body": Override(tmp_path / "fonts" / "Body.ttf")}

    paths, warnings = resolve_font_paths(tmp_path, choices)
    assert paths["title"] is None
    assert paths["body"] is None
    assert len(warnings) == len(DEFAULT_FONT_FILES) - 1
    assert any(w.startswith('Font override for "body" not found') for w in warnings)


def test_font_found_in_fonts_dir(tmp_path):
    font = tmp_path / "Exo2-Bold.ttf"
    font.write_bytes(b"not really a font")

    paths, warnings = resolve_font_paths(tmp_path)
    assert paths["title"] == font.resolve()
    assert not any('"title"' in w for w in warnings)

    # a broken file is reported and replaced by the fallback
    _, warnings = build_font_sheet_pdf(tmp_path)
    assert any(w.startswith('Could not embed font "title"') for w in warnings)


def test_cut_marks_and_rulers():
    options = SheetOptions()
    layout = compute_grid_layout(options.card_width_pt, options.card_height_pt, options.gap_pt, 3, *options.page_size_pt)

    # six distinct edges per axis, a mark at each end
    assert len(cut_mark_segments(layout, options.cut_mark_length_pt)) == 24
    assert [(t.mm, t.label) for t in ruler_ticks(20)] == [(0, "0"), (5, None), (10, "1"), (15, None), (20, "2")]
    assert page_label_text("deck", 2, 5) == "deck - Page 2/5"


def test_resolve_output_path():
    assert resolve_output_path("out/sheet", "ignored") == Path("out/sheet.pdf").resolve()
    assert resolve_output_path("sheet.PDF", "ignored") == Path("sheet.PDF").resolve()
    assert resolve_output_path(None, "Rise of the Keyraken") == Path("rise-of-the-keyraken.pdf").resolve()
    assert resolve_output_path("", "!!!", "fallback") == Path("fallback.pdf").resolve()


def test_resolve_name_and_output():
    assert resolve_name_and_output("decks/Mono Lore") == ("Mono Lore", Path("decks/Mono Lore.pdf").resolve())
    assert resolve_name_and_output("x.pdf") == ("x", Path("x.pdf").resolve())
    assert resolve_name_and_output(None) == ("deck", Path("deck.pdf").resolve())


def test_config_error_formatting():
    assert str(ConfigError(["a", "b"])) == "Invalid config:\n- a\n- b"
    assert str(ConfigError("just this", header="")) == "just this"
