import pytest
from PIL import Image

from cardsheets.cards import PAGE_BREAK, CardRecord, FaceRef, PrintItem
from cardsheets.config import SheetOptions
from cardsheets.errors import AssetError
from cardsheets.images import MissingCardImageError
from cardsheets.pdf import write_pdf
from cardsheets.pdf_builder import build_proxy_pdf, format_issue_summary, memoize_fetcher, plural
from cardsheets.render import placeholder_lines, placeholder_text, round_corners


def fetcher_for(path, calls=None):
    def fetch(face):
        if calls is not None:
            calls.append(face.image_src)
        if not face.image_src:
            raise MissingCardImageError(face.label())
        return path

    return fetch


def test_issue_summary_dedupes_and_counts():
    summary = format_issue_summary("Problems:", ["b", "a", "b", None])

    assert summary.splitlines() == ["Problems:", "- b (x2)", "- Unknown error", "- a"]


def test_issue_summary_is_capped():
    summary = format_issue_summary("Problems:", [f"issue {i:03d}" for i in range(60)])
    lines = summary.splitlines()

    assert len(lines) == 52
    assert lines[-1] == "- ...and 10 more"


def test_plural():
    assert plural(1, "page") == "1 page"
    assert plural(3, "page") == "3 pages"


def test_memoized_fetcher_remembers_failures():
    calls = []
    fetch = memoize_fetcher(fetcher_for(None, calls))
    face = FaceRef(CardRecord(name="Ghost"), "", "front")

    for _ in range(3):
        with pytest.raises(MissingCardImageError):
            fetch(face)
    assert calls == [""]


def test_builds_front_and_back_pages(card_png, tmp_path, capsys):
    items = [PrintItem(CardRecord(name="Quest", code="q1", image_src="q1.png", back_image_src="q1b.png"))]
    items += [PrintItem(CardRecord(name=f"Card {i}", code=f"c{i}", image_src=f"c{i}.png")) for i in range(9)]
    calls = []

    pdf_doc = build_proxy_pdf(items, SheetOptions(label="Test"), fetcher_for(card_png, calls))

    # first sheet has a back, the second sheet (one card) does not
    assert len(pdf_doc.pages) == 3
    assert len(calls) == len(set(calls)) == 11
    assert "Creating PDF with 3 page(s)." in capsys.readouterr().out

    output = write_pdf(pdf_doc, tmp_path / "out" / "test.pdf")
    assert output.read_bytes().startswith(b"%PDF")


def test_page_break_starts_new_sheet(card_png):
    items = [PrintItem(CardRecord(name="A", image_src="a.png")), PAGE_BREAK, PrintItem(CardRecord(name="B", image_src="b.png"))]

    pdf_doc = build_proxy_pdf(items, SheetOptions(), fetcher_for(card_png))

    assert len(pdf_doc.pages) == 2


def test_empty_input_still_makes_a_page(card_png):
    assert len(build_proxy_pdf([], SheetOptions(), fetcher_for(card_png)).pages) == 1


def broken_download(path):
    def fetch(face):
        if not face.image_src:
            raise MissingCardImageError(face.label())
        if face.image_src.startswith("broken"):
            raise AssetError(f"Failed to download {face.image_src}: HTTP 404")
        return path

    return fetch


def test_strict_mode_lists_every_failed_download(card_png):
    items = [PrintItem(CardRecord(name=n, image_src=f"broken-{n}.png")) for n in ("Ghost", "Ghost", "Wraith")]
    items.append(PrintItem(CardRecord(name="Real", image_src="r.png")))

    with pytest.raises(AssetError) as exc:
        build_proxy_pdf(items, SheetOptions(), broken_download(card_png))

    message = exc.value.message
    assert message.startswith("Proxy generation failed with 2 image issues:")
    assert "broken-Ghost.png" in message
    assert "broken-Wraith.png" in message


def test_strict_mode_draws_placeholders_for_cards_without_art(card_png, capsys):
    items = [PrintItem(CardRecord(name=n)) for n in ("NoArt", "NoArt", "Blank")]
    items.append(PrintItem(CardRecord(name="Real", image_src="r.png")))

    pdf_doc = build_proxy_pdf(items, SheetOptions(), broken_download(card_png))

    err = capsys.readouterr().err
    assert "2 cards missing image sources; rendering placeholders" in err
    assert "NoArt [front]" in err
    assert pdf_doc.output().startswith(b"%PDF")


def test_strict_mode_still_fails_on_download_when_art_is_also_missing(card_png):
    items = [PrintItem(CardRecord(name="NoArt")), PrintItem(CardRecord(name="Gone", image_src="broken.png"))]

    with pytest.raises(AssetError) as exc:
        build_proxy_pdf(items, SheetOptions(), broken_download(card_png))

    message = exc.value.message
    assert message.startswith("Proxy generation failed with 1 image issue:")
    assert "broken.png" in message
    assert "NoArt" not in message


def test_placeholders_replace_failed_downloads(card_png, capsys):
    items = [
        PrintItem(CardRecord(name="Gone", image_src="broken.png")),
        PrintItem(CardRecord(name="Real", image_src="r.png")),
    ]

    pdf_doc = build_proxy_pdf(items, SheetOptions(), broken_download(card_png), placeholders=True)

    assert len(pdf_doc.pages) == 1
    assert "1 card image issue; rendering placeholders" in capsys.readouterr().err
    assert pdf_doc.output().startswith(b"%PDF")


def test_placeholder_lines():
    face = FaceRef(CardRecord(name="Keyraken", image_src="KFA01-001.png"), "KFA01-001.png", "front")

    assert placeholder_lines(face) == ["Keyraken", "File: KFA01-001.png"]
    assert placeholder_lines(None) == ["Missing image"]


def test_placeholder_names_the_back_image():
    card = CardRecord(name="Quest", image_src="front.png", back_image_src="back.png")

    assert placeholder_lines(FaceRef(card, "back.png", "back")) == ["Quest", "File: back.png"]


def test_placeholder_text_is_two_clipped_lines():
    card = CardRecord(name="The Ring Goes South Through the Mines of Moria", image_src="a-very-long-file-name.png")

    lines = placeholder_text(FaceRef(card, card.image_src, "front"), 20, len)

    assert len(lines) == 2
    assert lines[0] == "The Ring Goes Sou..."
    assert lines[1].startswith("File: ")
    assert lines[1].endswith("...")
    assert all(len(line) <= 20 for line in lines)


def test_card_art_gets_rounded_corners():
    img = Image.new("RGB", (200, 280), (200, 30, 30))

    rounded = round_corners(img)

    assert rounded.mode == "RGBA"
    assert rounded.size == img.size
    assert rounded.getpixel((0, 0))[3] == 0
    assert rounded.getpixel((199, 279))[3] == 0
    assert rounded.getpixel((100, 140)) == (200, 30, 30, 255)
    assert rounded.getpixel((100, 0))[3] == 255
