from collections import Counter
from pathlib import Path
from typing import Callable, Iterable, Mapping

import click
from fpdf import FPDF

from .annotate import draw_cut_marks, draw_page_label, draw_rulers
from .cards import CardRecord, FaceRef, PrintEntry
from .config import SheetOptions
from .errors import AssetError
from .images import ImageCache, MissingCardImageError
from .layout import compute_grid_layout
from .pagination import Page, paginate
from .pdf import new_document
from .render import draw_card_background, draw_card_image, draw_missing_image_placeholder
from .units import mm_to_pt

type ImageFetcher = Callable[[FaceRef], Path]

MAX_SUMMARY_LINES = 50


def format_issue_summary(header: str, messages: Iterable[str], max_lines: int = MAX_SUMMARY_LINES) -> str:
    """Deduplicate messages, most frequent first, capped at max_lines distinct entries."""
    counts = Counter(str(m or "Unknown error") for m in messages)
    entries = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))

    lines = [header]
    for message, count in entries[:max_lines]:
        lines.append(f"- {message}" + (f" (x{count})" if count > 1 else ""))
    if len(entries) > max_lines:
        lines.append(f"- ...and {len(entries) - max_lines} more")
    return "\n".join(lines)


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def face_key(face: FaceRef) -> tuple[str, str, str]:
    return (face.card.code or face.card.name, face.face, face.image_src)


def memoize_fetcher(fetch_image: ImageFetcher) -> ImageFetcher:
    """Resolve each distinct face once per document, remembering failures too."""
    results: dict[tuple[str, str, str], Path | AssetError] = {}

    def fetch(face: FaceRef) -> Path:
        key = face_key(face)
        if key not in results:
            try:
                results[key] = fetch_image(face)
            except AssetError as e:
                results[key] = e
        result = results[key]
        if isinstance(result, AssetError):
            raise result
        return result

    return fetch


def preflight_images(pages: list[Page], fetch_image: ImageFetcher) -> tuple[list[str], list[str]]:
    """
    Resolve every distinct face once. Returns (faces with no image source,
    other image problems).
    """
    attempted: set[tuple[str, str, str]] = set()
    missing: list[str] = []
    issues: list[str] = []

    for page in pages:
        for slot in page.filled():
            face = slot.face
            key = face_key(face)
            if key in attempted:
                continue
            attempted.add(key)

            try:
                fetch_image(face)
            except MissingCardImageError:
                missing.append(face.label())
            except AssetError as e:
                issues.append(e.message)

    return missing, issues


def build_proxy_pdf(
    items: Iterable[PrintEntry],
    options: SheetOptions,
    fetch_image: ImageFetcher,
    card_index: Mapping[str, CardRecord] | None = None,
    placeholders: bool = False,
) -> FPDF:
    """
    Lay the items out on N x N pages and return the finished document.

    Faces without any image source are always drawn as labelled boxes. With
    placeholders enabled a failed download or decode is drawn the same way and the
    problems are reported as one warning; otherwise the preflight pass raises an
    AssetError listing every such problem.
    """
    page_width, page_height = options.page_size_pt
    layout = compute_grid_layout(
        options.card_width_pt,
        options.card_height_pt,
        options.gap_pt,
        options.grid_size,
        page_width,
        page_height,
        scale_factor=options.scale_factor,
        fit_to_page=options.fit_to_page,
    )
    pages = paginate(items, options.grid_size, card_index)
    fetch_image = memoize_fetcher(fetch_image)
    total_pages = len(pages)

    missing, issues = preflight_images(pages, fetch_image)
    if issues and not placeholders:
        raise AssetError(
            format_issue_summary(
                f"Proxy generation failed with {plural(len(issues), 'image issue')}:", issues
            )
        )
    if missing:
        click.secho(
            format_issue_summary(
                f"Warning: {plural(len(missing), 'card')} missing image sources; rendering placeholders:", missing
            ),
            err=True,
            fg="yellow",
        )
    if issues:
        click.secho(
            format_issue_summary(
                f"Warning: {plural(len(issues), 'card image issue')}; rendering placeholders:", issues
            ),
            err=True,
            fg="yellow",
        )

    click.echo(f"Creating PDF with {total_pages} page(s).")

    pdf_doc = new_document(page_width, page_height)
    image_cache = ImageCache()
    bleed = min(mm_to_pt(1), layout.scaled_gap / 2)

    for page_number, page in enumerate(pages, start=1):
        pdf_doc.add_page()

        for index, slot in enumerate(page.slots):
            if slot is None:
                continue
            rect = layout.slot_position(index)
            draw_card_background(pdf_doc, rect, bleed)

            try:
                image_path = fetch_image(slot.face)
                draw_card_image(pdf_doc, image_cache.get(image_path), rect)
            except MissingCardImageError:
                draw_missing_image_placeholder(pdf_doc, rect, slot.face)
            except AssetError:
                if not placeholders:
                    raise
                draw_missing_image_placeholder(pdf_doc, rect, slot.face)

        draw_cut_marks(pdf_doc, layout, options.cut_mark_length_pt)
        draw_rulers(pdf_doc)
        label = f"{options.label} (backs)" if page.is_back else options.label
        draw_page_label(pdf_doc, label, page_number, total_pages)

    return pdf_doc
