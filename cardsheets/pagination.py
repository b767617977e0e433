from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence, TypeVar

from .cards import (
    CardFaces,
    CardRecord,
    FaceRef,
    PageBreak,
    PrintEntry,
    PrintItem,
    resolve_card_faces,
)

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Slot:
    face: FaceRef


@dataclass
class Page:
    slots: list[Slot | None]
    is_back: bool = False

    def filled(self) -> list[Slot]:
        return [s for s in self.slots if s is not None]


def cards_to_add(num_cards: int, cards_per_page: int = 9) -> int:
    """How many extra cards would fill the last page completely."""
    remainder = num_cards % cards_per_page
    if remainder == 0:
        return 0
    return cards_per_page - remainder


def apply_page_breaks(
    items: Iterable[PrintEntry], cards_per_page: int
) -> list[PrintItem | None]:
    output: list[PrintItem | None] = []

    for item in items:
        if isinstance(item, PageBreak):
            output.extend([None] * cards_to_add(len(output), cards_per_page))
            continue
        output.append(item)

    return output


def chunk_cards(items: Sequence[T], chunk_size: int) -> list[list[T]]:
    return [list(items[i : i + chunk_size]) for i in range(0, len(items), chunk_size)]


def fill_slots(
    entries: Sequence[T | None], size: int, map_fn: Callable[[T], U | None]
) -> list[U | None]:
    slots: list[U | None] = [None] * size
    for i, entry in enumerate(entries[:size]):
        if entry is not None:
            slots[i] = map_fn(entry)
    return slots


def mirror_rows(slots: Sequence[T], grid_size: int) -> list[T]:
    """Reverse each row so a sheet flipped on its short edge lines up front to back."""
    mirrored: list[T] = []
    for row in chunk_cards(slots, grid_size):
        mirrored.extend(reversed(row))
    return mirrored


def build_page_plan(entries: Sequence[CardFaces | None], grid_size: int) -> list[Page]:
    cards_per_page = grid_size * grid_size
    pages: list[Page] = []

    for chunk in chunk_cards(entries, cards_per_page):
        pages.append(Page(fill_slots(chunk, cards_per_page, lambda e: Slot(e.front))))

        if any(e is not None and e.back is not None for e in chunk):
            back_slots = fill_slots(
                chunk, cards_per_page, lambda e: Slot(e.back) if e.back else None
            )
            pages.append(Page(mirror_rows(back_slots, grid_size), is_back=True))

    if not pages:
        pages.append(Page([None] * cards_per_page))

    return pages


def paginate(
    items: Iterable[PrintEntry],
    grid_size: int,
    card_index: Mapping[str, CardRecord] | None = None,
) -> list[Page]:
    padded = apply_page_breaks(items, grid_size * grid_size)
    entries = [resolve_card_faces(i, card_index) if i else None for i in padded]
    return build_page_plan(entries, grid_size)
