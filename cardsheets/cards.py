from dataclasses import dataclass, field
from typing import Literal, Mapping, Optional

type Face = Literal["front", "back"]


@dataclass(frozen=True)
class CardRecord:
    name: str
    code: str = ""
    image_src: str = ""
    back_image_src: str = ""
    linked_code: str = ""
    linked_card: Optional["CardRecord"] = None
    double_sided: bool = False
    pack_code: str = ""
    pack_name: str = ""
    position: int | None = None
    set_name: str = ""
    set_number: str = ""
    type: str = ""
    house: str = ""
    rarity: str = ""
    extra: dict = field(default_factory=dict, compare=False, hash=False, repr=False)

    def label(self) -> str:
        if self.name and self.code:
            return f"{self.name} ({self.code})"
        return self.name or (f"code {self.code}" if self.code else "unknown card")


@dataclass(frozen=True)
class PrintItem:
    """One printed copy of a card."""

    card: CardRecord
    skip_back: bool = False


class PageBreak:
    """Marker: pad the current page with empty slots before continuing."""

    def __repr__(self) -> str:
        return "PAGE_BREAK"


PAGE_BREAK = PageBreak()

type PrintEntry = PrintItem | PageBreak | None


@dataclass(frozen=True)
class FaceRef:
    card: CardRecord
    image_src: str
    face: Face

    def label(self) -> str:
        return f"{self.card.label()} [{self.face}]"


@dataclass(frozen=True)
class CardFaces:
    front: FaceRef
    back: FaceRef | None = None


def resolve_back_face(
    card: CardRecord, card_index: Mapping[str, CardRecord] | None = None
) -> FaceRef | None:
    """Back face in priority order: explicit back image, linked code, embedded linked card."""
    if card.back_image_src:
        return FaceRef(card, card.back_image_src, "back")

    if card.linked_code:
        linked = (card_index or {}).get(card.linked_code) or card.linked_card
        if linked is not None and linked.image_src:
            return FaceRef(linked, linked.image_src, "back")

    if card.linked_card is not None and card.linked_card.image_src:
        return FaceRef(card.linked_card, card.linked_card.image_src, "back")

    return None


def resolve_card_faces(
    item: PrintItem, card_index: Mapping[str, CardRecord] | None = None
) -> CardFaces:
    front = FaceRef(item.card, item.card.image_src, "front")
    if item.skip_back:
        return CardFaces(front)
    return CardFaces(front, resolve_back_face(item.card, card_index))


def build_card_index(cards: list[CardRecord]) -> dict[str, CardRecord]:
    return {c.code: c for c in cards if c.code}
