from cardsheets.cards import PAGE_BREAK, CardRecord, PrintItem
from cardsheets.pagination import apply_page_breaks, cards_to_add, mirror_rows, paginate


def card(name, **kwargs):
    return CardRecord(name=name, code=name.lower(), image_src=f"{name}.png", **kwargs)


def front_names(page):
    return [s.face.card.name if s else None for s in page.slots]


def test_mirror_rows_reverses_each_row():
    assert mirror_rows(list("ABCDEFGHI"), 3) == list("CBAFEDIHG")


def test_cards_to_add():
    assert cards_to_add(0) == 0
    assert cards_to_add(9) == 0
    assert cards_to_add(10) == 8
    assert cards_to_add(3, cards_per_page=4) == 1


def test_every_item_lands_on_exactly_one_front_slot():
    items = [PrintItem(card(f"C{i}")) for i in range(20)]
    pages = paginate(items, 3)

    assert len(pages) == 3
    assert all(not p.is_back for p in pages)
    placed = [name for p in pages for name in front_names(p) if name]
    assert placed == [f"C{i}" for i in range(20)]
    assert len(pages[-1].filled()) == 2


def test_back_page_follows_its_front_page_mirrored():
    items = [PrintItem(card("A", back_image_src="A-back.png"))] + [PrintItem(card(n)) for n in "BCD"]
    pages = paginate(items, 3)

    assert [p.is_back for p in pages] == [False, True]
    back = pages[1]
    assert back.slots[2] is not None
    assert back.slots[2].face.image_src == "A-back.png"
    assert back.slots[2].face.face == "back"
    assert sum(s is not None for s in back.slots) == 1


def test_skip_back_suppresses_back_page():
    items = [PrintItem(card("A", back_image_src="A-back.png"), skip_back=True)]
    pages = paginate(items, 3)

    assert len(pages) == 1


def test_page_break_pads_current_page():
    items = [PrintItem(card("A")), PAGE_BREAK, PrintItem(card("B"))]
    padded = apply_page_breaks(items, 9)

    assert len(padded) == 10
    assert padded[1:9] == [None] * 8

    pages = paginate(items, 3)
    assert front_names(pages[0])[0] == "A"
    assert front_names(pages[1])[0] == "B"


def test_page_break_on_page_boundary_is_a_no_op():
    items = [PrintItem(card(f"C{i}")) for i in range(9)] + [PAGE_BREAK, PrintItem(card("Z"))]
    padded = apply_page_breaks(items, 9)

    assert len(padded) == 10
    assert None not in padded


def test_leading_page_break_adds_nothing():
    assert apply_page_breaks([PAGE_BREAK, PAGE_BREAK], 9) == []


def test_empty_input_gives_one_empty_page():
    pages = paginate([], 3)

    assert len(pages) == 1
    assert pages[0].slots == [None] * 9
