from cardsheets.cards import CardRecord, PrintItem, build_card_index, resolve_back_face, resolve_card_faces


def test_explicit_back_image_wins():
    linked = CardRecord(name="Linked", code="02", image_src="linked.png")
    card = CardRecord(name="Front", code="01", image_src="front.png", back_image_src="back.png", linked_code="02")

    back = resolve_back_face(card, {"02": linked})
    assert back.image_src == "back.png"
    assert back.card is card


def test_linked_code_uses_index_before_embedded_card():
    indexed = CardRecord(name="Indexed", code="02", image_src="indexed.png")
    embedded = CardRecord(name="Embedded", code="02", image_src="embedded.png")
    card = CardRecord(name="Front", code="01", image_src="front.png", linked_code="02", linked_card=embedded)

    assert resolve_back_face(card, {"02": indexed}).image_src == "indexed.png"
    assert resolve_back_face(card, {}).image_src == "embedded.png"


def test_embedded_linked_card_without_code():
    embedded = CardRecord(name="Embedded", image_src="embedded.png")
    card = CardRecord(name="Front", code="01", image_src="front.png", linked_card=embedded)

    back = resolve_back_face(card)
    assert back.card is embedded
    assert back.face == "back"


def test_no_back_source_means_single_sided():
    card = CardRecord(name="Front", code="01", image_src="front.png", linked_code="99")
    assert resolve_back_face(card, {}) is None


def test_skip_back_drops_back_face():
    card = CardRecord(name="Front", code="01", image_src="front.png", back_image_src="back.png")
    faces = resolve_card_faces(PrintItem(card, skip_back=True))

    assert faces.front.image_src == "front.png"
    assert faces.back is None


def test_card_index_skips_cards_without_code():
    cards = [CardRecord(name="A", code="01"), CardRecord(name="B")]
    assert list(build_card_index(cards)) == ["01"]


def test_label():
    assert CardRecord(name="Gandalf", code="01073").label() == "Gandalf (01073)"
    assert CardRecord(name="", code="01073").label() == "code 01073"
