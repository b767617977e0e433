"""Printable proxy sheets, deck-box stickers and alignment grids for card games."""

__version__ = "1.0.0"
