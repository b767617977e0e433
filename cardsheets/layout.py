from dataclasses import dataclass

import click


@dataclass(frozen=True)
class SlotRect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class GridLayout:
    """Geometry of an N x N card grid centred on a page.

    All values are PDF points. ``origin_x``/``origin_y`` is the bottom-left corner
    of the grid, with y growing upward.
    """

    grid_size: int
    scale: float
    scaled_card_width: float
    scaled_card_height: float
    scaled_gap: float
    grid_width: float
    grid_height: float
    origin_x: float
    origin_y: float

    @property
    def cards_per_page(self) -> int:
        return self.grid_size * self.grid_size

    def slot_rect(self, row: int, col: int) -> SlotRect:
        # row 0 is the top row, but y grows upward
        x = self.origin_x + col * (self.scaled_card_width + self.scaled_gap)
        y = self.origin_y + (self.grid_size - row - 1) * (
            self.scaled_card_height + self.scaled_gap
        )
        return SlotRect(x, y, self.scaled_card_width, self.scaled_card_height)

    def slot_position(self, index: int) -> SlotRect:
        row, col = divmod(index, self.grid_size)
        return self.slot_rect(row, col)

    def fits(self, page_width: float, page_height: float) -> bool:
        return (
            self.origin_x >= 0
            and self.origin_y >= 0
            and self.origin_x + self.grid_width <= page_width + 1e-6
            and self.origin_y + self.grid_height <= page_height + 1e-6
        )


def grid_extent(card_size: float, gap: float, grid_size: int) -> float:
    return card_size * grid_size + gap * (grid_size - 1)


def compute_fit_scale(
    card_width_pt: float,
    card_height_pt: float,
    gap_pt: float,
    grid_size: int,
    page_width_pt: float,
    page_height_pt: float,
) -> float:
    """Shrink factor (never above 1) that keeps the whole grid on the page."""
    grid_width = grid_extent(card_width_pt, gap_pt, grid_size)
    grid_height = grid_extent(card_height_pt, gap_pt, grid_size)
    scale = min(page_width_pt / grid_width, page_height_pt / grid_height, 1.0)

    if scale < 1:
        click.secho(
            f"Grid and padding exceed page dimensions at true card size. "
            f"Cards for this PDF are scaled by {scale * 100:.1f}% to keep the grid on page.",
            err=True,
            fg="yellow",
        )

    return scale


def compute_grid_layout(
    card_width_pt: float,
    card_height_pt: float,
    gap_pt: float,
    grid_size: int,
    page_width_pt: float,
    page_height_pt: float,
    scale_factor: float = 1.0,
    fit_to_page: bool = False,
) -> GridLayout:
    """Scale the cards and gap uniformly and centre the grid on the page.

    The grid is not checked against the page unless ``fit_to_page`` is set; an
    oversized grid simply gets a negative origin. With ``fit_to_page`` an extra
    shrink factor is applied on top of ``scale_factor``.
    """
    if not isinstance(grid_size, int) or grid_size < 1:
        raise ValueError("grid_size must be a positive integer")
    if card_width_pt <= 0 or card_height_pt <= 0:
        raise ValueError("card dimensions must be positive")
    if gap_pt <= 0:
        raise ValueError("gap must be positive")
    if not 0 < scale_factor <= 1:
        raise ValueError("scale_factor must be in (0, 1]")

    scale = scale_factor
    if fit_to_page:
        scale *= compute_fit_scale(
            card_width_pt * scale_factor,
            card_height_pt * scale_factor,
            gap_pt * scale_factor,
            grid_size,
            page_width_pt,
            page_height_pt,
        )

    scaled_width = card_width_pt * scale
    scaled_height = card_height_pt * scale
    scaled_gap = gap_pt * scale
    grid_width = grid_extent(scaled_width, scaled_gap, grid_size)
    grid_height = grid_extent(scaled_height, scaled_gap, grid_size)

    return GridLayout(
        grid_size=grid_size,
        scale=scale,
        scaled_card_width=scaled_width,
        scaled_card_height=scaled_height,
        scaled_gap=scaled_gap,
        grid_width=grid_width,
        grid_height=grid_height,
        origin_x=(page_width_pt - grid_width) / 2,
        origin_y=(page_height_pt - grid_height) / 2,
    )
