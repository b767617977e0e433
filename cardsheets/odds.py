"""Hypergeometric draw odds, with weaknesses discarded and redrawn in the opening hand."""

from dataclasses import dataclass
from math import comb

from .errors import ConfigError


@dataclass(frozen=True)
class OddsRow:
    step: str
    at_least_one: float
    at_least_two: float


@dataclass(frozen=True)
class OpeningOdds:
    distribution: list[tuple[int, float]]
    hit_chance: float


def combination(n: int, k: int) -> int:
    if k < 0 or k > n:
        return 0
    return comb(n, k)


def probability_no_hits(population: int, successes: int, draws: int) -> float:
    if draws < 0 or draws > population:
        return 0.0
    return combination(population - successes, draws) / combination(population, draws)


def hypergeometric_probability(population: int, successes: int, draws: int, hits: int) -> float:
    if draws < 0 or draws > population:
        return 0.0
    if hits < 0 or hits > draws or hits > successes:
        return 0.0
    denom = combination(population, draws)
    if denom == 0:
        return 0.0
    return combination(successes, hits) * combination(population - successes, draws - hits) / denom


def probability_at_least(population: int, successes: int, draws: int, min_hits: int) -> float:
    if min_hits <= 0:
        return 1.0
    max_hits = min(successes, draws)
    if min_hits > max_hits:
        return 0.0
    return sum(
        hypergeometric_probability(population, successes, draws, hits)
        for hits in range(min_hits, max_hits + 1)
    )


def opening_distribution(deck_size: int, weaknesses: int, target_copies: int, opening_hand: int) -> OpeningOdds:
    """Weaknesses never stay in the opening hand, so it is drawn from the rest of the deck."""
    non_weak = deck_size - weaknesses
    denom = combination(non_weak, opening_hand)
    distribution = [
        (
            hits,
            combination(target_copies, hits)
            * combination(non_weak - target_copies, opening_hand - hits)
            / denom,
        )
        for hits in range(min(opening_hand, target_copies) + 1)
    ]
    return OpeningOdds(distribution, 1 - probability_no_hits(non_weak, target_copies, opening_hand))


def validate_odds_input(deck_size: int, weaknesses: int, target_copies: int, opening_hand: int, next_draws: int):
    errors = []
    if weaknesses >= deck_size:
        errors.append("Weakness count must be less than deck size.")
    non_weak = deck_size - weaknesses
    if target_copies > non_weak:
        errors.append("Target copies cannot exceed non-weakness cards in the deck.")
    if opening_hand > non_weak:
        errors.append("Opening hand size cannot exceed non-weakness cards in the deck.")
    if opening_hand + next_draws > deck_size:
        errors.append("Opening hand plus next draws cannot exceed total deck size.")
    if errors:
        raise ConfigError(errors, header="Invalid odds input:")


def draw_odds_rows(
    deck_size: int, weaknesses: int, target_copies: int, opening_hand: int, next_draws: int
) -> list[OddsRow]:
    """P(1+) and P(2+) after the opening hand and after each following draw."""
    validate_odds_input(deck_size, weaknesses, target_copies, opening_hand, next_draws)

    opening = opening_distribution(deck_size, weaknesses, target_copies, opening_hand)
    remaining_deck = deck_size - opening_hand

    def at_least_by_now(draws: int, min_hits: int) -> float:
        if min_hits <= 0:
            return 1.0
        if min_hits > target_copies:
            return 0.0
        total = 0.0
        for opening_hits, weight in opening.distribution:
            needed = min_hits - opening_hits
            if needed <= 0:
                total += weight
            else:
                total += weight * probability_at_least(
                    remaining_deck, target_copies - opening_hits, draws, needed
                )
        return total

    opening_two_plus = sum(p for hits, p in opening.distribution if hits >= 2)
    rows = [OddsRow("Opening hand", opening.hit_chance, opening_two_plus)]
    rows.extend(
        OddsRow(f"Draw {i}", at_least_by_now(i, 1), at_least_by_now(i, 2))
        for i in range(1, next_draws + 1)
    )
    return rows


def miss_then_hit_chance(deck_size: int, weaknesses: int, target_copies: int, opening_hand: int, next_draws: int) -> float:
    """Chance to find a copy in the next draws after missing in the opening hand."""
    if probability_no_hits(deck_size - weaknesses, target_copies, opening_hand) == 0:
        return 0.0
    return 1 - probability_no_hits(deck_size - opening_hand, target_copies, next_draws)
