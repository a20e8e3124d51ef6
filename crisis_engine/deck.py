"""Per-session scenario ordering."""

from __future__ import annotations

import logging
import random
from typing import Optional, Sequence, Tuple

from .errors import DeckConfigurationError
from .templates import Scenario

logger = logging.getLogger(__name__)

Deck = Tuple[Scenario, ...]


def shuffle_deck(scenarios: Sequence[Scenario], rng: Optional[random.Random] = None) -> Deck:
    """Uniform random permutation of the whole collection.

    Pass a seeded ``random.Random`` for reproducible orderings.
    """
    if not scenarios:
        raise DeckConfigurationError("Cannot build a deck from an empty scenario collection.")
    deck = list(scenarios)
    (rng or random).shuffle(deck)
    return tuple(deck)


def validate_deck(deck: Deck, rounds: int, strict: bool = False) -> None:
    """Check that the deck can cover ``rounds`` distinct rounds.

    A short deck is only an error when ``strict`` is set; otherwise later
    rounds repeat the first scenario.
    """
    if len(deck) >= rounds:
        return
    if strict:
        raise DeckConfigurationError(
            f"Deck has {len(deck)} scenarios but the session needs {rounds} rounds."
        )
    logger.info("Deck has %d scenarios for %d rounds; later rounds will repeat", len(deck), rounds)


def scenario_for_round(deck: Deck, round_number: int) -> Scenario:
    """Scenario for a 1-based round, falling back to the first entry."""
    if not deck:
        raise DeckConfigurationError("Deck is empty.")
    index = round_number - 1
    if 0 <= index < len(deck):
        return deck[index]
    return deck[0]
