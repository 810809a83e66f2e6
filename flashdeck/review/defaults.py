"""Built-in starter deck, used when the card store is empty or unreachable."""

from __future__ import annotations

from datetime import datetime

from .card import Card

# (id, word, translation, meanings)
DEFAULT_DECK: tuple[tuple[str, str, str, tuple[str, ...]], ...] = (
    ("default-01", "Hola", "Hello", ("Informal greeting",)),
    ("default-02", "Gracias", "Thank you", ("Muchas gracias: thank you very much",)),
    ("default-03", "Casa", "House", ("Home", "Household")),
    ("default-04", "Agua", "Water", ()),
    ("default-05", "Libro", "Book", ()),
    ("default-06", "Tiempo", "Time", ("Weather",)),
    ("default-07", "Comer", "To eat", ("Comida: food",)),
    ("default-08", "Hablar", "To speak", ("To talk",)),
    ("default-09", "Ciudad", "City", ("Town",)),
    ("default-10", "Amigo", "Friend", ("Amiga: female friend",)),
)


def get_default_cards(now: datetime | None = None) -> list[Card]:
    """
    Build a fresh copy of the starter deck.

    Args:
        now: Due date for every card (defaults to the current time)

    Returns:
        New, never-reviewed cards
    """
    now = now or datetime.now()
    return [
        Card(
            id=card_id,
            word=word,
            translation=translation,
            meanings=list(meanings),
            next_review_date=now,
        )
        for card_id, word, translation, meanings in DEFAULT_DECK
    ]
