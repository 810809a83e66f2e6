"""
flashdeck: spaced-repetition flashcard review engine.

The review engine lives in ``flashdeck.review``; ``flashdeck.app`` wires it
to local storage for production use.
"""

__version__ = "1.0.0"
