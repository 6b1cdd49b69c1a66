"""wordwise: spaced-repetition scheduling for vocabulary flashcards."""

from wordwise.consts import VERSION

__version__ = VERSION
