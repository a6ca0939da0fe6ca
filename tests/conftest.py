import pytest

from bitwordle.codec import pack_words


SMALL_WORDS = ["crane", "slate", "trace", "place"]

TRICKY_WORDS = [
    "crane", "slate", "trace", "place", "allot", "total", "stoal",
    "speed", "abide", "eerie", "geese", "sheep", "steep", "spree", "press",
]


@pytest.fixture
def small_vocab():
    return pack_words(SMALL_WORDS)


@pytest.fixture
def tricky_vocab():
    return pack_words(TRICKY_WORDS)
