"""
Word Codec
==========

Words are stored bit-packed: every position holds a single-bit mask
``1 << (letter - 'a')`` and the word carries the OR of all positions, the
set of distinct letters it contains.

Vocabularies are packed into numpy arrays so the numba kernels in
``mask`` and ``evaluator`` can walk them without touching Python objects.
"""

import numpy as np
from typing import Iterable, List, NamedTuple, Sequence, Tuple

from .errors import VocabularyError, WordFormatError


# ============================================================================
# CONSTANTS
# ============================================================================

ALPHABET = "abcdefghijklmnopqrstuvwxyz"
ALPHABET_SIZE = 26
ALL_LETTERS = (1 << ALPHABET_SIZE) - 1
DEFAULT_WORD_LENGTH = 5
MAX_WORD_LENGTH = 32

LETTER_BITS = {c: 1 << i for i, c in enumerate(ALPHABET)}


# ============================================================================
# SINGLE WORDS
# ============================================================================

class Word(NamedTuple):
    """An encoded word. Build with :func:`encode`."""
    text: str
    letters: Tuple[int, ...]
    aggregate: int

    def __str__(self) -> str:
        return self.text


def check_word_length(word_length: int) -> None:
    if not 1 <= word_length <= MAX_WORD_LENGTH:
        raise ValueError(f"word length must be between 1 and {MAX_WORD_LENGTH}, got {word_length}")


def encode(text: str, word_length: int = DEFAULT_WORD_LENGTH) -> Word:
    """
    Encode ``text`` as a Word of exactly ``word_length`` lowercase letters.

    Raises:
        WordFormatError: with reason ``not_ascii``, ``wrong_length`` or
            ``invalid_letter``. Nothing is returned on failure.
    """
    check_word_length(word_length)
    if not isinstance(text, str) or not text.isascii():
        raise WordFormatError(text, "not_ascii")
    if len(text) != word_length:
        raise WordFormatError(text, "wrong_length",
                              f"expected {word_length}, got {len(text)}")

    letters = []
    for c in text:
        bit = LETTER_BITS.get(c)
        if bit is None:
            raise WordFormatError(text, "invalid_letter", repr(c))
        letters.append(bit)

    aggregate = 0
    for bit in letters:
        aggregate |= bit
    return Word(text, tuple(letters), aggregate)


def letter_of(bit: int) -> str:
    """Recover the letter of a single-bit mask."""
    assert bit != 0 and bit & (bit - 1) == 0, f"expected one bit set, got {bit:#x}"
    idx = bit.bit_length() - 1
    assert idx < ALPHABET_SIZE, f"bit {idx} is outside the alphabet"
    return ALPHABET[idx]


def decode(word) -> str:
    """Rebuild the text of a Word (or any sequence of letter bits)."""
    letters = word.letters if isinstance(word, Word) else word
    return "".join(letter_of(int(bit)) for bit in letters)


def letters_in(mask: int) -> str:
    """All letters whose bit is set in ``mask``, in alphabet order."""
    return "".join(c for i, c in enumerate(ALPHABET) if (mask >> i) & 1)


# ============================================================================
# PACKED VOCABULARIES
# ============================================================================

class WordList:
    """
    An ordered, duplicate-free vocabulary packed for the kernels.

    Attributes:
        letters: shape (n, word_length) uint32 array of letter bits
        aggregate: shape (n,) uint32 array of per-word letter sets
    """

    def __init__(self, words: Sequence[Word], word_length: int):
        self.word_length = word_length
        self._words: List[Word] = list(words)
        self._index = {w.text: i for i, w in enumerate(self._words)}
        if len(self._index) != len(self._words):
            raise ValueError("duplicate words in WordList")

        self.letters = np.zeros((len(self._words), word_length), dtype=np.uint32)
        self.aggregate = np.zeros(len(self._words), dtype=np.uint32)
        for i, w in enumerate(self._words):
            if len(w.letters) != word_length:
                raise ValueError(f"{w.text!r} is not {word_length} letters long")
            self.letters[i] = w.letters
            self.aggregate[i] = w.aggregate

    def __len__(self) -> int:
        return len(self._words)

    def __getitem__(self, idx: int) -> Word:
        return self._words[idx]

    def __iter__(self):
        return iter(self._words)

    def __contains__(self, text: str) -> bool:
        return text in self._index

    def __repr__(self) -> str:
        return f"WordList({len(self)} words, length={self.word_length})"

    def index_of(self, text: str) -> int:
        try:
            return self._index[text]
        except KeyError:
            raise KeyError(f"unknown word: {text}") from None

    def words(self) -> List[str]:
        return [w.text for w in self._words]

    def subset(self, keep) -> "WordList":
        """Return a new WordList with the words selected by a boolean mask or index array."""
        keep = np.asarray(keep)
        if keep.dtype == np.bool_:
            keep = np.flatnonzero(keep)
        return WordList([self._words[i] for i in keep], self.word_length)

    def extended(self, others: Iterable[Word]) -> "WordList":
        """Return a new WordList with the words of ``others`` not already present appended."""
        extra = [w for w in others if w.text not in self._index]
        if not extra:
            return self
        return WordList(self._words + extra, self.word_length)


def pack_words(texts: Iterable[str], word_length: int = DEFAULT_WORD_LENGTH) -> WordList:
    """Encode ``texts`` into a WordList, dropping repeats. Any invalid entry aborts."""
    words = []
    seen = set()
    for i, text in enumerate(texts):
        try:
            w = encode(text, word_length)
        except WordFormatError as e:
            raise VocabularyError(f"entry {i}: {e}") from e
        if w.text in seen:
            continue
        seen.add(w.text)
        words.append(w)
    if not words:
        raise VocabularyError("no words provided")
    return WordList(words, word_length)


def load_words(filepath: str, word_length: int = DEFAULT_WORD_LENGTH) -> WordList:
    """Load a whitespace separated word file. Any invalid entry aborts the load."""
    with open(filepath, 'r', encoding='utf-8') as f:
        entries = f.read().split()
    try:
        return pack_words(entries, word_length)
    except VocabularyError as e:
        raise VocabularyError(f"{filepath}: {e}") from e
