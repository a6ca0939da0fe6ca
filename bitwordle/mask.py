"""
Constraint Mask
===============

Accumulates what feedback has revealed about the answer:

- per_position[i]: letters still allowed at position i
- positive: letters known to be in the answer
- negative: letters known to be absent
- min_counts / max_counts: bounds on how often each letter occurs, so a
  guess with a repeated letter where only some copies match narrows the
  count instead of banning the letter outright

Everything only ever tightens. The numba kernels here are shared with the
evaluator, which runs them on private copies of the mask arrays.
"""

import numpy as np
from numba import jit
from typing import List, Tuple

from .codec import (ALL_LETTERS, ALPHABET, ALPHABET_SIZE, LETTER_BITS, Word,
                    WordList, check_word_length, letter_of, letters_in)
from .errors import FeedbackError


# ============================================================================
# CONSTANTS
# ============================================================================

ABSENT = 0
PRESENT = 1
EXACT = 2

EXACT_MARK = "!"
PRESENT_MARK = "?"


# ============================================================================
# NUMBA KERNELS
# ============================================================================

@jit(nopython=True, cache=True)
def letter_index(bit) -> int:
    """Index 0-25 of a single-bit letter mask."""
    k = 0
    while (bit >> k) != 1:
        k += 1
    return k


@jit(nopython=True, cache=True)
def compute_pattern(guess: np.ndarray, actual: np.ndarray, pattern: np.ndarray) -> None:
    """
    Fill ``pattern`` with the feedback for ``guess`` against ``actual``.

    Exact matches consume their letter first; the remaining copies are then
    handed out as PRESENT left to right. Copies beyond that are ABSENT.
    """
    n = guess.shape[0]
    used = 0  # bit j set: actual[j] already accounted for

    for i in range(n):
        if guess[i] == actual[i]:
            pattern[i] = EXACT
            used |= 1 << i
        else:
            pattern[i] = ABSENT

    for i in range(n):
        if pattern[i] == EXACT:
            continue
        for j in range(n):
            if (used >> j) & 1 == 0 and actual[j] == guess[i]:
                pattern[i] = PRESENT
                used |= 1 << j
                break


@jit(nopython=True, cache=True)
def apply_pattern(per_position: np.ndarray, min_counts: np.ndarray, max_counts: np.ndarray,
                  positive: int, negative: int, bounded: int,
                  guess: np.ndarray, pattern: np.ndarray) -> Tuple[int, int, int]:
    """
    Tighten the mask arrays in place with one round of feedback.

    Returns the new (positive, negative, bounded) letter sets.
    """
    n = guess.shape[0]

    for i in range(n):
        bit = np.int64(guess[i])
        if pattern[i] == EXACT:
            per_position[i] &= bit
            positive |= bit
        else:
            per_position[i] &= ~bit
            if pattern[i] == PRESENT:
                positive |= bit

    for i in range(n):
        bit = np.int64(guess[i])

        # Each distinct letter once, at its first occurrence
        repeat = False
        for j in range(i):
            if guess[j] == bit:
                repeat = True
                break
        if repeat:
            continue

        matched = 0
        missed = False
        for j in range(i, n):
            if guess[j] == bit:
                if pattern[j] == ABSENT:
                    missed = True
                else:
                    matched += 1

        k = letter_index(bit)
        if matched > min_counts[k]:
            min_counts[k] = matched
        if missed:
            if matched == 0:
                negative |= bit
            if matched < max_counts[k]:
                max_counts[k] = matched
        if min_counts[k] > 1 or (max_counts[k] > 0 and max_counts[k] < n):
            bounded |= bit

    return positive, negative, bounded


@jit(nopython=True, cache=True)
def word_matches(letters: np.ndarray, aggregate, per_position: np.ndarray,
                 min_counts: np.ndarray, max_counts: np.ndarray,
                 positive: int, negative: int, bounded: int) -> bool:
    """True if the word satisfies every constraint in the mask."""
    agg = np.int64(aggregate)
    if (agg & positive) != positive:
        return False
    if (agg & negative) != 0:
        return False

    n = letters.shape[0]
    for i in range(n):
        if per_position[i] & letters[i] == 0:
            return False

    check = agg & bounded
    k = 0
    while check != 0:
        if check & 1:
            bit = 1 << k
            count = 0
            for i in range(n):
                if np.int64(letters[i]) == bit:
                    count += 1
            if count < min_counts[k] or count > max_counts[k]:
                return False
        check >>= 1
        k += 1

    return True


@jit(nopython=True, cache=True)
def filter_words(letters: np.ndarray, aggregate: np.ndarray, per_position: np.ndarray,
                 min_counts: np.ndarray, max_counts: np.ndarray,
                 positive: int, negative: int, bounded: int) -> np.ndarray:
    """Boolean keep-mask over a packed vocabulary."""
    n_words = letters.shape[0]
    keep = np.zeros(n_words, dtype=np.bool_)
    for w in range(n_words):
        keep[w] = word_matches(letters[w], aggregate[w], per_position,
                               min_counts, max_counts, positive, negative, bounded)
    return keep


# ============================================================================
# ANNOTATED FEEDBACK
# ============================================================================

def parse_annotated(text: str, word_length: int) -> Tuple[List[int], List[int]]:
    """
    Parse feedback written as the guess with markers after letters.

    ``!`` after a letter means an exact match, ``?`` means present elsewhere,
    no marker means absent. ``tr!a?ce`` reads as t absent, r exact, a present,
    c absent, e absent.

    Returns:
        (letter bits, pattern)

    Raises:
        FeedbackError: if the text is not well formed
    """
    if not text.isascii():
        raise FeedbackError("input is not ASCII")

    letters: List[int] = []
    pattern: List[int] = []
    marked = False
    for pos, c in enumerate(text):
        if c == EXACT_MARK or c == PRESENT_MARK:
            if not letters:
                raise FeedbackError(f"marker {c!r} at column {pos + 1} has no letter before it")
            if marked:
                raise FeedbackError(f"second marker {c!r} at column {pos + 1}")
            pattern[-1] = EXACT if c == EXACT_MARK else PRESENT
            marked = True
            continue

        bit = LETTER_BITS.get(c)
        if bit is None:
            raise FeedbackError(f"invalid character {c!r} at column {pos + 1}")
        letters.append(bit)
        pattern.append(ABSENT)
        marked = False

    if len(letters) != word_length:
        raise FeedbackError(f"expected {word_length} letters, got {len(letters)}")
    return letters, pattern


# ============================================================================
# MASK
# ============================================================================

class ConstraintMask:
    """Everything known about the answer so far."""

    def __init__(self, word_length: int):
        check_word_length(word_length)
        self.word_length = word_length
        self.per_position = np.full(word_length, ALL_LETTERS, dtype=np.uint32)
        self.min_counts = np.zeros(ALPHABET_SIZE, dtype=np.int32)
        self.max_counts = np.full(ALPHABET_SIZE, word_length, dtype=np.int32)
        self.positive = 0
        self.negative = 0
        self.bounded = 0
        self.last_error = None

    def copy(self) -> "ConstraintMask":
        clone = ConstraintMask.__new__(ConstraintMask)
        clone.word_length = self.word_length
        clone.per_position = self.per_position.copy()
        clone.min_counts = self.min_counts.copy()
        clone.max_counts = self.max_counts.copy()
        clone.positive = self.positive
        clone.negative = self.negative
        clone.bounded = self.bounded
        clone.last_error = None
        return clone

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConstraintMask):
            return NotImplemented
        return (self.word_length == other.word_length
                and self.positive == other.positive
                and self.negative == other.negative
                and self.bounded == other.bounded
                and np.array_equal(self.per_position, other.per_position)
                and np.array_equal(self.min_counts, other.min_counts)
                and np.array_equal(self.max_counts, other.max_counts))

    __hash__ = None

    def kernel_args(self) -> tuple:
        """The mask as positional arguments for the numba kernels."""
        return (self.per_position, self.min_counts, self.max_counts,
                self.positive, self.negative, self.bounded)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def apply_pattern(self, guess, pattern) -> None:
        """Tighten the mask with ``pattern`` observed for ``guess``."""
        guess = self._letters(guess)
        pattern = np.asarray(pattern, dtype=np.int8)
        if pattern.shape != (self.word_length,):
            raise ValueError(f"pattern must have {self.word_length} entries")
        self.positive, self.negative, self.bounded = apply_pattern(
            self.per_position, self.min_counts, self.max_counts,
            self.positive, self.negative, self.bounded, guess, pattern)

    def apply_guess(self, guess, actual) -> None:
        """Tighten the mask with the feedback ``guess`` receives when the answer is ``actual``."""
        self.apply_pattern(guess, feedback_pattern(guess, actual))

    def apply_external_feedback(self, text: str) -> bool:
        """
        Apply annotated feedback typed by a player (see :func:`parse_annotated`).

        The update is checked on a scratch copy first. On any problem the
        mask is left exactly as it was, the reason is stored in
        ``last_error`` and False is returned.
        """
        try:
            letters, pattern = parse_annotated(text.strip(), self.word_length)
            scratch = self.copy()
            for i, (bit, mark) in enumerate(zip(letters, pattern)):
                locked = int(scratch.per_position[i])
                if mark == EXACT and locked and locked & (locked - 1) == 0 and locked != bit:
                    raise FeedbackError(
                        f"position {i + 1} is already known to be {letter_of(locked)!r}")
            scratch.apply_pattern(letters, pattern)
            scratch.check()
        except FeedbackError as e:
            self.last_error = str(e)
            return False

        self.per_position = scratch.per_position
        self.min_counts = scratch.min_counts
        self.max_counts = scratch.max_counts
        self.positive = scratch.positive
        self.negative = scratch.negative
        self.bounded = scratch.bounded
        self.last_error = None
        return True

    def check(self) -> None:
        """Raise FeedbackError if no word could satisfy the mask."""
        for i, allowed in enumerate(self.per_position):
            if allowed == 0:
                raise FeedbackError(f"no letter is left for position {i + 1}")
        clash = self.positive & self.negative
        if clash:
            raise FeedbackError(f"letters marked both present and absent: {letters_in(clash)}")
        over = np.flatnonzero(self.min_counts > self.max_counts)
        if over.size:
            raise FeedbackError(
                "contradictory letter counts: " + "".join(ALPHABET[k] for k in over))
        if int(self.min_counts.sum()) > self.word_length:
            raise FeedbackError("more letters required than the word can hold")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def matches(self, word) -> bool:
        letters = self._letters(word)
        aggregate = word.aggregate if isinstance(word, Word) else int(np.bitwise_or.reduce(letters))
        return bool(word_matches(letters, aggregate, *self.kernel_args()))

    def filter(self, words: WordList) -> np.ndarray:
        """Boolean array marking the words of ``words`` that are still consistent."""
        return filter_words(words.letters, words.aggregate, *self.kernel_args())

    def describe(self) -> str:
        """Human-readable dump of the allowed letters."""
        slots = " | ".join(letters_in(int(m)) for m in self.per_position)
        lines = [f"Positions: {slots}",
                 f"Present: {letters_in(self.positive) or '-'}",
                 f"Absent: {letters_in(self.negative) or '-'}"]
        counts = []
        for k in range(ALPHABET_SIZE):
            if (self.bounded >> k) & 1:
                counts.append(f"{ALPHABET[k]}:{self.min_counts[k]}-{self.max_counts[k]}")
        if counts:
            lines.append("Counts: " + ", ".join(counts))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ConstraintMask({self.describe()!r})"

    def _letters(self, word) -> np.ndarray:
        letters = word.letters if isinstance(word, Word) else word
        arr = np.asarray(letters, dtype=np.uint32)
        if arr.shape != (self.word_length,):
            raise ValueError(f"expected {self.word_length} letters, got {arr.shape[0]}")
        # letter_index only terminates on a single set bit
        single = (arr != 0) & ((arr & (arr - np.uint32(1))) == 0) & (arr <= ALL_LETTERS)
        if not single.all():
            bad = int(np.flatnonzero(~single)[0])
            raise ValueError(f"letter slot {bad + 1} is not a single letter: {int(arr[bad]):#x}")
        return arr


def feedback_pattern(guess, actual) -> np.ndarray:
    """Feedback marks (ABSENT / PRESENT / EXACT) for ``guess`` against ``actual``."""
    g = np.asarray(guess.letters if isinstance(guess, Word) else guess, dtype=np.uint32)
    a = np.asarray(actual.letters if isinstance(actual, Word) else actual, dtype=np.uint32)
    if g.shape != a.shape:
        raise ValueError("guess and answer lengths differ")
    pattern = np.zeros(g.shape[0], dtype=np.int8)
    compute_pattern(g, a, pattern)
    return pattern
