"""
Guess Evaluator
===============

Brute-force scoring of every allowed guess against the surviving candidates:

    score(g) = sum over candidates a of
               |{c in candidates : mask + feedback(g, a) admits c}|

i.e. the total number of candidates left over all hypothetical answers.
Lower is better. The cost is O(guesses x candidates^2) per turn, so the
kernel runs one prange iteration per guess.

Picking the winner is a separate, single-threaded reduction over the score
vector with a stable ordering, so results do not depend on thread timing.
"""

import time

import numpy as np
import numba
from numba import jit, prange
from typing import Iterable, NamedTuple, Optional

from .codec import Word, WordList
from .errors import EvaluationError
from .mask import ConstraintMask, apply_pattern, compute_pattern, word_matches


# ============================================================================
# NUMBA-ACCELERATED SCORING
# ============================================================================

@jit(nopython=True, parallel=True, cache=True)
def score_guesses_kernel(guess_letters: np.ndarray, cand_letters: np.ndarray,
                         cand_aggregate: np.ndarray, per_position: np.ndarray,
                         min_counts: np.ndarray, max_counts: np.ndarray,
                         positive: int, negative: int, bounded: int) -> np.ndarray:
    """
    Score all guesses in parallel.

    Args:
        guess_letters: shape (n_guesses, N) letter bits
        cand_letters: shape (n_candidates, N) letter bits
        cand_aggregate: shape (n_candidates,) letter sets
        per_position, min_counts, max_counts, positive, negative, bounded:
            the current mask, read only

    Returns:
        shape (n_guesses,) summed remaining-candidate counts
    """
    n_guesses = guess_letters.shape[0]
    n_cand = cand_letters.shape[0]
    n = per_position.shape[0]
    scores = np.zeros(n_guesses, dtype=np.int64)

    for g in prange(n_guesses):
        guess = guess_letters[g]
        pattern = np.zeros(n, dtype=np.int8)
        pp = per_position.copy()
        mins = min_counts.copy()
        maxs = max_counts.copy()
        total = 0

        for a in range(n_cand):
            compute_pattern(guess, cand_letters[a], pattern)
            pp[:] = per_position
            mins[:] = min_counts
            maxs[:] = max_counts
            pos, neg, bnd = apply_pattern(pp, mins, maxs, positive, negative, bounded,
                                          guess, pattern)
            for c in range(n_cand):
                if word_matches(cand_letters[c], cand_aggregate[c], pp, mins, maxs,
                                pos, neg, bnd):
                    total += 1

        scores[g] = total

    return scores


def score_guesses(guesses: WordList, candidates: WordList, mask: ConstraintMask) -> np.ndarray:
    """Score every word of ``guesses``; see module docstring."""
    if guesses.word_length != mask.word_length or candidates.word_length != mask.word_length:
        raise ValueError("word lengths of guesses, candidates and mask differ")
    return score_guesses_kernel(guesses.letters, candidates.letters, candidates.aggregate,
                                *mask.kernel_args())


# ============================================================================
# RESULT
# ============================================================================

class Evaluation(NamedTuple):
    """Outcome of one evaluation pass."""
    best: Word
    best_score: Optional[int]
    runner_up: Optional[Word]
    runner_up_score: Optional[int]
    n_candidates: int

    @property
    def mean_remaining(self) -> Optional[float]:
        """Average candidates left after the best guess, over all possible answers."""
        if self.best_score is None:
            return None
        return self.best_score / self.n_candidates


def rank_scores(scores: np.ndarray, is_candidate: np.ndarray,
                eligible: np.ndarray) -> np.ndarray:
    """
    Order eligible guess indices from best to worst.

    Key: (score, not a candidate, index). Guesses that are themselves
    candidates win ties, then the earlier guess in the vocabulary.
    """
    idx = np.flatnonzero(eligible & (scores > 0))
    # np.lexsort sorts by the last key first
    order = np.lexsort((idx, ~is_candidate[idx], scores[idx]))
    return idx[order]


# ============================================================================
# EVALUATOR
# ============================================================================

class GuessEvaluator:
    """
    Finds the best guess for a candidate set.

    Args:
        guesses: every word that may be played
        n_threads: worker count; defaults to what numba detects
        verbose: print timing of each pass
    """

    def __init__(self, guesses: WordList, n_threads: Optional[int] = None,
                 verbose: bool = False):
        self.guesses = guesses
        self.verbose = verbose
        self.n_threads = n_threads or numba.config.NUMBA_NUM_THREADS
        if not 1 <= self.n_threads <= numba.config.NUMBA_NUM_THREADS:
            raise ValueError(f"n_threads must be between 1 and {numba.config.NUMBA_NUM_THREADS}")
        self.last_scores: Optional[np.ndarray] = None

    def evaluate(self, candidates: WordList, mask: ConstraintMask,
                 exclude: Iterable[str] = ()) -> Evaluation:
        """
        Score all guesses and return the best two.

        Args:
            candidates: the words still consistent with ``mask``
            mask: current constraints (not modified)
            exclude: guesses that may not be recommended (already played)

        Raises:
            EvaluationError: if there are no candidates or the pass fails
        """
        n_cand = len(candidates)
        if n_cand == 0:
            raise EvaluationError("No candidates remaining")

        t0 = time.time()
        previous_threads = numba.get_num_threads()
        numba.set_num_threads(self.n_threads)
        try:
            scores = score_guesses(self.guesses, candidates, mask)
        except Exception as e:
            raise EvaluationError(f"evaluation pass failed: {e}") from e
        finally:
            numba.set_num_threads(previous_threads)
        elapsed = time.time() - t0
        self.last_scores = scores

        is_candidate = np.array([w.text in candidates for w in self.guesses], dtype=np.bool_)
        eligible = np.ones(len(self.guesses), dtype=np.bool_)
        for word in exclude:
            if word in self.guesses:
                eligible[self.guesses.index_of(word)] = False

        ranked = rank_scores(scores, is_candidate, eligible)
        if ranked.size == 0:
            raise EvaluationError("no eligible guess left to recommend")

        if self.verbose:
            pairs = len(self.guesses) * n_cand * n_cand
            rate = pairs / elapsed / 1e6 if elapsed > 0 else float('inf')
            print(f"Scored {len(self.guesses)} guesses x {n_cand} candidates "
                  f"in {elapsed:.2f}s ({rate:.1f}M checks/sec)")

        best = ranked[0]
        second = ranked[1] if ranked.size > 1 else None
        return Evaluation(
            best=self.guesses[best],
            best_score=int(scores[best]),
            runner_up=self.guesses[second] if second is not None else None,
            runner_up_score=int(scores[second]) if second is not None else None,
            n_candidates=n_cand,
        )
