"""
bitwordle - Brute-Force Wordle Solver
=====================================

Recommends, each turn, the guess that leaves the fewest candidates summed
over every possible answer, using bit-packed words and a parallel numba
evaluator.
"""

__version__ = "1.0.0"

from .codec import Word, WordList, decode, encode, load_words, pack_words
from .errors import (BitwordleError, EvaluationError, FeedbackError,
                     InconsistencyError, VocabularyError, WordFormatError)
from .evaluator import Evaluation, GuessEvaluator, score_guesses
from .mask import ConstraintMask, feedback_pattern, parse_annotated
from .solver import SolverLoop, SolverState, benchmark, print_results
