"""
Solver Loop
===========

Drives a puzzle turn by turn:

    AWAITING_GUESS --recommend()--> AWAITING_FEEDBACK
    AWAITING_FEEDBACK --apply_oracle() / submit_feedback()-->
        AWAITING_GUESS | SOLVED | EXHAUSTED

Feedback comes either from an oracle that knows the answer (self-play) or
from annotated text typed by a player. Either way the constraint mask is
tightened and the candidate set is pruned to the words still consistent
with it.
"""

import time
from collections import Counter
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .codec import Word, WordList, decode, encode
from .errors import InconsistencyError
from .evaluator import Evaluation, GuessEvaluator
from .mask import EXACT, ConstraintMask, parse_annotated


# ============================================================================
# STATES
# ============================================================================

class SolverState(Enum):
    AWAITING_GUESS = "awaiting_guess"
    AWAITING_FEEDBACK = "awaiting_feedback"
    SOLVED = "solved"
    EXHAUSTED = "exhausted"


# ============================================================================
# SOLVER CLASS
# ============================================================================

class SolverLoop:
    """
    One puzzle attempt at a time over a fixed pair of vocabularies.

    Args:
        answers: words that can be the answer
        guesses: words that may be played (defaults to answers); answers
            missing from it are appended so every answer can be guessed
        first_guess: play this word on turn 1 instead of evaluating
        n_threads: worker count for the evaluator
        verbose: print progress
    """

    def __init__(self, answers: WordList, guesses: Optional[WordList] = None,
                 first_guess: Optional[str] = None, n_threads: Optional[int] = None,
                 verbose: bool = False):
        self.answers = answers
        self.word_length = answers.word_length
        self.guesses = (guesses if guesses is not None else answers).extended(answers)
        if self.guesses.word_length != self.word_length:
            raise ValueError("answers and guesses have different word lengths")
        self.verbose = verbose
        self.evaluator = GuessEvaluator(self.guesses, n_threads=n_threads, verbose=verbose)

        # Turn 1 is the same for every attempt, so it is evaluated once
        self._opening: Optional[Evaluation] = None
        if first_guess is not None:
            if first_guess not in self.guesses:
                raise ValueError(f"first guess '{first_guess}' not in guess list")
            self._opening = Evaluation(
                best=self.guesses[self.guesses.index_of(first_guess)],
                best_score=None, runner_up=None, runner_up_score=None,
                n_candidates=len(answers))

        self.reset()

    def reset(self) -> None:
        """Start a new attempt with no knowledge and every answer possible."""
        self.mask = ConstraintMask(self.word_length)
        self.candidates = self.answers
        self.state = SolverState.AWAITING_GUESS
        self.history: List[str] = []
        self.recommendation: Optional[Evaluation] = None
        self.exhausted_reason: Optional[str] = None
        self.last_error: Optional[str] = None

    @property
    def turns(self) -> int:
        return len(self.history)

    @property
    def finished(self) -> bool:
        return self.state in (SolverState.SOLVED, SolverState.EXHAUSTED)

    # ------------------------------------------------------------------
    # Turn steps
    # ------------------------------------------------------------------

    def recommend(self) -> Evaluation:
        """Evaluate the guesses and move to AWAITING_FEEDBACK."""
        self._expect(SolverState.AWAITING_GUESS)

        if len(self.candidates) == 1:
            only = self.candidates[0]
            evaluation = Evaluation(best=only, best_score=1, runner_up=None,
                                    runner_up_score=None, n_candidates=1)
        elif self.turns == 0 and self._opening is not None:
            evaluation = self._opening
        else:
            evaluation = self.evaluator.evaluate(self.candidates, self.mask,
                                                 exclude=self.history)
            if self.turns == 0:
                self._opening = evaluation

        self.recommendation = evaluation
        self.state = SolverState.AWAITING_FEEDBACK
        return evaluation

    def apply_oracle(self, answer: Union[Word, str]) -> SolverState:
        """
        Play the recommended guess against a known answer.

        Raises:
            InconsistencyError: if the answer was pruned away, which means
                the mask algebra or the vocabularies are wrong
        """
        self._expect(SolverState.AWAITING_FEEDBACK)
        answer = self._word(answer)
        guess = self.recommendation.best
        self.history.append(guess.text)

        self.mask.apply_guess(guess, answer)
        self._prune()

        if guess.text == answer.text:
            self.state = SolverState.SOLVED
        elif len(self.candidates) == 0:
            self._exhaust(f"'{answer.text}' was eliminated after guessing '{guess.text}'")
        elif len(self.candidates) == 1 and self.candidates[0].text != answer.text:
            self._exhaust(f"only '{self.candidates[0].text}' remains but the answer "
                          f"is '{answer.text}'")
        else:
            self.state = SolverState.AWAITING_GUESS
        return self.state

    def submit_feedback(self, text: str) -> bool:
        """
        Apply annotated feedback typed by a player (``tr!a?ce`` style).

        Returns False and keeps mask, candidates and turn count untouched
        when the text is malformed, contradicts earlier feedback, or would
        leave no candidate; ``last_error`` says why. All-exact feedback is
        always accepted, even for a word missing from the answer list.
        """
        self._expect(SolverState.AWAITING_FEEDBACK)

        scratch = self.mask.copy()
        if not scratch.apply_external_feedback(text):
            self.last_error = scratch.last_error
            return False
        letters, pattern = parse_annotated(text.strip(), self.word_length)
        solved = all(mark == EXACT for mark in pattern)
        keep = scratch.filter(self.candidates)
        if not solved and not keep.any():
            self.last_error = "feedback rules out every remaining candidate"
            return False

        self.history.append(decode(letters))
        self.mask = scratch
        self.candidates = self.candidates.subset(keep)
        self.last_error = None
        self.state = SolverState.SOLVED if solved else SolverState.AWAITING_GUESS
        return True

    # ------------------------------------------------------------------
    # Self-play
    # ------------------------------------------------------------------

    def solve(self, answer: Union[Word, str], max_turns: Optional[int] = None,
              verbose: Optional[bool] = None) -> Tuple[int, List[str]]:
        """
        Run a full self-play attempt.

        Args:
            answer: the hidden word
            max_turns: give up (InconsistencyError) after this many guesses
            verbose: print each turn (defaults to the solver setting)

        Returns:
            (num_guesses, list_of_guesses)
        """
        verbose = self.verbose if verbose is None else verbose
        answer = self._word(answer)
        if answer.text not in self.answers:
            raise ValueError(f"Answer '{answer.text}' not in answer list")

        self.reset()
        while self.state is SolverState.AWAITING_GUESS:
            if max_turns is not None and self.turns >= max_turns:
                self._exhaust(f"not solved within {max_turns} guesses")
            n_cand = len(self.candidates)
            evaluation = self.recommend()
            self.apply_oracle(answer)
            if verbose:
                print(f"  Turn {self.turns}: {evaluation.best} ({n_cand} -> "
                      f"{len(self.candidates)} candidates)")

        return self.turns, list(self.history)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prune(self) -> None:
        keep = self.mask.filter(self.candidates)
        self.candidates = self.candidates.subset(keep)

    def _exhaust(self, reason: str) -> None:
        self.state = SolverState.EXHAUSTED
        self.exhausted_reason = reason
        raise InconsistencyError(reason)

    def _expect(self, state: SolverState) -> None:
        if self.state is not state:
            raise RuntimeError(f"solver is {self.state.value}, expected {state.value}")

    def _word(self, word: Union[Word, str]) -> Word:
        if isinstance(word, Word):
            return word
        return encode(word, self.word_length)


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def format_duration(seconds: float) -> str:
    """Render seconds as HH:MM:SS."""
    seconds = int(round(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def benchmark(solver: SolverLoop, words: Optional[List[str]] = None,
              max_turns: Optional[int] = None, progress_every: int = 100,
              verbose: bool = True) -> Dict:
    """
    Self-play every word in ``words`` (default: all answers).

    Attempt-fatal errors are not caught: a pruned-away answer is a bug.

    Returns:
        Dict with results
    """
    if words is None:
        words = solver.answers.words()

    results = []
    dist = Counter()

    start = time.time()
    for i, word in enumerate(words):
        if verbose and i > 0 and i % progress_every == 0:
            elapsed = time.time() - start
            eta = elapsed / i * (len(words) - i)
            avg = sum(results) / len(results)
            print(f"[{i}/{len(words)}] avg={avg:.4f} | Elapsed: {format_duration(elapsed)} "
                  f"| ETA: {format_duration(eta)}")

        n, _ = solver.solve(word, max_turns=max_turns, verbose=False)
        results.append(n)
        dist[n] += 1

    elapsed = time.time() - start

    return {
        'total': len(words),
        'average': sum(results) / len(results) if results else 0.0,
        'distribution': dict(sorted(dist.items())),
        'worst': max(results) if results else 0,
        'time': elapsed,
        'rate': len(words) / elapsed if elapsed > 0 else 0.0,
    }


def print_results(results: Dict):
    """Pretty print benchmark results."""
    print("\n" + "=" * 50)
    print("BENCHMARK RESULTS")
    print("=" * 50)
    print(f"Words tested: {results['total']}")
    print(f"Average guesses: {results['average']:.4f}")
    print(f"Worst case: {results['worst']}")
    print(f"Time: {format_duration(results['time'])} ({results['rate']:.2f} words/sec)")
    print("\nDistribution:")
    for n, count in results['distribution'].items():
        pct = 100 * count / results['total']
        bar = "█" * int(pct / 2)
        print(f"  {n}: {count:5d} ({pct:5.2f}%) {bar}")
    print("=" * 50)


def print_evaluation(evaluation: Evaluation, candidates: WordList, preview: int = 10):
    """Show a recommendation and a capped list of the remaining candidates."""
    if evaluation.best_score is None:
        print(f"Best word: {evaluation.best} (preset)")
    else:
        runner_up = evaluation.runner_up if evaluation.runner_up is not None else "-"
        print(f"Best word: {evaluation.best} | Average: {evaluation.mean_remaining:.2f} "
              f"| Second best: {runner_up}")

    print(f"Remaining words: {len(candidates)}")
    for word in candidates.words()[:preview]:
        print(word)
    if len(candidates) > preview:
        print("...")
