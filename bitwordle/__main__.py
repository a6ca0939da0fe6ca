"""
Command-line driver.

Interactive play (type the feedback you saw, ``!`` after exact letters and
``?`` after misplaced ones, e.g. ``tr!a?ce``):

    python -m bitwordle play --answers answers.txt --guesses guesses.txt

Self-play over the answer list:

    python -m bitwordle bench --answers answers.txt --guesses guesses.txt --sample 200
"""

import argparse
import random
import sys
from typing import Callable, List, Optional

from .codec import DEFAULT_WORD_LENGTH, load_words
from .errors import BitwordleError
from .solver import (SolverLoop, SolverState, benchmark, print_evaluation,
                     print_results)

QUIT_WORDS = {"q", "quit", "exit"}


def play(solver: SolverLoop, preview: int = 10,
         read: Callable[[str], str] = input) -> SolverState:
    """Interactive loop: recommend, read feedback, prune, repeat."""
    while not solver.finished:
        print("Working...")
        evaluation = solver.recommend()
        print_evaluation(evaluation, solver.candidates, preview)

        while True:
            line = read("> ").strip()
            if line.lower() in QUIT_WORDS:
                print("bye!")
                return solver.state
            if solver.submit_feedback(line):
                break
            print(f"Invalid feedback: {solver.last_error}")

        print(solver.mask.describe())

    if solver.state is SolverState.SOLVED:
        print(f"Solved in {solver.turns} guesses!")
    return solver.state


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="bitwordle",
                                 description="Brute-force Wordle solver")
    ap.add_argument("mode", choices=["play", "bench"],
                    help="play interactively or self-play the answer list")
    ap.add_argument("--answers", default="valid_answers.txt",
                    help="file of possible answers")
    ap.add_argument("--guesses", default="valid_guesses.txt",
                    help="file of allowed guesses")
    ap.add_argument("--length", type=int, default=DEFAULT_WORD_LENGTH,
                    help="word length")
    ap.add_argument("--first-guess", default=None,
                    help="fixed opening guess (skips the first evaluation)")
    ap.add_argument("--threads", type=int, default=None,
                    help="worker threads (default: all cores)")
    ap.add_argument("--preview", type=int, default=10,
                    help="how many remaining candidates to list")
    ap.add_argument("--max-turns", type=int, default=None,
                    help="bench: fail an attempt after this many guesses")
    ap.add_argument("--sample", type=int, default=None,
                    help="bench: only play this many random answers")
    ap.add_argument("--seed", type=int, default=42,
                    help="bench: seed for --sample")
    ap.add_argument("-v", "--verbose", action="store_true",
                    help="print evaluation timings")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        print("Loading word lists...")
        answers = load_words(args.answers, args.length)
        guesses = load_words(args.guesses, args.length)
        print(f"  Answers: {len(answers)} words")
        print(f"  Guesses: {len(guesses)} words")

        solver = SolverLoop(answers, guesses, first_guess=args.first_guess,
                            n_threads=args.threads, verbose=args.verbose)

        if args.mode == "play":
            play(solver, preview=args.preview)
        else:
            words = answers.words()
            if args.sample is not None:
                random.seed(args.seed)
                words = random.sample(words, min(args.sample, len(words)))
            results = benchmark(solver, words, max_turns=args.max_turns)
            print_results(results)
    except (BitwordleError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nbye!")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
