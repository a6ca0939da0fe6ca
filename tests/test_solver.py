import numpy as np
import pytest

from bitwordle.codec import pack_words
from bitwordle.errors import InconsistencyError
from bitwordle.solver import SolverLoop, SolverState, benchmark, format_duration


def test_self_play_solves_trace(small_vocab):
    solver = SolverLoop(small_vocab)
    turns, guesses = solver.solve("trace")
    assert solver.state is SolverState.SOLVED
    assert turns <= 3
    assert guesses[-1] == "trace"


def test_first_turn_tie_goes_to_first_candidate(small_vocab):
    solver = SolverLoop(small_vocab)
    evaluation = solver.recommend()
    assert solver.state is SolverState.AWAITING_FEEDBACK
    # every word leaves each hypothesis alone: all score 4
    assert evaluation.best.text == "crane"
    assert evaluation.runner_up.text == "slate"
    assert evaluation.best_score == 4
    assert evaluation.mean_remaining == 1.0


def test_self_play_whole_vocabulary(tricky_vocab):
    solver = SolverLoop(tricky_vocab)
    results = benchmark(solver, verbose=False)
    assert results['total'] == len(tricky_vocab)
    assert sum(results['distribution'].values()) == len(tricky_vocab)
    assert results['worst'] <= len(tricky_vocab)


def test_self_play_with_separate_guess_pool(tricky_vocab):
    answers = pack_words(["speed", "steep", "sheep", "geese"])
    solver = SolverLoop(answers, tricky_vocab)
    for word in answers.words():
        turns, guesses = solver.solve(word)
        assert guesses[-1] == word
        assert solver.state is SolverState.SOLVED


def test_answers_are_added_to_guess_pool():
    answers = pack_words(["crane", "slate"])
    guesses = pack_words(["xylyl"])
    solver = SolverLoop(answers, guesses)
    assert solver.guesses.words() == ["xylyl", "crane", "slate"]


def test_single_candidate_is_recommended_directly(small_vocab):
    solver = SolverLoop(small_vocab)
    solver.recommend()
    solver.apply_oracle("trace")
    assert solver.candidates.words() == ["trace"]
    assert solver.state is SolverState.AWAITING_GUESS
    evaluation = solver.recommend()
    assert evaluation.best.text == "trace"
    assert solver.apply_oracle("trace") is SolverState.SOLVED
    assert solver.turns == 2


def test_first_guess_preset(small_vocab):
    solver = SolverLoop(small_vocab, first_guess="place")
    evaluation = solver.recommend()
    assert evaluation.best.text == "place"
    assert evaluation.best_score is None
    assert evaluation.mean_remaining is None
    with pytest.raises(ValueError):
        SolverLoop(small_vocab, first_guess="zzzzz")


def test_solve_unknown_answer(small_vocab):
    with pytest.raises(ValueError):
        SolverLoop(small_vocab).solve("steep")


def test_answer_missing_from_pool_is_fatal():
    solver = SolverLoop(pack_words(["crane", "slate", "place"]))
    solver.recommend()
    with pytest.raises(InconsistencyError):
        solver.apply_oracle("trace")
    assert solver.state is SolverState.EXHAUSTED
    assert "trace" in solver.exhausted_reason


def test_wrong_last_candidate_is_fatal():
    solver = SolverLoop(pack_words(["crane", "slate", "place"]))
    best = solver.recommend().best.text
    answer, decoy = [w for w in ["crane", "slate", "place"] if w != best]
    solver.mask.filter = lambda words: np.array([w.text == decoy for w in words])
    with pytest.raises(InconsistencyError):
        solver.apply_oracle(answer)
    assert solver.state is SolverState.EXHAUSTED


def test_max_turns(small_vocab):
    solver = SolverLoop(small_vocab, first_guess="crane")
    with pytest.raises(InconsistencyError):
        solver.solve("trace", max_turns=1)
    assert solver.state is SolverState.EXHAUSTED


def test_calls_out_of_order(small_vocab):
    solver = SolverLoop(small_vocab)
    with pytest.raises(RuntimeError):
        solver.apply_oracle("trace")
    solver.recommend()
    with pytest.raises(RuntimeError):
        solver.recommend()


# ---------------------------------------------------------------------------
# Interactive feedback
# ---------------------------------------------------------------------------

def test_interactive_round(small_vocab):
    solver = SolverLoop(small_vocab)
    solver.recommend()
    assert solver.submit_feedback("c?r!a!ne!")
    assert solver.candidates.words() == ["trace"]
    assert solver.state is SolverState.AWAITING_GUESS

    assert solver.recommend().best.text == "trace"
    assert solver.submit_feedback("t!r!a!c!e!")
    assert solver.state is SolverState.SOLVED
    assert solver.history == ["crane", "trace"]


def test_malformed_feedback_changes_nothing(small_vocab):
    solver = SolverLoop(small_vocab)
    solver.recommend()
    mask = solver.mask.copy()
    candidates = solver.candidates

    assert solver.submit_feedback("cr4ne") is False
    assert solver.last_error
    assert solver.state is SolverState.AWAITING_FEEDBACK
    assert solver.mask == mask
    assert solver.candidates is candidates
    assert solver.turns == 0


def test_feedback_ruling_out_everything_is_rejected(small_vocab):
    solver = SolverLoop(small_vocab)
    solver.recommend()
    mask = solver.mask.copy()
    assert solver.submit_feedback("q!u!i!r!k") is False
    assert "rules out" in solver.last_error
    assert solver.mask == mask
    assert len(solver.candidates) == 4


def test_all_exact_feedback_solves_word_outside_answers():
    solver = SolverLoop(pack_words(["crane", "slate", "place"]), pack_words(["trace"]))
    solver.recommend()
    assert solver.submit_feedback("t!r!a!c!e!")
    assert solver.state is SolverState.SOLVED
    assert solver.history == ["trace"]
    assert solver.last_error is None
    assert len(solver.candidates) == 0


def test_format_duration():
    assert format_duration(0) == "00:00:00"
    assert format_duration(3725) == "01:02:05"
    assert format_duration(59.6) == "00:01:00"
