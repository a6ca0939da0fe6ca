import pytest

from bitwordle.__main__ import main, play
from bitwordle.solver import SolverLoop, SolverState
from tests.conftest import SMALL_WORDS


@pytest.fixture
def word_files(tmp_path):
    answers = tmp_path / "answers.txt"
    answers.write_text("\n".join(SMALL_WORDS) + "\n")
    guesses = tmp_path / "guesses.txt"
    guesses.write_text("\n".join(SMALL_WORDS + ["xylyl"]) + "\n")
    return str(answers), str(guesses)


def test_bench(word_files, capsys):
    answers, guesses = word_files
    assert main(["bench", "--answers", answers, "--guesses", guesses]) == 0
    out = capsys.readouterr().out
    assert "BENCHMARK RESULTS" in out
    assert "Words tested: 4" in out


def test_bench_sample(word_files, capsys):
    answers, guesses = word_files
    assert main(["bench", "--answers", answers, "--guesses", guesses,
                 "--sample", "2", "--first-guess", "slate"]) == 0
    assert "Words tested: 2" in capsys.readouterr().out


def test_bad_vocabulary_exits_nonzero(tmp_path, capsys):
    bad = tmp_path / "bad.txt"
    bad.write_text("crane\ncr4ne\n")
    assert main(["bench", "--answers", str(bad), "--guesses", str(bad)]) == 1
    assert "Error" in capsys.readouterr().err


def test_play_reprompts_on_bad_feedback(small_vocab, capsys):
    lines = iter(["cr4ne", "c?r!a!ne!", "t!r!a!c!e!"])
    state = play(SolverLoop(small_vocab), read=lambda prompt: next(lines))
    out = capsys.readouterr().out
    assert state is SolverState.SOLVED
    assert "Invalid feedback" in out
    assert "Best word: crane" in out
    assert "Solved in 2 guesses!" in out


def test_play_quit(small_vocab, capsys):
    state = play(SolverLoop(small_vocab), read=lambda prompt: "quit")
    assert state is SolverState.AWAITING_FEEDBACK
    assert "bye!" in capsys.readouterr().out
