"""Exceptions raised by the solver."""


class BitwordleError(Exception):
    """Base class for all solver errors."""


class WordFormatError(BitwordleError, ValueError):
    """A word could not be encoded."""

    def __init__(self, text, reason: str, detail: str = ""):
        self.text = text
        self.reason = reason
        msg = f"cannot encode {text!r}: {reason}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class VocabularyError(BitwordleError, ValueError):
    """A vocabulary file contains an invalid entry."""


class FeedbackError(BitwordleError, ValueError):
    """Annotated feedback text could not be applied."""


class InconsistencyError(BitwordleError, RuntimeError):
    """Self-play reached a state that contradicts the known answer."""


class EvaluationError(BitwordleError, RuntimeError):
    """The guess evaluation pass failed."""
