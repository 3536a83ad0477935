# testgenius/core/errors.py
"""
Error taxonomy shared by the gateway, the session machine and the API layer.
"""


class TestGeniusError(Exception):
    """Base class for all service errors"""
    __test__ = False


class InputValidationError(TestGeniusError, ValueError):
    """Bad user input; reported immediately, no state transition happens"""


class AnswerKeyMismatchError(InputValidationError):
    """Answer key length does not match the number of questions"""

    def __init__(self, key_count: int, question_count: int):
        self.key_count = key_count
        self.question_count = question_count
        super().__init__(
            f"Answer key has {key_count} answers, but there are {question_count} questions. "
            "Please ensure they match."
        )


class DocumentError(InputValidationError):
    """Uploaded file is unsupported, too large or unreadable"""


class IllegalTransitionError(InputValidationError):
    """Event is not accepted in the current session step"""

    def __init__(self, step: str, event: str, reason: str = None):
        self.step = step
        self.event = event
        message = f"Cannot apply {event} while in {step}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class GatewayError(TestGeniusError):
    """AI service failure or malformed AI response"""


class ReportError(TestGeniusError):
    """Results report could not be rendered"""


class PersistenceError(TestGeniusError):
    """History could not be read or written"""


class SessionNotFoundError(TestGeniusError, LookupError):
    """Unknown or expired session id"""


class HistoryEntryNotFoundError(TestGeniusError, LookupError):
    """No stored test with the requested id"""
