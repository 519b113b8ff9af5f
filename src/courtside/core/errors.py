"""
Error values returned by the engine.

Expected failures (a roster that is too small, a score that is not a finished
game) are returned as values so callers can present them; only structural
misuse raises.
"""


class ValidationError:
    """A precondition that was not met; no state was changed."""

    def __init__(self, code, message, details=None):
        self.code = code
        self.message = message
        self.details = details if details else {}

    def to_dict(self):
        return {'code': self.code, 'message': self.message, 'details': self.details}

    def __repr__(self):
        return f"ValidationError(code={self.code}, message={self.message})"


class InvalidEdit:
    """A score edit that does not form a complete, legal game."""

    def __init__(self, code, message):
        self.code = code
        self.message = message

    def to_dict(self):
        return {'code': self.code, 'message': self.message}

    def __repr__(self):
        return f"InvalidEdit(code={self.code}, message={self.message})"


class IllegalStateError(Exception):
    """Raised when the engine is asked to do something structurally impossible."""
