"""Exceptions raised by the simulado engine."""


class SimuladoError(Exception):
    """Base class for engine errors."""


class AuthenticationRequired(SimuladoError):
    """A durable-backend operation was invoked without a resolved user."""


class ProgressStoreError(SimuladoError):
    """A write to the progress backend failed."""


class InvalidQuestion(SimuladoError, ValueError):
    """A corpus record does not describe a valid question."""


class InsufficientQuestions(SimuladoError):
    """Too few questions to run a mock exam."""

    def __init__(self, composition):
        self.composition = composition
        super().__init__(
            f"Not enough questions for a mock exam: composed {composition.size}/{composition.target}"
        )
