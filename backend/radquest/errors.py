"""Error taxonomy for submissions and progression."""


class RadquestError(Exception):
    """Base class for domain errors."""


class InvalidSubmission(RadquestError):
    """Rejected input. Raised before anything is written.

    ``status`` is the HTTP status the API layer answers with: 400 for
    malformed input, 404 when a referenced player, level or task is unknown.
    """

    def __init__(self, reason: str, status: int = 400):
        super().__init__(reason)
        self.reason = reason
        self.status = status


class EvaluationUnavailable(RadquestError):
    """The judgment service failed, timed out or answered garbage.

    Only raised inside services.evaluation; callers always see ``None``.
    """


class PersistenceFailure(RadquestError):
    """Writing the attempt or the stats failed; nothing was committed."""
