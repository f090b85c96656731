"""
Error taxonomy for the maintenance records service.

Domain code raises these; ``hv_maintenance.main`` maps them to HTTP
responses. AI bridge errors are never mapped there: the AI router catches
them at the call site and turns them into a non-blocking notice.
"""


class MaintenanceError(Exception):
    """Base class for every error raised by the records service."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(MaintenanceError):
    status_code = 404


class ValidationFailure(MaintenanceError):
    status_code = 422


class IncompleteRecord(ValidationFailure):
    """Municipality reference is missing or points to an unknown id."""


class InvalidSentinel(ValidationFailure):
    """Title or nature is still the "Other" sentinel without companion text."""


class DuplicateStage(MaintenanceError):
    status_code = 409


class AIBridgeError(Exception):
    """Failure of the external generative-AI service. Always non-fatal."""


class AIUnavailable(AIBridgeError):
    pass


class NoImageProduced(AIBridgeError):
    pass
