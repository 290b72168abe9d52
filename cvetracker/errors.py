"""Failure kinds shared by the stores, the registry and the HTTP routes."""


class CveTrackerError(Exception):
    status_code = 500
    default_message = "Internal Server Error."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CveTrackerError):
    status_code = 400
    default_message = "Invalid data submitted."


class InvalidIdentifier(CveTrackerError):
    status_code = 400
    default_message = "Invalid ID format."


class NotFound(CveTrackerError):
    status_code = 404
    default_message = "Vulnerability not found."


class MediumUnavailable(CveTrackerError):
    status_code = 500
    default_message = "Storage is unavailable."
