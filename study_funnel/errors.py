"""
Domain errors surfaced through the JSON API.

Each error carries the HTTP status the route layer maps it to. Resolving an
already-resolved notification is not an error: the record is returned as-is.
"""


class StudyFunnelError(Exception):
    """Base class for errors the API turns into an {error, details} envelope."""
    status_code = 500

    def __init__(self, message, details=None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self):
        body = {'error': self.message}
        if self.details:
            body['details'] = self.details
        return body


class NotFound(StudyFunnelError):
    """No row matches the given id or email."""
    status_code = 404


class Invalid(StudyFunnelError):
    """Malformed or missing request fields."""
    status_code = 400


class UpstreamUnavailable(StudyFunnelError):
    """SurveyMonkey could not be reached or answered with an error."""
    status_code = 500
