class ServiceError(Exception):
    """Domain failure carrying the HTTP status the API should answer with."""

    status_code = 400

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        body = {'success': False, 'message': self.message}
        body.update(self.payload)
        return body


class NotFoundError(ServiceError):
    status_code = 404


class UpstreamError(ServiceError):
    """Raised when an external provider (image host, mail) fails."""
    status_code = 502
