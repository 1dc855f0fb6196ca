"""Error taxonomy shared by the workflow, the store and the HTTP layer.

Every error carries the HTTP status it maps to; ``create_app`` registers one
handler that renders any of them as ``{"message": ...}``.
"""


class AppError(Exception):
    status_code = 500
    default_message = 'An unexpected error occurred'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'message': self.message}


class Unauthenticated(AppError):
    status_code = 401
    default_message = 'Not authenticated'


class Forbidden(AppError):
    status_code = 403
    default_message = 'Not authorized'


class NotFound(AppError):
    status_code = 404
    default_message = 'Not found'


class InvalidRequest(AppError):
    status_code = 400
    default_message = 'Invalid request'


class MatchStateConflict(InvalidRequest):
    """A guarded match update found the match in a different status."""


class UpstreamFailure(AppError):
    status_code = 400
    default_message = 'Face analysis failed'


class NoFaceDetected(UpstreamFailure):
    default_message = 'No face detected in the image'


class UpstreamError(UpstreamFailure):
    default_message = 'Face++ API error'

    def __init__(self, message=None, concurrency_limited=False):
        super().__init__(message)
        self.concurrency_limited = concurrency_limited
