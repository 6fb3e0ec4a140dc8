"""Business errors raised by the enrollment request engine.

Each class carries a stable ``code`` and the HTTP status the transport layer
maps it to. Callers should dispatch on the class, not on the message.
"""

from fastapi import status


class EnrollmentRequestError(Exception):
    code = "ENROLLMENT_REQUEST_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EnrollmentRequestError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyEnrolledError(EnrollmentRequestError):
    code = "ALREADY_ENROLLED"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Student is already enrolled in this course"):
        super().__init__(message)


class RequestAlreadyPendingError(EnrollmentRequestError):
    code = "REQUEST_ALREADY_PENDING"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "An enrollment request for this course is already pending"):
        super().__init__(message)


class RequestAlreadyApprovedError(EnrollmentRequestError):
    code = "REQUEST_ALREADY_APPROVED"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "An enrollment request for this course was already approved"):
        super().__init__(message)


class InvalidTransitionError(EnrollmentRequestError):
    code = "INVALID_TRANSITION"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Only pending requests can be reviewed"):
        super().__init__(message)


class InvalidArgumentError(EnrollmentRequestError):
    code = "INVALID_ARGUMENT"
    status_code = status.HTTP_400_BAD_REQUEST
