"""Errors raised by the service layer and shown to the user as-is"""
from rest_framework import status


class ServiceError(Exception):
    """Base class for failures that carry a user-facing message"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def as_response_data(self):
        return {'error': self.message}


class ValidationFailed(ServiceError):
    pass


class DuplicateEntry(ServiceError):
    pass


class ReferenceNotFound(ServiceError):
    pass


class EntryNotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class EmptyImport(ServiceError):
    pass
