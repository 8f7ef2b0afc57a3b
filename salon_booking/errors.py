from enum import Enum


class ErrorCode(str, Enum):
    # 400
    INVALID_INPUT = 'INVALID_INPUT'
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    INVALID_TRANSITION = 'INVALID_TRANSITION'
    INVALID_RESET_TOKEN = 'INVALID_RESET_TOKEN'

    # 401
    UNAUTHORIZED = 'UNAUTHORIZED'
    INVALID_CREDENTIALS = 'INVALID_CREDENTIALS'
    INVALID_REFRESH_TOKEN = 'INVALID_REFRESH_TOKEN'
    ACCOUNT_DEACTIVATED = 'ACCOUNT_DEACTIVATED'

    # 403
    FORBIDDEN = 'FORBIDDEN'
    INSUFFICIENT_PERMISSIONS = 'INSUFFICIENT_PERMISSIONS'

    # 404
    RESOURCE_NOT_FOUND = 'RESOURCE_NOT_FOUND'
    USER_NOT_FOUND = 'USER_NOT_FOUND'

    # 409
    UNIQUE_CONSTRAINT_VIOLATION = 'UNIQUE_CONSTRAINT_VIOLATION'
    FOREIGN_KEY_CONSTRAINT_VIOLATION = 'FOREIGN_KEY_CONSTRAINT_VIOLATION'
    APPOINTMENT_SLOT_TAKEN = 'APPOINTMENT_SLOT_TAKEN'
    EMAIL_EXISTS = 'EMAIL_EXISTS'

    # 429
    TOO_MANY_PASSWORD_ATTEMPTS = 'TOO_MANY_PASSWORD_ATTEMPTS'

    # 5xx
    INTERNAL_SERVER_ERROR = 'INTERNAL_SERVER_ERROR'
    DATABASE_ERROR = 'DATABASE_ERROR'
    DATABASE_UNAVAILABLE = 'DATABASE_UNAVAILABLE'
    OPERATION_TIMEOUT = 'OPERATION_TIMEOUT'


ERROR_MESSAGES = {
    ErrorCode.INVALID_INPUT: 'The input provided is invalid. Please check and try again.',
    ErrorCode.VALIDATION_ERROR: 'Please check your input and try again.',
    ErrorCode.INVALID_TRANSITION: 'The appointment cannot move to the requested status.',
    ErrorCode.INVALID_CREDENTIALS: 'The email or password you entered is incorrect. Please try again.',
    ErrorCode.INVALID_REFRESH_TOKEN: 'Your session has expired. Please log in again.',
    ErrorCode.INVALID_RESET_TOKEN: 'This password reset link has expired or is invalid. Please request a new one.',
    ErrorCode.UNAUTHORIZED: 'You need to be logged in to do that.',
    ErrorCode.ACCOUNT_DEACTIVATED: 'This account has been deactivated. Please contact support for assistance.',
    ErrorCode.FORBIDDEN: "You don't have permission to do that.",
    ErrorCode.INSUFFICIENT_PERMISSIONS: "You don't have sufficient permissions to perform this action.",
    ErrorCode.RESOURCE_NOT_FOUND: "We couldn't find what you're looking for.",
    ErrorCode.USER_NOT_FOUND: 'User not found.',
    ErrorCode.UNIQUE_CONSTRAINT_VIOLATION: 'This value already exists. Please use a different one.',
    ErrorCode.FOREIGN_KEY_CONSTRAINT_VIOLATION: 'A referenced record does not exist. Please check your input and try again.',
    ErrorCode.APPOINTMENT_SLOT_TAKEN: 'The stylist already has an appointment at this time.',
    ErrorCode.EMAIL_EXISTS: 'An account with this email already exists.',
    ErrorCode.TOO_MANY_PASSWORD_ATTEMPTS: "You've tried too many times. Please wait a while before trying again.",
    ErrorCode.INTERNAL_SERVER_ERROR: 'Something went wrong on our end. Please try again later.',
    ErrorCode.DATABASE_ERROR: 'A database error occurred. Please try again later.',
    ErrorCode.DATABASE_UNAVAILABLE: 'The service is temporarily busy. Please retry your request.',
    ErrorCode.OPERATION_TIMEOUT: 'The operation timed out. Your request may or may not have completed.',
}


class AppError(Exception):
    """Base class for errors that map onto an API error response"""
    status_code = 500
    default_code = ErrorCode.INTERNAL_SERVER_ERROR

    def __init__(self, message=None, code=None, details=None):
        self.code = code or self.default_code
        self.message = message or ERROR_MESSAGES.get(self.code, 'Unexpected error')
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        error = {'code': self.code.value}
        if self.details:
            error['details'] = self.details
        return error


class ValidationError(AppError):
    status_code = 400
    default_code = ErrorCode.VALIDATION_ERROR

    @classmethod
    def for_fields(cls, fields, message='Validation failed'):
        return cls(message, details={'fields': fields})


class InvalidTransition(AppError):
    status_code = 400
    default_code = ErrorCode.INVALID_TRANSITION


class UnauthorizedError(AppError):
    status_code = 401
    default_code = ErrorCode.UNAUTHORIZED


class Forbidden(AppError):
    status_code = 403
    default_code = ErrorCode.FORBIDDEN


class NotFound(AppError):
    status_code = 404
    default_code = ErrorCode.RESOURCE_NOT_FOUND


class ConflictError(AppError):
    status_code = 409
    default_code = ErrorCode.UNIQUE_CONSTRAINT_VIOLATION


class TooManyRequests(AppError):
    status_code = 429
    default_code = ErrorCode.TOO_MANY_PASSWORD_ATTEMPTS


class DataAccessError(AppError):
    status_code = 500
    default_code = ErrorCode.DATABASE_ERROR


class TransientDataError(DataAccessError):
    """Store unreachable, lock/statement timeout or serialization failure; safe to retry"""
    status_code = 503
    default_code = ErrorCode.DATABASE_UNAVAILABLE


class DependencyTimeout(AppError):
    """A slow external dependency did not answer in time; the outcome is unknown"""
    status_code = 504
    default_code = ErrorCode.OPERATION_TIMEOUT
