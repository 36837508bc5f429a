"""
Newsdesk Errors
===============

Failures that cross module boundaries. Not-found is never an error here:
lookups return None instead.
"""


class NewsdeskError(Exception):
    """Base class for all Newsdesk errors"""


class ConfigurationError(NewsdeskError):
    """Required deployment configuration is missing or invalid"""


class BackendError(NewsdeskError):
    """The hosted document database or auth service could not serve a call"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class PermissionDeniedError(BackendError):
    """The backend refused the call for the current credentials"""


class AuthenticationError(NewsdeskError):
    """Sign-in or token refresh was rejected"""

    def __init__(self, code, message=None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
