from typing import Optional


class XhrMockException(Exception):
    """Base class for all xhrmock errors."""

    message = 'An unexpected error occurred in the XMLHttpRequest mock.'

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class DOMException(XhrMockException):
    """
    Protocol violation raised by the public request API.

    Mirrors the browser's DOMException: callers tell the kinds apart by
    ``name`` as well as by class.
    """

    name = 'Error'
    message = 'The operation failed.'


class InvalidStateError(DOMException):
    """Raised when an API is called in a readyState that forbids it."""

    name = 'InvalidStateError'
    message = 'The object is in an invalid state.'


class SecurityError(DOMException):
    """Raised by open() for forbidden request methods."""

    name = 'SecurityError'
    message = 'The operation is insecure.'


class NotSupportedError(DOMException):
    """Raised for features the mock deliberately does not model."""

    name = 'NotSupportedError'
    message = 'The operation is not supported.'


class XhrSyntaxError(DOMException, SyntaxError):
    """Raised for arguments that are not valid HTTP methods, header names or values."""

    name = 'SyntaxError'
    message = 'The string did not match the expected pattern.'


class MockUsageError(XhrMockException):
    """
    A mock response method was called in a state where it makes no sense.

    This signals a bug in the test driving the mock, not a simulated
    network condition.
    """

    message = 'Mock usage error detected.'
