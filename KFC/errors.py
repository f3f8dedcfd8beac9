"""
KFC error taxonomy

- ConnectivityError: deployment/pod not found, no running replicas, resolution timeout
- StreamError: the follow stream was severed mid-read (or ended)
- FilterCompileError: invalid filter pattern (never fatal, the filter fails open)
- DetectorConfigError: invalid error-detector rule document
"""


class KFCError(Exception):
    """Base class for all KFC errors"""


class ConnectivityError(KFCError):
    """Raised when the follow target cannot be resolved"""


class StreamError(KFCError):
    """Raised when an established log stream is severed"""


class FilterCompileError(KFCError):
    """Raised when a filter pattern is not a valid regular expression"""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid filter pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class DetectorConfigError(KFCError):
    """Raised when an error-detector rule document cannot be used"""
