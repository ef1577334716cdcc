"""Exceptions raised by the scanning engine."""


class ScanError(RuntimeError):
    """Base class for failures that end a scan without a result."""


class SingularMatrixError(ScanError):
    """Raised when a linear system or matrix has no stable solution."""


class SingularTransformError(ScanError):
    """Raised when the corner correspondences do not admit a homography."""


class UninvertibleTransformError(ScanError):
    """Raised when the computed homography cannot be inverted."""


class DecodeError(ScanError):
    """Raised when source bytes cannot be decoded as an image."""
