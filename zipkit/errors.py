class ZipKitError(Exception):
    """Base class for zipkit-specific errors."""


# Channel level
class UnexpectedEofError(ZipKitError, EOFError):
    """The source ran dry before a fixed-size read was satisfied."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"Unexpected EOF: expected {expected} bytes, got {received}")


class WriteZeroError(ZipKitError, OSError):
    """The sink accepted zero bytes while data remained to be written."""


# Archive structure
class InvalidArchiveError(ZipKitError):
    pass


class UnsupportedArchiveError(ZipKitError):
    pass


class InvalidPasswordError(ZipKitError):
    pass
