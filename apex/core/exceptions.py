"""
APEX custom exceptions.
"""


class ApexError(Exception):
    """Base exception for APEX."""

    pass


class ApexConfigError(ApexError):
    """Invalid threshold, window or risk parameter supplied by the caller."""

    pass


class ApexDataError(ApexError):
    """Data or snapshot error."""

    pass


class InsufficientDataError(ApexDataError):
    """Fewer candles or periods than a calculation requires."""

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


class MalformedSnapshotError(ApexDataError):
    """A required snapshot field is missing or not a finite number."""

    def __init__(self, missing: list):
        self.missing = list(missing)
        super().__init__(f"Missing or invalid fields: {', '.join(self.missing)}")
