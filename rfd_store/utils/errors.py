"""Error taxonomy raised by the RFD record store."""

from typing import Any, Dict, List, Optional, Sequence


class RFDStoreError(Exception):
    """Base class for every error the store reports to its callers."""

    status_code: int = 500
    error: str = "RFD store error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ConflictError(RFDStoreError):
    """An insert would duplicate ``number``, ``number_string`` or ``name``."""

    status_code = 409
    error = "RFD already exists"

    def __init__(self, detail: str, fields: Sequence[str] = ()):
        super().__init__(detail)
        self.fields = list(fields)


class ValidationError(RFDStoreError):
    """Input breaks the always-populated or derived-consistency rules."""

    status_code = 422
    error = "Invalid RFD record"

    def __init__(self, detail: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(detail)
        self.errors = errors or []


class NotFoundError(RFDStoreError):
    """No record exists for the requested RFD number."""

    status_code = 404
    error = "RFD not found"

    def __init__(self, number: int):
        super().__init__(f"RFD {number} does not exist")
        self.number = number


class DurabilityError(RFDStoreError):
    """The storage medium failed to commit; the write was rolled back."""

    status_code = 503
    error = "Storage unavailable"
