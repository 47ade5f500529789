"""Certificate engine exceptions mapped to error codes.

- DecodeError: payload present but unparseable or of the wrong type
  (fatal to that record only; aggregation skips and continues)
- LedgerLookupError: transport failure on a single read (logged, skipped)
- ValidationError: malformed caller-supplied identifier (no read performed)
- NotFoundError: well-formed identifier whose object does not exist

The verifier never raises these to its caller; it turns them into a
negative verdict.
"""

from .models import ErrorCode


class CertificateError(Exception):
    """Base exception for certificate engine operations.

    Carries an error code that maps to ErrorCode constants.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class DecodeError(CertificateError):
    """Raw ledger payload could not be turned into a record.

    Used when:
    - The object's type tag lacks the expected type-name suffix (WRONG_TYPE)
    - The type matches but there are no decodable fields (INVALID_STRUCTURE)
    """

    def __init__(self, message: str = "Payload could not be decoded", code: str = ErrorCode.INVALID_STRUCTURE):
        super().__init__(code, message)


class LedgerLookupError(CertificateError):
    """Read-service round-trip failed.

    Covers network errors, timeouts, HTTP error statuses and JSON-RPC
    error payloads. Recoverable: the caller may retry.
    """

    def __init__(self, message: str = "Ledger lookup failed"):
        super().__init__(ErrorCode.LOOKUP_FAILED, message)


class ValidationError(CertificateError):
    """Caller-supplied identifier is malformed."""

    def __init__(self, message: str, code: str):
        super().__init__(code, message)


class NotFoundError(CertificateError):
    """Identifier is well-formed but no object exists for it."""

    def __init__(self, message: str = "Object not found"):
        super().__init__(ErrorCode.NOT_FOUND, message)
