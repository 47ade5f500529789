"""Single-certificate verification.

verify() never raises for an expected outcome. A malformed identifier is
rejected locally before any read. Otherwise one authoritative point
lookup is made and the result is returned as a VerificationVerdict.

Expiry does not affect validity: an expired certificate was genuinely
issued, so it verifies as valid with is_expired=True. Only forgeries,
missing objects and unreadable structures are invalid.

No retries are made here; the caller owns retry policy (see
VerificationVerdict.recoverable).
"""

import logging
import string
from typing import Optional

from app.core.config import VerifierConfig

from .decoder import Clock, decode_credential, now_ms
from .exceptions import DecodeError, LedgerLookupError, NotFoundError, ValidationError
from .models import ErrorCode, VerificationVerdict
from .read_client import LedgerReadService

log = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits)

MSG_ID_MISSING = "Certificate ID is required"
MSG_ID_BAD_PREFIX = "Invalid certificate ID: expected a hexadecimal object ID starting with {prefix}"
MSG_ID_TOO_SHORT = "Certificate ID is too short"
MSG_ID_NOT_HEX = "Certificate ID must be a valid hexadecimal string"
MSG_NOT_FOUND = "Certificate not found on the blockchain"
MSG_WRONG_TYPE = "This object is not a valid certificate"
MSG_INVALID_STRUCTURE = "Certificate data has an invalid structure"
MSG_LOOKUP_FAILED = "Failed to verify certificate: {detail}"


def validate_certificate_id(identifier: Optional[str], config: Optional[VerifierConfig] = None) -> str:
    """Check an identifier's shape without touching the network.

    Returns:
        The stripped identifier.

    Raises:
        ValidationError: With a distinct code and message per failure.
    """
    config = config or VerifierConfig()
    if identifier is None or not identifier.strip():
        raise ValidationError(MSG_ID_MISSING, ErrorCode.ID_MISSING)

    identifier = identifier.strip()
    if not identifier.startswith(config.id_prefix):
        raise ValidationError(
            MSG_ID_BAD_PREFIX.format(prefix=config.id_prefix), ErrorCode.ID_BAD_PREFIX
        )
    if len(identifier) < config.min_id_length:
        raise ValidationError(MSG_ID_TOO_SHORT, ErrorCode.ID_TOO_SHORT)

    remainder = identifier[len(config.id_prefix):]
    if not remainder or not all(ch in _HEX_DIGITS for ch in remainder):
        raise ValidationError(MSG_ID_NOT_HEX, ErrorCode.ID_NOT_HEX)
    return identifier


class CertificateVerifier:
    """Verifies certificate identifiers against the ledger.

    Holds no per-call state; concurrent verify() calls are independent.
    """

    def __init__(
        self,
        reader: LedgerReadService,
        config: Optional[VerifierConfig] = None,
        clock: Clock = now_ms,
    ):
        self._reader = reader
        self._config = config or VerifierConfig()
        self._clock = clock

    async def _lookup(self, object_id: str) -> dict:
        raw = await self._reader.get_object(object_id)
        if raw is None:
            raise NotFoundError(f"No object {object_id}")
        return raw

    async def verify(self, identifier: Optional[str]) -> VerificationVerdict:
        try:
            object_id = validate_certificate_id(identifier, self._config)
        except ValidationError as e:
            log.info(f"Rejected certificate id locally: {e.code}")
            return VerificationVerdict.invalid(e.message, e.code)

        try:
            raw = await self._lookup(object_id)
        except NotFoundError as e:
            return VerificationVerdict.invalid(MSG_NOT_FOUND, e.code)
        except LedgerLookupError as e:
            log.warning(
                f"Lookup failed verifying {object_id[:12]}...: {e.message}",
                extra={"object_id": object_id},
            )
            return VerificationVerdict.invalid(
                MSG_LOOKUP_FAILED.format(detail=e.message), ErrorCode.LOOKUP_FAILED
            )

        try:
            record = decode_credential(
                raw, object_id, type_suffix=self._config.certificate_type_suffix
            )
        except DecodeError as e:
            log.info(f"Object {object_id[:12]}... failed decode: {e.message}")
            if e.code == ErrorCode.WRONG_TYPE:
                return VerificationVerdict.invalid(MSG_WRONG_TYPE, ErrorCode.WRONG_TYPE)
            return VerificationVerdict.invalid(MSG_INVALID_STRUCTURE, ErrorCode.INVALID_STRUCTURE)

        is_expired = record.is_expired_at(self._clock())
        log.info(
            f"Verified certificate {object_id[:12]}... expired={is_expired}",
            extra={"object_id": object_id},
        )
        return VerificationVerdict.valid(record, is_expired)


async def verify_certificate(
    reader: LedgerReadService,
    identifier: Optional[str],
    config: Optional[VerifierConfig] = None,
) -> VerificationVerdict:
    """Convenience wrapper around CertificateVerifier.verify()."""
    return await CertificateVerifier(reader, config).verify(identifier)
