"""
Certificate engine data models.

Records are immutable value objects rebuilt on every fetch cycle.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.config import (
    DEFAULT_CATEGORY,
    DEFAULT_TRUST_RANK,
    NEVER_EXPIRES,
    NO_DESCRIPTION,
    UNKNOWN_ISSUER_NAME,
    UNTITLED_CERTIFICATE,
)


# =============================================================================
# Error codes
# =============================================================================

class ErrorCode:
    """Error code registry for decode, lookup and verification failures."""
    # Identifier validation (local, no read performed)
    ID_MISSING = "ID_MISSING"
    ID_BAD_PREFIX = "ID_BAD_PREFIX"
    ID_TOO_SHORT = "ID_TOO_SHORT"
    ID_NOT_HEX = "ID_NOT_HEX"

    # Ledger reads
    LOOKUP_FAILED = "LOOKUP_FAILED"
    NOT_FOUND = "NOT_FOUND"

    # Decoding
    WRONG_TYPE = "WRONG_TYPE"
    INVALID_STRUCTURE = "INVALID_STRUCTURE"


# Recoverability mapping: only transport failures are worth retrying
ERROR_RECOVERABILITY = {
    ErrorCode.ID_MISSING: False,
    ErrorCode.ID_BAD_PREFIX: False,
    ErrorCode.ID_TOO_SHORT: False,
    ErrorCode.ID_NOT_HEX: False,
    ErrorCode.LOOKUP_FAILED: True,
    ErrorCode.NOT_FOUND: False,
    ErrorCode.WRONG_TYPE: False,
    ErrorCode.INVALID_STRUCTURE: False,
}


# =============================================================================
# Ledger records
# =============================================================================

class Credential(BaseModel):
    """Reconciled certificate record.

    expires_at_ms == 0 means the certificate never expires. bounty_amount
    is None when no bounty is attached, which is not the same as a zero
    bounty. issued_at_is_fallback marks records whose issued_at_ms was
    filled in with the decode time because the ledger carried none.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    owner_address: str = ""
    issuer_address: str = ""
    issuer_display_name: str = UNKNOWN_ISSUER_NAME
    category: int = DEFAULT_CATEGORY
    title: str = UNTITLED_CERTIFICATE
    description: str = NO_DESCRIPTION
    content_address: str = ""
    content_url: str = ""
    issued_at_ms: int = 0
    expires_at_ms: int = NEVER_EXPIRES
    trust_rank: int = DEFAULT_TRUST_RANK
    bounty_amount: Optional[int] = None
    issued_at_is_fallback: bool = False

    @property
    def never_expires(self) -> bool:
        return self.expires_at_ms == NEVER_EXPIRES

    def is_expired_at(self, now_ms: int) -> bool:
        """True once a finite expiry lies strictly before now_ms."""
        return self.expires_at_ms > 0 and self.expires_at_ms < now_ms

    @property
    def has_bounty(self) -> bool:
        return self.bounty_amount is not None


class UserProfile(BaseModel):
    """On-chain holder profile."""
    model_config = ConfigDict(frozen=True)

    id: str
    owner: str = ""
    display_name: str = ""
    total_certs: int = 0
    trust_rank: int = DEFAULT_TRUST_RANK
    reputation: int = 0
    joined_at_ms: int = 0
    joined_at_is_fallback: bool = False


class AdminCap(BaseModel):
    """Issuing capability held by an institution."""
    model_config = ConfigDict(frozen=True)

    id: str
    institution_name: str = UNKNOWN_ISSUER_NAME
    institution_address: str = ""
    total_issued: int = 0
    authorized_types: List[int] = Field(default_factory=list)


# =============================================================================
# Verification
# =============================================================================

class VerificationVerdict(BaseModel):
    """Result of verifying one certificate identifier.

    Exactly one of record/error is set. An expired certificate is still
    valid: is_expired is reported separately.
    """
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    record: Optional[Credential] = None
    is_expired: Optional[bool] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @model_validator(mode="after")
    def _record_xor_error(self) -> "VerificationVerdict":
        if (self.record is None) == (self.error is None):
            raise ValueError("verdict must carry exactly one of record or error")
        if self.is_valid and self.record is None:
            raise ValueError("a valid verdict must carry a record")
        return self

    @property
    def recoverable(self) -> bool:
        """Whether retrying the same identifier could change the outcome."""
        if self.error_code is None:
            return False
        return ERROR_RECOVERABILITY.get(self.error_code, False)

    @classmethod
    def valid(cls, record: Credential, is_expired: bool) -> "VerificationVerdict":
        return cls(is_valid=True, record=record, is_expired=is_expired)

    @classmethod
    def invalid(cls, error: str, code: str) -> "VerificationVerdict":
        return cls(is_valid=False, error=error, error_code=code)


# =============================================================================
# Achievements
# =============================================================================

class AchievementTier(BaseModel):
    """Ranked achievement level unlocked at an issued-count threshold."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    tier: int
    required_count: int
    benefits: List[str] = Field(default_factory=list)


class AchievementProgress(BaseModel):
    """Snapshot of an issuer's position on the tier ladder."""
    count: int
    current_tier: AchievementTier
    next_tier: Optional[AchievementTier] = None
    progress_percent: float
    remaining: int = 0
    unlocked: List[AchievementTier] = Field(default_factory=list)
