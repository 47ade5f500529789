"""Certificate ledger reconciliation and verification.

Decoding, per-pass deduplication, two-phase issued-certificate
aggregation, ownership views, verification and issuer achievement tiers.
"""

from .achievements import (
    ACHIEVEMENT_TIERS,
    achievement_progress,
    current_tier,
    next_tier,
    progress_percent,
    unlocked_tiers,
)
from .aggregator import AggregationResult, CertificateAggregator, fetch_issued_certificates
from .decoder import decode_admin_cap, decode_credential, decode_user_profile
from .dedup import Deduplicator
from .exceptions import (
    CertificateError,
    DecodeError,
    LedgerLookupError,
    NotFoundError,
    ValidationError,
)
from .models import (
    AchievementProgress,
    AchievementTier,
    AdminCap,
    Credential,
    ErrorCode,
    UserProfile,
    VerificationVerdict,
)
from .ownership import (
    CertificateIndex,
    by_issuer,
    by_owner,
    fetch_admin_caps,
    fetch_owned_certificates,
    fetch_user_profile,
)
from .read_client import LedgerReadService, SuiReadClient
from .verifier import CertificateVerifier, validate_certificate_id, verify_certificate

__all__ = [
    # Exceptions
    "CertificateError",
    "DecodeError",
    "LedgerLookupError",
    "NotFoundError",
    "ValidationError",
    # Models
    "AchievementProgress",
    "AchievementTier",
    "AdminCap",
    "Credential",
    "ErrorCode",
    "UserProfile",
    "VerificationVerdict",
    # Read service
    "LedgerReadService",
    "SuiReadClient",
    # Decoding
    "decode_credential",
    "decode_user_profile",
    "decode_admin_cap",
    # Aggregation
    "Deduplicator",
    "AggregationResult",
    "CertificateAggregator",
    "fetch_issued_certificates",
    # Ownership
    "CertificateIndex",
    "by_owner",
    "by_issuer",
    "fetch_owned_certificates",
    "fetch_user_profile",
    "fetch_admin_caps",
    # Verification
    "CertificateVerifier",
    "validate_certificate_id",
    "verify_certificate",
    # Achievements
    "ACHIEVEMENT_TIERS",
    "current_tier",
    "next_tier",
    "progress_percent",
    "unlocked_tiers",
    "achievement_progress",
]
