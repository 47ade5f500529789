"""
Certificate ledger engine configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by the on-chain contract schema, cannot change without a contract upgrade
- CONFIGURABLE: Defaults that may be overridden per deployment
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, keeping the default on bad input."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# =============================================================================
# NORMATIVE CONSTANTS (fixed by the certificate contract)
# =============================================================================

# Move type-name suffixes. The package address in front of these is deployment
# specific, so type tags are matched by substring against the suffix only.
CERTIFICATE_TYPE_SUFFIX: str = "::certificate::Certificate"
USER_PROFILE_TYPE_SUFFIX: str = "::certificate::UserProfile"
ADMIN_CAP_TYPE_SUFFIX: str = "::certificate::AdminCap"
CERTIFICATE_ISSUED_EVENT_SUFFIX: str = "::certificate::CertificateIssued"

# Object identifier shape
OBJECT_ID_PREFIX: str = "0x"
OBJECT_ID_MIN_LENGTH: int = 10

# Decoder defaults for absent or unparseable fields
UNKNOWN_ISSUER_NAME: str = "Unknown Institution"
UNTITLED_CERTIFICATE: str = "Untitled Certificate"
NO_DESCRIPTION: str = "No description provided"
DEFAULT_CATEGORY: int = 1
DEFAULT_TRUST_RANK: int = 0

# expires_at == 0 means the certificate never expires
NEVER_EXPIRES: int = 0

CATEGORY_NAMES: dict[int, str] = {
    1: "Course",
    2: "Degree",
    3: "Skill",
    4: "Achievement",
    5: "Bootcamp",
}

RANK_NAMES: dict[int, str] = {
    0: "Novice",
    1: "Intermediate",
    2: "Advanced",
    3: "Expert",
    4: "Master",
}

# 1 SUI = 10^9 MIST
MIST_PER_SUI: int = 1_000_000_000

# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================

# Page sizes for the two acquisition phases (most-recent-first)
EVENT_PAGE_SIZE: int = _env_int("CERT_EVENT_PAGE_SIZE", 50)
TX_PAGE_SIZE: int = _env_int("CERT_TX_PAGE_SIZE", 50)

# Upper bound on getOwnedObjects pages followed via nextCursor
OWNED_MAX_PAGES: int = _env_int("CERT_OWNED_MAX_PAGES", 5)

# Refresh cadence for periodic re-fetching
REFRESH_INTERVAL_SECONDS: float = float(_env_int("CERT_REFRESH_INTERVAL_SECONDS", 10))
REFRESH_MAX_BACKOFF_SECONDS: float = float(_env_int("CERT_REFRESH_MAX_BACKOFF_SECONDS", 300))

# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

RPC_URL: str = os.getenv("CERT_RPC_URL", "https://fullnode.testnet.sui.io:443")
RPC_TIMEOUT_SECONDS: float = float(_env_int("CERT_RPC_TIMEOUT_SECONDS", 10))

# Package address of the deployed certificate contract. Required to query
# the event log; when empty the aggregator goes straight to the fallback.
PACKAGE_ID: str = os.getenv("CERT_PACKAGE_ID", "")

IPFS_GATEWAY: str = os.getenv("CERT_IPFS_GATEWAY", "https://gateway.pinata.cloud/ipfs")


def certificate_issued_event_type(package_id: str = PACKAGE_ID) -> str:
    """Fully qualified Move event type for issuance events, or "" if unknown."""
    if not package_id:
        return ""
    return f"{package_id}{CERTIFICATE_ISSUED_EVENT_SUFFIX}"


@dataclass
class AggregatorConfig:
    """Configuration for the issued-certificate aggregator.

    Attributes:
        package_id: Contract package address for the event-log query.
        event_page_size: Events fetched in the event-scan phase.
        tx_page_size: Transactions fetched in the fallback phase.
        certificate_type_suffix: Type-name suffix a point lookup must carry.
        event_type_suffix: Type-name suffix identifying issuance events.
    """

    package_id: str = PACKAGE_ID
    event_page_size: int = EVENT_PAGE_SIZE
    tx_page_size: int = TX_PAGE_SIZE
    certificate_type_suffix: str = CERTIFICATE_TYPE_SUFFIX
    event_type_suffix: str = CERTIFICATE_ISSUED_EVENT_SUFFIX

    @property
    def event_type(self) -> str:
        return certificate_issued_event_type(self.package_id)


@dataclass
class VerifierConfig:
    """Configuration for single-certificate verification."""

    certificate_type_suffix: str = CERTIFICATE_TYPE_SUFFIX
    id_prefix: str = OBJECT_ID_PREFIX
    min_id_length: int = OBJECT_ID_MIN_LENGTH


@dataclass
class ReadClientConfig:
    """Configuration for the Sui JSON-RPC read client."""

    rpc_url: str = RPC_URL
    timeout_seconds: float = RPC_TIMEOUT_SECONDS
    owned_max_pages: int = OWNED_MAX_PAGES
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})
