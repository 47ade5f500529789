"""Raw ledger payload decoding.

Turns Sui object/event payloads into normalized records. Field names on
chain have changed between contract versions, so every logical field is
resolved through an explicit per-schema alias table and falls back to a
fixed default; nothing is coerced implicitly.

Raw object shape (the "data" member of a Sui object response):

    {
        "objectId": "0x...",
        "type": "0xPKG::certificate::Certificate",
        "content": {
            "dataType": "moveObject",
            "type": "0xPKG::certificate::Certificate",
            "fields": {"id": {"id": "0x..."}, "owner": "0x...", ...}
        }
    }
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from app.core.config import (
    ADMIN_CAP_TYPE_SUFFIX,
    CERTIFICATE_TYPE_SUFFIX,
    DEFAULT_CATEGORY,
    DEFAULT_TRUST_RANK,
    NEVER_EXPIRES,
    NO_DESCRIPTION,
    UNKNOWN_ISSUER_NAME,
    UNTITLED_CERTIFICATE,
    USER_PROFILE_TYPE_SUFFIX,
)

from .exceptions import DecodeError
from .models import AdminCap, Credential, ErrorCode, UserProfile

log = logging.getLogger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# =============================================================================
# Schema variants
# =============================================================================

@dataclass(frozen=True)
class CertificateSchema:
    """Field-name aliases for one deployed version of the certificate struct.

    Each attribute lists the on-chain field names that carry the logical
    field, in preference order.
    """
    version: str
    owner: Tuple[str, ...]
    issuer: Tuple[str, ...]
    issuer_name: Tuple[str, ...]
    category: Tuple[str, ...]
    title: Tuple[str, ...]
    description: Tuple[str, ...]
    content_address: Tuple[str, ...]
    content_url: Tuple[str, ...]
    issued_at: Tuple[str, ...]
    expires_at: Tuple[str, ...]
    trust_rank: Tuple[str, ...]
    bounty: Tuple[str, ...]


SCHEMA_V1 = CertificateSchema(
    version="v1",
    owner=("owner",),
    issuer=("issuer",),
    issuer_name=("issuer_name",),
    category=("cert_type",),
    title=("title",),
    description=("description",),
    content_address=("pinata_cid",),
    content_url=("ipfs_url",),
    issued_at=("issued_at",),
    expires_at=("expires_at",),
    trust_rank=("trust_rank",),
    bounty=("bounty_amount",),
)

SCHEMA_V2 = CertificateSchema(
    version="v2",
    owner=("recipient", "holder"),
    issuer=("issuer_address", "institution"),
    issuer_name=("institution_name",),
    category=("certificate_type", "category"),
    title=("name",),
    description=("details",),
    content_address=("content_cid", "ipfs_cid"),
    content_url=("metadata_url", "content_url"),
    issued_at=("issued_at_ms", "timestamp_ms"),
    expires_at=("expires_at_ms", "expiry"),
    trust_rank=("rank",),
    bounty=("bounty",),
)

KNOWN_SCHEMAS: Tuple[CertificateSchema, ...] = (SCHEMA_V1, SCHEMA_V2)

# Identifier and issuer fields carried by CertificateIssued events
EVENT_ID_FIELDS: Tuple[str, ...] = ("certificate_id", "cert_id", "object_id", "id")
EVENT_ISSUER_FIELDS: Tuple[str, ...] = ("issuer", "issuer_address", "institution")


def detect_schema(fields: Mapping[str, Any]) -> CertificateSchema:
    """Pick the schema variant whose aliases cover the most present fields.

    Ties go to the earlier (older) variant.
    """
    best = KNOWN_SCHEMAS[0]
    best_score = -1
    for schema in KNOWN_SCHEMAS:
        score = sum(
            1
            for aliases in (
                schema.owner, schema.issuer, schema.issuer_name, schema.category,
                schema.title, schema.description, schema.content_address,
                schema.content_url, schema.issued_at, schema.expires_at,
                schema.trust_rank, schema.bounty,
            )
            if any(name in fields for name in aliases)
        )
        if score > best_score:
            best, best_score = schema, score
    return best


# =============================================================================
# Field parsing
# =============================================================================

def parse_int(value: Any, default: Optional[int]) -> Optional[int]:
    """Parse an on-chain integer (u8/u64 arrive as JSON numbers or strings).

    Never raises: anything that is not a whole number yields default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else default
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            return int(text, 10)
        except ValueError:
            return default
    return default


def _first(fields: Mapping[str, Any], names: Tuple[str, ...]) -> Any:
    for name in names:
        value = fields.get(name)
        if value is not None:
            return value
    return None


def _text(fields: Mapping[str, Any], names: Tuple[str, ...], default: str) -> str:
    value = _first(fields, names)
    if value is None:
        return default
    text = str(value)
    return text if text else default


def _unwrap_uid(value: Any) -> str:
    """Sui UIDs serialize as {"id": "0x..."}; plain strings pass through."""
    if isinstance(value, dict):
        value = value.get("id")
    return value if isinstance(value, str) else ""


# =============================================================================
# Object access
# =============================================================================

def object_type(raw: Mapping[str, Any]) -> str:
    """Type tag of a raw object, from the object itself or its content."""
    type_tag = raw.get("type")
    if not type_tag:
        content = raw.get("content")
        if isinstance(content, dict):
            type_tag = content.get("type")
    return type_tag if isinstance(type_tag, str) else ""


def type_matches(raw: Mapping[str, Any], suffix: str) -> bool:
    """Loose substring match: the package address is deployment specific."""
    return suffix in object_type(raw)


def object_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """The Move struct fields of a raw object, or {} when there are none."""
    content = raw.get("content")
    if not isinstance(content, dict):
        return {}
    fields = content.get("fields")
    return fields if isinstance(fields, dict) else {}


def resolve_object_id(raw: Mapping[str, Any], fallback_id: str = "") -> str:
    """Object addressing is authoritative over any embedded id field."""
    structural = raw.get("objectId")
    if isinstance(structural, str) and structural:
        return structural
    embedded = _unwrap_uid(object_fields(raw).get("id"))
    if embedded:
        return embedded
    return fallback_id


def _require_fields(raw: Mapping[str, Any], suffix: str, label: str) -> Dict[str, Any]:
    if not type_matches(raw, suffix):
        raise DecodeError(
            f"Object type {object_type(raw) or '<none>'!r} is not a {label}",
            code=ErrorCode.WRONG_TYPE,
        )
    fields = object_fields(raw)
    if not fields:
        raise DecodeError(
            f"{label} object has no decodable fields",
            code=ErrorCode.INVALID_STRUCTURE,
        )
    return fields


# =============================================================================
# Decoders
# =============================================================================

def decode_credential(
    raw: Mapping[str, Any],
    fallback_id: str = "",
    *,
    type_suffix: str = CERTIFICATE_TYPE_SUFFIX,
    timestamp_fallback: bool = False,
    clock: Clock = now_ms,
) -> Credential:
    """Decode one raw certificate object into a Credential.

    Args:
        raw: The "data" member of an object read.
        fallback_id: Ledger object reference used when the payload carries
            no identifier of its own.
        type_suffix: Type-name suffix the object must carry.
        timestamp_fallback: When True a missing issued_at is replaced by
            clock() and the record is flagged issued_at_is_fallback. Only the
            outermost (display) decode should enable this.
        clock: Epoch-millisecond clock used for the fallback.

    Returns:
        The normalized Credential.

    Raises:
        DecodeError: Wrong type tag, or no fields to decode.
    """
    fields = _require_fields(raw, type_suffix, "certificate")
    schema = detect_schema(fields)

    record_id = resolve_object_id(raw, fallback_id)
    if not record_id:
        raise DecodeError("certificate object has no identifier", code=ErrorCode.INVALID_STRUCTURE)

    category = parse_int(_first(fields, schema.category), DEFAULT_CATEGORY)
    if category is None or category <= 0:
        category = DEFAULT_CATEGORY

    trust_rank = parse_int(_first(fields, schema.trust_rank), DEFAULT_TRUST_RANK)
    if trust_rank is None or trust_rank < 0:
        trust_rank = DEFAULT_TRUST_RANK

    expires_at = parse_int(_first(fields, schema.expires_at), NEVER_EXPIRES)
    if expires_at is None or expires_at < 0:
        expires_at = NEVER_EXPIRES

    # Absent stays None; a parsed zero is kept as zero
    bounty = parse_int(_first(fields, schema.bounty), None)
    if bounty is not None and bounty < 0:
        log.debug(f"Ignoring negative bounty on {record_id}: {bounty}")
        bounty = None

    issued_at = parse_int(_first(fields, schema.issued_at), None)
    issued_at_is_fallback = False
    if issued_at is None or issued_at <= 0:
        if timestamp_fallback:
            issued_at = clock()
            issued_at_is_fallback = True
        else:
            issued_at = 0

    return Credential(
        id=record_id,
        owner_address=_text(fields, schema.owner, ""),
        issuer_address=_text(fields, schema.issuer, ""),
        issuer_display_name=_text(fields, schema.issuer_name, UNKNOWN_ISSUER_NAME),
        category=category,
        title=_text(fields, schema.title, UNTITLED_CERTIFICATE),
        description=_text(fields, schema.description, NO_DESCRIPTION),
        content_address=_text(fields, schema.content_address, ""),
        content_url=_text(fields, schema.content_url, ""),
        issued_at_ms=issued_at,
        expires_at_ms=expires_at,
        trust_rank=trust_rank,
        bounty_amount=bounty,
        issued_at_is_fallback=issued_at_is_fallback,
    )


def decode_user_profile(
    raw: Mapping[str, Any],
    fallback_id: str = "",
    *,
    timestamp_fallback: bool = True,
    clock: Clock = now_ms,
) -> UserProfile:
    """Decode a UserProfile object."""
    fields = _require_fields(raw, USER_PROFILE_TYPE_SUFFIX, "user profile")

    joined_at = parse_int(fields.get("joined_at"), None)
    joined_at_is_fallback = False
    if joined_at is None or joined_at <= 0:
        if timestamp_fallback:
            joined_at = clock()
            joined_at_is_fallback = True
        else:
            joined_at = 0

    return UserProfile(
        id=resolve_object_id(raw, fallback_id),
        owner=_text(fields, ("owner",), ""),
        display_name=_text(fields, ("display_name",), ""),
        total_certs=max(parse_int(fields.get("total_certs"), 0) or 0, 0),
        trust_rank=max(parse_int(fields.get("trust_rank"), DEFAULT_TRUST_RANK) or 0, 0),
        reputation=parse_int(fields.get("reputation"), 0) or 0,
        joined_at_ms=joined_at,
        joined_at_is_fallback=joined_at_is_fallback,
    )


def decode_admin_cap(raw: Mapping[str, Any], fallback_id: str = "") -> AdminCap:
    """Decode an AdminCap object."""
    fields = _require_fields(raw, ADMIN_CAP_TYPE_SUFFIX, "admin capability")

    authorized = fields.get("authorized_types")
    types = []
    if isinstance(authorized, (list, tuple)):
        for value in authorized:
            parsed = parse_int(value, None)
            if parsed is not None and parsed > 0:
                types.append(parsed)

    return AdminCap(
        id=resolve_object_id(raw, fallback_id),
        institution_name=_text(fields, ("institution_name",), UNKNOWN_ISSUER_NAME),
        institution_address=_text(fields, ("institution_address",), ""),
        total_issued=max(parse_int(fields.get("total_issued"), 0) or 0, 0),
        authorized_types=types,
    )


# =============================================================================
# Events
# =============================================================================

def event_type_matches(event: Mapping[str, Any], suffix: str) -> bool:
    type_tag = event.get("type")
    return isinstance(type_tag, str) and suffix in type_tag


def event_payload(event: Mapping[str, Any]) -> Dict[str, Any]:
    parsed = event.get("parsedJson")
    return parsed if isinstance(parsed, dict) else {}


def event_certificate_id(event: Mapping[str, Any]) -> str:
    """Identifier of the certificate an issuance event announces, or ""."""
    return _unwrap_uid(_first(event_payload(event), EVENT_ID_FIELDS))


def event_issuer(event: Mapping[str, Any]) -> str:
    value = _first(event_payload(event), EVENT_ISSUER_FIELDS)
    return value if isinstance(value, str) else ""
