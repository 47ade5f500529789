"""Ownership projections and owned-object reads.

CertificateIndex is a pure view over an already-aggregated record set:
no reads, and lists keep the insertion order of the aggregation pass.

The fetch_* helpers read a wallet's owned objects and decode the ones of
interest. They are the outermost decode, so a certificate or profile with
no timestamp gets the decode time, flagged on the record.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from app.core.config import (
    ADMIN_CAP_TYPE_SUFFIX,
    CERTIFICATE_TYPE_SUFFIX,
    USER_PROFILE_TYPE_SUFFIX,
)

from .decoder import (
    Clock,
    decode_admin_cap,
    decode_credential,
    decode_user_profile,
    now_ms,
    resolve_object_id,
    type_matches,
)
from .exceptions import DecodeError, LedgerLookupError
from .models import AdminCap, Credential, UserProfile
from .read_client import LedgerReadService, RawObject

log = logging.getLogger(__name__)


class CertificateIndex:
    """Holder and issuer views over one aggregated record set."""

    def __init__(self, credentials: Iterable[Credential] = ()):
        # First occurrence of an id wins, as in aggregation
        self._records: "OrderedDict[str, Credential]" = OrderedDict()
        for credential in credentials:
            self._records.setdefault(credential.id, credential)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records.values())

    def get(self, record_id: str) -> Optional[Credential]:
        return self._records.get(record_id)

    def by_owner(self, address: str) -> List[Credential]:
        """Credentials held by address, in aggregation order."""
        return [c for c in self._records.values() if c.owner_address == address]

    def by_issuer(self, address: str) -> List[Credential]:
        """Credentials issued by address, in aggregation order."""
        return [c for c in self._records.values() if c.issuer_address == address]

    def owners(self) -> List[str]:
        """Distinct holder addresses in first-seen order."""
        return list(dict.fromkeys(c.owner_address for c in self._records.values() if c.owner_address))

    def count_by_category(self) -> Dict[int, int]:
        counts: Dict[int, int] = {}
        for credential in self._records.values():
            counts[credential.category] = counts.get(credential.category, 0) + 1
        return counts


def by_owner(credentials: Iterable[Credential], address: str) -> List[Credential]:
    return CertificateIndex(credentials).by_owner(address)


def by_issuer(credentials: Iterable[Credential], address: str) -> List[Credential]:
    return CertificateIndex(credentials).by_issuer(address)


async def _owned_objects(reader: LedgerReadService, address: str) -> List[RawObject]:
    if not address:
        return []
    try:
        return await reader.get_owned_objects(address)
    except LedgerLookupError as e:
        log.error(f"Failed to read objects owned by {address[:12]}...: {e.message}")
        return []


async def fetch_owned_certificates(
    reader: LedgerReadService,
    address: str,
    clock: Clock = now_ms,
) -> List[Credential]:
    """Certificates currently held by address.

    Read failures degrade to an empty list; undecodable objects are skipped.
    """
    credentials: List[Credential] = []
    seen = set()
    for raw in await _owned_objects(reader, address):
        if not type_matches(raw, CERTIFICATE_TYPE_SUFFIX):
            continue
        try:
            credential = decode_credential(
                raw,
                resolve_object_id(raw),
                timestamp_fallback=True,
                clock=clock,
            )
        except DecodeError as e:
            log.warning(f"Skipping owned object {resolve_object_id(raw)[:12]}...: {e.message}")
            continue
        if credential.id in seen:
            continue
        seen.add(credential.id)
        credentials.append(credential)
    return credentials


async def fetch_user_profile(
    reader: LedgerReadService,
    address: str,
    clock: Clock = now_ms,
) -> Optional[UserProfile]:
    """The first UserProfile owned by address, or None."""
    for raw in await _owned_objects(reader, address):
        if not type_matches(raw, USER_PROFILE_TYPE_SUFFIX):
            continue
        try:
            return decode_user_profile(raw, resolve_object_id(raw), clock=clock)
        except DecodeError as e:
            log.warning(f"Skipping malformed profile: {e.message}")
    return None


async def fetch_admin_caps(reader: LedgerReadService, address: str) -> List[AdminCap]:
    """Every AdminCap owned by address; an empty list means not an issuer."""
    caps: List[AdminCap] = []
    for raw in await _owned_objects(reader, address):
        if not type_matches(raw, ADMIN_CAP_TYPE_SUFFIX):
            continue
        try:
            caps.append(decode_admin_cap(raw, resolve_object_id(raw)))
        except DecodeError as e:
            log.warning(f"Skipping malformed admin capability: {e.message}")
    return caps
