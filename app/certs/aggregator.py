"""Issued-certificate aggregation.

Builds the set of certificates issued by an address from two independent,
non-transactional sources:

1. Event scan: the CertificateIssued event log, most recent first.
2. Transaction fallback: the issuer's own recent transactions, scanned for
   the same event kind. Runs only when the event scan admitted nothing,
   which covers a lagging or unavailable event indexer.

Every matching event is resolved by a point lookup of the certificate it
names and admitted through a per-pass Deduplicator. A failed lookup or an
undecodable object skips that record and the pass continues. The caller
always gets a best-effort list, never an exception.

Lookups are issued one at a time so the result keeps source (event)
order and the read service sees no bursts.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from app.core.config import AggregatorConfig

from .decoder import (
    decode_credential,
    event_certificate_id,
    event_issuer,
    event_type_matches,
)
from .dedup import Deduplicator
from .exceptions import DecodeError, LedgerLookupError
from .models import Credential
from .read_client import LedgerReadService, RawEvent

log = logging.getLogger(__name__)

PHASE_EVENTS = "events"
PHASE_TRANSACTIONS = "transactions"
PHASE_NONE = "none"


@dataclass
class AggregationResult:
    """Outcome of one aggregation pass.

    Attributes:
        credentials: Admitted records in source order (most recent first).
        phase: Which phase produced the records ("events", "transactions",
            or "none" when neither did).
        transactions_scanned: Whether the fallback phase ran.
        skipped: Identifiers whose lookup or decode failed.
        duplicates: Events naming an identifier already admitted.
        errors: Human-readable failure notes for logging/UI.
        source_unavailable: True when every source query itself failed,
            so an empty list means "unknown" rather than "none issued".
        elapsed_ms: Wall time of the pass.
    """

    credentials: List[Credential] = field(default_factory=list)
    phase: str = PHASE_NONE
    transactions_scanned: bool = False
    skipped: List[str] = field(default_factory=list)
    duplicates: int = 0
    errors: List[str] = field(default_factory=list)
    source_unavailable: bool = False
    elapsed_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "credentials": [c.model_dump() for c in self.credentials],
            "count": len(self.credentials),
            "phase": self.phase,
            "transactions_scanned": self.transactions_scanned,
            "skipped": list(self.skipped),
            "duplicates": self.duplicates,
            "errors": list(self.errors),
            "source_unavailable": self.source_unavailable,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


class _Pass:
    """State for one aggregation call. Discarded when the call returns."""

    def __init__(self, targets: Set[str]):
        self.targets = targets
        self.dedup = Deduplicator()
        self.result = AggregationResult()


class CertificateAggregator:
    """Aggregates certificates issued by an address.

    Stateless across calls: each call to fetch_issued() gets its own
    Deduplicator, so concurrent or repeated calls never interfere.
    """

    def __init__(
        self,
        reader: LedgerReadService,
        config: Optional[AggregatorConfig] = None,
    ):
        """Initialize the aggregator.

        Args:
            reader: Injected ledger read service.
            config: Optional configuration. Uses defaults if not provided.
        """
        self._reader = reader
        self._config = config or AggregatorConfig()

    @property
    def config(self) -> AggregatorConfig:
        return self._config

    async def fetch_issued(
        self,
        issuer_address: str,
        institution_address: Optional[str] = None,
    ) -> AggregationResult:
        """Collect every certificate issued by issuer_address.

        Args:
            issuer_address: The caller's own address; also the sender
                filter for the transaction fallback.
            institution_address: Secondary issuer address (from the
                caller's AdminCap) that events may carry instead.

        Returns:
            AggregationResult with records in most-recent-first order.
        """
        start = time.time()
        targets = {a for a in (issuer_address, institution_address) if a}
        state = _Pass(targets)
        result = state.result

        if not targets:
            result.errors.append("No issuer address supplied")
            return result

        events_ok = await self._scan_events(state)
        if result.credentials:
            result.phase = PHASE_EVENTS
        else:
            result.transactions_scanned = True
            tx_ok = await self._scan_transactions(state, issuer_address)
            if result.credentials:
                result.phase = PHASE_TRANSACTIONS
            result.source_unavailable = not events_ok and not tx_ok

        result.duplicates = state.dedup.duplicates
        result.elapsed_ms = (time.time() - start) * 1000
        log.info(
            f"Aggregated {len(result.credentials)} certificates for "
            f"{issuer_address[:12]}... phase={result.phase} "
            f"skipped={len(result.skipped)} duplicates={result.duplicates}",
            extra={"address": issuer_address, "phase": result.phase},
        )
        return result

    async def _scan_events(self, state: _Pass) -> bool:
        """Event-log phase. Returns False if the event query itself failed."""
        event_type = self._config.event_type
        if not event_type:
            log.warning("No certificate package id configured, skipping event scan")
            state.result.errors.append("Event scan skipped: package id not configured")
            return False

        try:
            events = await self._reader.query_events(
                event_type, self._config.event_page_size, descending=True
            )
        except LedgerLookupError as e:
            log.warning(f"Event scan failed: {e.message}")
            state.result.errors.append(f"Event scan failed: {e.message}")
            return False

        log.debug(f"Event scan returned {len(events)} events")
        await self._admit_events(state, events)
        return True

    async def _scan_transactions(self, state: _Pass, address: str) -> bool:
        """Transaction-history fallback. Returns False if the query failed."""
        try:
            transactions = await self._reader.query_transactions(
                address, self._config.tx_page_size, descending=True, show_events=True
            )
        except LedgerLookupError as e:
            log.warning(f"Transaction scan failed for {address[:12]}...: {e.message}")
            state.result.errors.append(f"Transaction scan failed: {e.message}")
            return False

        log.debug(f"Transaction scan returned {len(transactions)} transactions")
        for tx in transactions:
            events = tx.get("events")
            if isinstance(events, list):
                await self._admit_events(state, events)
        return True

    async def _admit_events(self, state: _Pass, events: Iterable[RawEvent]) -> None:
        for event in events:
            if not isinstance(event, dict):
                continue
            if not event_type_matches(event, self._config.event_type_suffix):
                continue
            if event_issuer(event) not in state.targets:
                continue

            cert_id = event_certificate_id(event)
            if not cert_id:
                log.debug("Issuance event without certificate id, skipping")
                continue

            # Already admitted: count it without a second lookup
            if cert_id in state.dedup:
                state.dedup.admit(cert_id)
                continue

            record = await self._resolve(state, cert_id)
            if record is not None and state.dedup.admit(record.id):
                state.result.credentials.append(record)

    async def _resolve(self, state: _Pass, cert_id: str) -> Optional[Credential]:
        """Point lookup + decode. Failures are logged and yield None."""
        try:
            raw = await self._reader.get_object(cert_id)
        except LedgerLookupError as e:
            log.warning(
                f"Lookup failed for certificate {cert_id[:12]}...: {e.message}",
                extra={"object_id": cert_id},
            )
            state.result.skipped.append(cert_id)
            state.result.errors.append(f"{cert_id}: {e.message}")
            return None

        if raw is None:
            log.info(f"Certificate {cert_id[:12]}... no longer exists, skipping")
            state.result.skipped.append(cert_id)
            return None

        try:
            return decode_credential(
                raw, cert_id, type_suffix=self._config.certificate_type_suffix
            )
        except DecodeError as e:
            log.warning(
                f"Could not decode certificate {cert_id[:12]}...: {e.message}",
                extra={"object_id": cert_id},
            )
            state.result.skipped.append(cert_id)
            state.result.errors.append(f"{cert_id}: {e.message}")
            return None


async def fetch_issued_certificates(
    reader: LedgerReadService,
    issuer_address: str,
    institution_address: Optional[str] = None,
    config: Optional[AggregatorConfig] = None,
) -> List[Credential]:
    """Convenience wrapper returning just the credential list."""
    result = await CertificateAggregator(reader, config).fetch_issued(
        issuer_address, institution_address
    )
    return result.credentials
