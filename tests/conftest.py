"""Root conftest for all tests - provides shared fixtures."""

from typing import Any, Dict, List, Optional

import pytest

from app.certs.exceptions import LedgerLookupError

PACKAGE_ID = "0xc0ffee"
CERT_TYPE = f"{PACKAGE_ID}::certificate::Certificate"
EVENT_TYPE = f"{PACKAGE_ID}::certificate::CertificateIssued"

ISSUER = "0x" + "1" * 64
INSTITUTION = "0x" + "2" * 64
HOLDER = "0x" + "3" * 64
OTHER = "0x" + "9" * 64


def cert_id(n: int) -> str:
    """Deterministic 0x-prefixed 64-hex-digit object id."""
    return "0x" + f"{n:064x}"


class FakeLedger:
    """In-memory LedgerReadService with per-method call counts.

    objects: object id -> raw object ("data" member)
    owned: address -> list of raw objects
    events: events returned by query_events (already newest first)
    transactions: address -> transactions returned by query_transactions
    fail_objects: object ids whose lookup raises LedgerLookupError
    """

    def __init__(self):
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.owned: Dict[str, List[Dict[str, Any]]] = {}
        self.events: List[Dict[str, Any]] = []
        self.transactions: Dict[str, List[Dict[str, Any]]] = {}
        self.fail_objects: set = set()
        self.fail_events = False
        self.fail_transactions = False
        self.fail_owned = False
        self.calls: Dict[str, int] = {
            "get_owned_objects": 0,
            "get_object": 0,
            "query_events": 0,
            "query_transactions": 0,
        }
        self.object_requests: List[str] = []

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def get_owned_objects(self, address: str) -> List[Dict[str, Any]]:
        self.calls["get_owned_objects"] += 1
        if self.fail_owned:
            raise LedgerLookupError("owned objects unavailable")
        return list(self.owned.get(address, []))

    async def get_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        self.calls["get_object"] += 1
        self.object_requests.append(object_id)
        if object_id in self.fail_objects:
            raise LedgerLookupError(f"timeout reading {object_id}")
        return self.objects.get(object_id)

    async def query_events(self, event_type: str, limit: int, descending: bool = True):
        self.calls["query_events"] += 1
        if self.fail_events:
            raise LedgerLookupError("event indexer unavailable")
        return [e for e in self.events if e.get("type") == event_type][:limit]

    async def query_transactions(self, address, limit, descending=True, show_events=True):
        self.calls["query_transactions"] += 1
        if self.fail_transactions:
            raise LedgerLookupError("transaction history unavailable")
        return list(self.transactions.get(address, []))[:limit]


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def make_certificate():
    """Factory for raw certificate objects in the v1 field layout."""
    def _create(
        object_id: str,
        owner: str = HOLDER,
        issuer: str = ISSUER,
        type_tag: str = CERT_TYPE,
        **overrides,
    ) -> Dict[str, Any]:
        fields = {
            "id": {"id": object_id},
            "owner": owner,
            "issuer": issuer,
            "issuer_name": "Move University",
            "cert_type": "2",
            "title": "BSc Smart Contracts",
            "description": "Four-year degree",
            "pinata_cid": "bafybeigdyrzt",
            "ipfs_url": "https://gateway.pinata.cloud/ipfs/bafybeigdyrzt",
            "issued_at": "1700000000000",
            "expires_at": "0",
            "trust_rank": "3",
        }
        for key, value in overrides.items():
            if value is None:
                fields.pop(key, None)
            else:
                fields[key] = value
        return {
            "objectId": object_id,
            "version": "12",
            "type": type_tag,
            "content": {
                "dataType": "moveObject",
                "type": type_tag,
                "hasPublicTransfer": True,
                "fields": fields,
            },
        }
    return _create


@pytest.fixture
def make_event():
    """Factory for CertificateIssued events."""
    def _create(
        certificate_id: str,
        issuer: str = ISSUER,
        recipient: str = HOLDER,
        event_type: str = EVENT_TYPE,
        seq: int = 0,
    ) -> Dict[str, Any]:
        return {
            "id": {"txDigest": f"digest{seq}", "eventSeq": str(seq)},
            "packageId": PACKAGE_ID,
            "transactionModule": "certificate",
            "sender": issuer,
            "type": event_type,
            "parsedJson": {
                "certificate_id": certificate_id,
                "issuer": issuer,
                "recipient": recipient,
                "title": "BSc Smart Contracts",
            },
            "timestampMs": "1700000000000",
        }
    return _create


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-01-01T00:00:00Z in epoch milliseconds."""
    return lambda: 1_704_067_200_000
