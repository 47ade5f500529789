"""Certificate ledger FastAPI application.

Read-only JSON surface over the reconciliation engine. Every response is
plain data, so a periodic-refresh client can poll any route at its own
cadence.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from app.core.config import AggregatorConfig, ReadClientConfig, VerifierConfig
from app.logging_config import configure_logging
from app.certs.achievements import achievement_progress
from app.certs.aggregator import CertificateAggregator
from app.certs.ownership import (
    CertificateIndex,
    fetch_admin_caps,
    fetch_owned_certificates,
    fetch_user_profile,
)
from app.certs.read_client import SuiReadClient
from app.certs.verifier import CertificateVerifier

configure_logging()
log = logging.getLogger("certs")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the read client on startup unless one was injected (tests)."""
    owned = getattr(app.state, "reader", None) is None
    if owned:
        app.state.reader = SuiReadClient(ReadClientConfig())
        log.info(f"Ledger read client created for {app.state.reader.config.rpc_url}")
    yield
    if owned:
        await app.state.reader.aclose()
        app.state.reader = None
        log.info("Ledger read client closed")


app = FastAPI(title="Certificate Ledger", version="0.1.0", lifespan=lifespan)


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.middleware("http")
async def req_log(request: Request, call_next):
    start = time.time()
    route = request.url.path
    remote = request.client.host if request.client else "-"
    resp = await call_next(request)
    duration_ms = int((time.time() - start) * 1000)
    log.info(f"request_complete status={resp.status_code} duration_ms={duration_ms}",
             extra={"request_id": "-", "route": route, "remote_addr": remote})
    return resp


@app.get("/verify/{identifier}")
async def verify(identifier: str, request: Request):
    """Verify one certificate id. Always 200: invalid is a normal outcome."""
    verifier = CertificateVerifier(request.app.state.reader, VerifierConfig())
    verdict = await verifier.verify(identifier)
    return JSONResponse(verdict.model_dump())


@app.get("/certificates/owned/{address}")
async def owned_certificates(address: str, request: Request):
    credentials = await fetch_owned_certificates(request.app.state.reader, address)
    return {
        "address": address,
        "count": len(credentials),
        "credentials": [c.model_dump() for c in credentials],
    }


@app.get("/certificates/issued/{address}")
async def issued_certificates(
    address: str,
    request: Request,
    institution: Optional[str] = Query(default=None),
):
    """Certificates issued by address, with holder and category breakdowns.

    When no institution address is given, the first AdminCap held by the
    address supplies one.
    """
    reader = request.app.state.reader
    if institution is None:
        caps = await fetch_admin_caps(reader, address)
        if caps and caps[0].institution_address:
            institution = caps[0].institution_address

    aggregator = CertificateAggregator(reader, AggregatorConfig())
    result = await aggregator.fetch_issued(address, institution)
    index = CertificateIndex(result.credentials)
    body = result.to_dict()
    body["address"] = address
    body["institution"] = institution
    body["holders"] = index.owners()
    body["by_category"] = index.count_by_category()
    return body


@app.get("/profile/{address}")
async def profile(address: str, request: Request):
    reader = request.app.state.reader
    user_profile = await fetch_user_profile(reader, address)
    caps = await fetch_admin_caps(reader, address)
    total_issued = caps[0].total_issued if caps else 0
    return {
        "address": address,
        "profile": user_profile.model_dump() if user_profile else None,
        "admin_caps": [cap.model_dump() for cap in caps],
        "is_admin": bool(caps),
        "achievements": achievement_progress(total_issued).model_dump(),
    }


@app.get("/achievements/{count}")
def achievements(count: int):
    if count < 0:
        return JSONResponse(status_code=400, content={"detail": "count must be non-negative"})
    return achievement_progress(count).model_dump()
