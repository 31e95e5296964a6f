import logging
import math
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from karma.auth import Ed25519Gate
from karma.clock import Clock, SystemClock
from karma.errors import (
    AlreadyExists,
    InvalidInteraction,
    KarmaError,
    NotFound,
    Unauthorized,
    VersionConflict,
)
from karma.journal import verify_chain
from karma.ledger import KarmaLedger, TransitionReport
from karma.soul import StoredSoul, state_of

from . import config
from .db import SqliteDatabase, SqliteNonceRegistry, SqliteSoulStore
from .logging_config import audit_log, configure_logging, set_request_id
from .models import CreateSoulRequest, InteractionRequest, SunriseRequest
from .rate_limit import RateLimiter
from .security import (
    ValidationError,
    extract_client_id,
    sanitize_for_logging,
    validate_identity,
    validate_proof_payload,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Karma Ledger")

ERROR_STATUS = {
    Unauthorized: 403,
    NotFound: 404,
    AlreadyExists: 409,
    VersionConflict: 409,
    InvalidInteraction: 400,
}

create_limiter = RateLimiter(config.CREATE_RPM)
interact_limiter = RateLimiter(config.INTERACT_RPM)
sunrise_limiter = RateLimiter(config.SUNRISE_RPM)

DB: Optional[SqliteDatabase] = None
STORE: Optional[SqliteSoulStore] = None
LEDGER: Optional[KarmaLedger] = None


def init_ledger(db_path: Optional[str] = None, clock: Optional[Clock] = None) -> KarmaLedger:
    """Open the database and build the process-wide ledger."""
    global DB, STORE, LEDGER
    DB = SqliteDatabase(db_path or config.DB_PATH)
    DB.init_schema()
    STORE = SqliteSoulStore(DB)
    gate = Ed25519Gate(
        nonces=SqliteNonceRegistry(DB),
        freshness_seconds=config.PROOF_FRESHNESS_SECONDS,
        max_clock_skew_seconds=config.MAX_CLOCK_SKEW_SECONDS,
    )
    LEDGER = KarmaLedger(STORE, gate, clock or SystemClock())
    return LEDGER


@app.on_event("startup")
def _startup():
    configure_logging(config.LOG_LEVEL, json_format=config.LOG_JSON, log_file=config.LOG_FILE)
    if LEDGER is None:
        init_ledger()


@app.middleware("http")
async def _request_id(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response


@app.exception_handler(KarmaError)
async def _karma_error(request: Request, exc: KarmaError):
    operation = getattr(request.state, "operation", request.url.path)
    audit_log.transition_rejected(operation, exc.code, exc.identity)
    status = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(status_code=status, content={"detail": exc.code})


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _enforce_rate(limiter: RateLimiter, request: Request, endpoint: str) -> None:
    client = extract_client_id(dict(request.headers), request.client.host if request.client else None)
    result = limiter.check(f"{endpoint}:{client}")
    if not result.allowed:
        audit_log.rate_limit_exceeded(client, endpoint)
        raise HTTPException(429, "RATE_LIMIT", headers={
            "Retry-After": str(math.ceil(result.retry_after or 0)),
            "X-RateLimit-Limit": str(limiter.limit),
        })


def _soul_view(stored: StoredSoul, now: Optional[int] = None) -> dict:
    view = stored.to_dict()
    if now is not None:
        view["state"] = state_of(stored.soul, now).value
    return view


def _report_view(report: TransitionReport) -> dict:
    body = report.to_dict()
    body["souls"] = {k: _soul_view(v, report.occurred_at) for k, v in report.souls.items()}
    return body


@app.get("/health")
def health():
    return {
        "status": "ok",
        "config": config.describe(),
        "checks": config.validate_config(),
        "db": DB.stats(),
    }


@app.post("/souls", status_code=201)
def create_soul(req: CreateSoulRequest, request: Request):
    request.state.operation = "create"
    _enforce_rate(create_limiter, request, "create")
    authority = validate_identity(req.authority)
    validate_proof_payload(req.proof.payload)
    if config.is_debug() and not config.is_production():
        logger.debug("create request %s", sanitize_for_logging(req.proof.model_dump()))

    report = LEDGER.create(authority, req.proof.to_signed_request())
    audit_log.transition("create", report.outcome.value, authority)
    return _report_view(report)


@app.get("/souls")
def list_souls(limit: int = 100, offset: int = 0):
    limit = max(1, min(limit, 1000))
    now = LEDGER.clock.now()
    return [_soul_view(s, now) for s in STORE.list_souls(limit=limit, offset=max(0, offset))]


@app.get("/souls/{authority}")
def get_soul(authority: str, request: Request):
    request.state.operation = "get"
    authority = validate_identity(authority)
    return _soul_view(LEDGER.get(authority), LEDGER.clock.now())


@app.post("/interactions")
def interact(req: InteractionRequest, request: Request):
    request.state.operation = "interact"
    _enforce_rate(interact_limiter, request, "interact")
    actor = validate_identity(req.actor, "actor")
    target = validate_identity(req.target, "target")
    validate_proof_payload(req.proof.payload)

    report = LEDGER.interact(req.direction, actor, target, req.proof.to_signed_request())
    audit_log.transition("interact", report.outcome.value, actor, target)
    return _report_view(report)


@app.post("/souls/{authority}/sunrise")
def sunrise(authority: str, req: SunriseRequest, request: Request):
    request.state.operation = "sunrise"
    _enforce_rate(sunrise_limiter, request, "sunrise")
    authority = validate_identity(authority)
    validate_proof_payload(req.proof.payload)

    report = LEDGER.renew(authority, req.proof.to_signed_request())
    audit_log.transition("sunrise", report.outcome.value, authority)
    return _report_view(report)


@app.get("/journal")
def journal(limit: Optional[int] = None):
    return [e.to_dict() for e in STORE.journal(limit)]


@app.get("/journal/verify")
def journal_verify():
    ok, reason = verify_chain(STORE.journal())
    return {"valid": ok, "reason": reason}
