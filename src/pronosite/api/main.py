"""FastAPI backend for the prediction site."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import structlog
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pronosite.access.visibility import ViewerTier, parse_tier
from pronosite.api.schemas import (
    BankrollResponse,
    ErrorResponse,
    HealthResponse,
    HomeFeedResponse,
    LedgerEventsResponse,
    NewsCreateRequest,
    NewsListResponse,
    NewsStatusRequest,
    NewsUpdateRequest,
    PickCreateRequest,
    PickOut,
    PicksListResponse,
    SettleRequest,
    VisibilityRequest,
)
from pronosite.config import get_settings
from pronosite.errors import (
    AuthorizationError,
    ConsistencyError,
    InvalidStateError,
    NotFoundError,
    PronoError,
    ValidationError,
)
from pronosite.ledger.handle import BankrollLedger
from pronosite.models import NewsArticle, PickDraft, PickStatus, Visibility
from pronosite.service import news as news_service
from pronosite.service import picks as pick_service
from pronosite.storage.db import get_connection, init_schema

log = structlog.get_logger(__name__)

# Set by run_api() so the app uses the same config as the CLI.
_config_profile: str | None = None
_config_dir: Path | None = None

# Most specific first: AuthorizationError is an InvalidStateError.
_ERROR_STATUS: list[tuple[type[PronoError], int]] = [
    (ValidationError, 422),
    (AuthorizationError, 403),
    (InvalidStateError, 409),
    (NotFoundError, 404),
    (ConsistencyError, 500),
]

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    403: {"description": "Viewer tier not allowed", "model": ErrorResponse},
    404: {"description": "Not found", "model": ErrorResponse},
    409: {"description": "Invalid state", "model": ErrorResponse},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure schema and the bankroll singleton exist
    settings = get_settings(_config_profile, _config_dir)
    ledger = BankrollLedger(initial_balance=settings.initial_balance)
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn)
        ledger.bootstrap(conn)
    finally:
        conn.close()
    app.state.ledger = ledger
    log.info("api_started", db_path=settings.db_path)
    yield


app = FastAPI(title="Pronosite API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.exception_handler(PronoError)
async def prono_error_handler(request: Request, exc: PronoError) -> JSONResponse:
    status_code = next((s for cls, s in _ERROR_STATUS if isinstance(exc, cls)), 500)
    return _error_json(exc.code, str(exc), status_code)


def get_db() -> Iterator[Any]:
    """One DuckDB connection per request."""
    settings = get_settings(_config_profile, _config_dir)
    conn = get_connection(settings.db_path)
    try:
        yield conn
    finally:
        conn.close()


def get_ledger(request: Request) -> BankrollLedger:
    return request.app.state.ledger


def viewer_tier(x_viewer_tier: str | None = Header(None)) -> ViewerTier:
    """Tier set by the upstream auth gateway. Absent header means anonymous."""
    return parse_tier(x_viewer_tier)


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


# --- Picks ---
@app.get("/picks", response_model=PicksListResponse)
def picks_list(
    status: PickStatus | None = Query(None),
    visibility: Visibility | None = Query(None),
    conn: Any = Depends(get_db),
    tier: ViewerTier = Depends(viewer_tier),
) -> PicksListResponse:
    """Picks visible to the viewer, optionally filtered by status and visibility."""
    picks = pick_service.list_picks(conn, tier, status=status, visibility=visibility)
    return PicksListResponse(picks=[PickOut.from_pick(p) for p in picks], total=len(picks))


@app.get("/picks/home", response_model=HomeFeedResponse)
def picks_home(conn: Any = Depends(get_db)) -> HomeFeedResponse:
    """Public pending picks and the latest public results."""
    settings = get_settings(_config_profile, _config_dir)
    feed = pick_service.home_feed(conn, settled_limit=settings.home_settled_limit)
    return HomeFeedResponse(
        pending=[PickOut.from_pick(p) for p in feed["pending"]],
        settled=[PickOut.from_pick(p) for p in feed["settled"]],
    )


@app.get("/picks/vip", response_model=PicksListResponse, responses=_ERROR_RESPONSES)
def picks_vip(conn: Any = Depends(get_db), tier: ViewerTier = Depends(viewer_tier)) -> PicksListResponse:
    picks = pick_service.vip_feed(conn, tier)
    return PicksListResponse(picks=[PickOut.from_pick(p) for p in picks], total=len(picks))


@app.get("/picks/history", response_model=PicksListResponse)
def picks_history(conn: Any = Depends(get_db), tier: ViewerTier = Depends(viewer_tier)) -> PicksListResponse:
    picks = pick_service.history(conn, tier)
    return PicksListResponse(picks=[PickOut.from_pick(p) for p in picks], total=len(picks))


@app.get("/picks/{pick_id}", response_model=PickOut, responses=_ERROR_RESPONSES)
def pick_detail(pick_id: int, conn: Any = Depends(get_db), tier: ViewerTier = Depends(viewer_tier)) -> PickOut:
    return PickOut.from_pick(pick_service.get_pick(conn, tier, pick_id))


@app.post("/picks", response_model=PickOut, status_code=201, responses=_ERROR_RESPONSES)
def pick_create(
    body: PickCreateRequest,
    conn: Any = Depends(get_db),
    tier: ViewerTier = Depends(viewer_tier),
) -> PickOut:
    draft = PickDraft(
        stake=body.stake,
        legs=[leg.to_leg() for leg in body.legs],
        visibility=body.visibility,
        kind=body.kind,
    )
    return PickOut.from_pick(pick_service.create_pick(conn, tier, draft))


@app.post("/picks/{pick_id}/settle", response_model=PickOut, responses=_ERROR_RESPONSES)
def pick_settle(
    pick_id: int,
    body: SettleRequest,
    conn: Any = Depends(get_db),
    ledger: BankrollLedger = Depends(get_ledger),
    tier: ViewerTier = Depends(viewer_tier),
) -> PickOut:
    return PickOut.from_pick(pick_service.settle_pick(conn, ledger, tier, pick_id, body.outcome))


@app.post("/picks/{pick_id}/archive", response_model=PickOut, responses=_ERROR_RESPONSES)
def pick_archive(
    pick_id: int,
    conn: Any = Depends(get_db),
    ledger: BankrollLedger = Depends(get_ledger),
    tier: ViewerTier = Depends(viewer_tier),
) -> PickOut:
    return PickOut.from_pick(pick_service.archive_pick(conn, ledger, tier, pick_id))


@app.post("/picks/{pick_id}/visibility", response_model=PickOut, responses=_ERROR_RESPONSES)
def pick_visibility(
    pick_id: int,
    body: VisibilityRequest,
    conn: Any = Depends(get_db),
    tier: ViewerTier = Depends(viewer_tier),
) -> PickOut:
    return PickOut.from_pick(pick_service.set_pick_visibility(conn, tier, pick_id, body.visibility))


@app.delete("/picks/{pick_id}", response_model=BankrollResponse, responses=_ERROR_RESPONSES)
def pick_delete(
    pick_id: int,
    conn: Any = Depends(get_db),
    ledger: BankrollLedger = Depends(get_ledger),
    tier: ViewerTier = Depends(viewer_tier),
) -> BankrollResponse:
    """Delete a pick. Returns the bankroll after recomputation."""
    return BankrollResponse.from_state(pick_service.delete_pick(conn, ledger, tier, pick_id))


# --- Bankroll ---
@app.get("/bankroll", response_model=BankrollResponse, responses=_ERROR_RESPONSES)
def bankroll(conn: Any = Depends(get_db), ledger: BankrollLedger = Depends(get_ledger)) -> BankrollResponse:
    return BankrollResponse.from_state(pick_service.bankroll_snapshot(conn, ledger))


@app.post("/bankroll/recompute", response_model=BankrollResponse, responses=_ERROR_RESPONSES)
def bankroll_recompute(
    conn: Any = Depends(get_db),
    ledger: BankrollLedger = Depends(get_ledger),
    tier: ViewerTier = Depends(viewer_tier),
) -> BankrollResponse:
    return BankrollResponse.from_state(pick_service.recompute_bankroll(conn, ledger, tier))


# --- News ---
@app.get("/news", response_model=NewsListResponse)
def news_list(conn: Any = Depends(get_db), tier: ViewerTier = Depends(viewer_tier)) -> NewsListResponse:
    articles = news_service.list_articles(conn, tier)
    return NewsListResponse(articles=articles, total=len(articles))


@app.get("/news/{article_id}", response_model=NewsArticle, responses=_ERROR_RESPONSES)
def news_detail(
    article_id: int, conn: Any = Depends(get_db), tier: ViewerTier = Depends(viewer_tier)
) -> NewsArticle:
    return news_service.get_article(conn, tier, article_id)


@app.post("/news", response_model=NewsArticle, status_code=201, responses=_ERROR_RESPONSES)
def news_create(
    body: NewsCreateRequest, conn: Any = Depends(get_db), tier: ViewerTier = Depends(viewer_tier)
) -> NewsArticle:
    return news_service.create_article(conn, tier, **body.model_dump())


@app.put("/news/{article_id}", response_model=NewsArticle, responses=_ERROR_RESPONSES)
def news_update(
    article_id: int,
    body: NewsUpdateRequest,
    conn: Any = Depends(get_db),
    tier: ViewerTier = Depends(viewer_tier),
) -> NewsArticle:
    return news_service.update_article(conn, tier, article_id, **body.model_dump())


@app.post("/news/{article_id}/visibility", response_model=NewsArticle, responses=_ERROR_RESPONSES)
def news_visibility(
    article_id: int,
    body: VisibilityRequest,
    conn: Any = Depends(get_db),
    tier: ViewerTier = Depends(viewer_tier),
) -> NewsArticle:
    return news_service.set_article_visibility(conn, tier, article_id, body.visibility)


@app.post("/news/{article_id}/status", response_model=NewsArticle, responses=_ERROR_RESPONSES)
def news_status(
    article_id: int,
    body: NewsStatusRequest,
    conn: Any = Depends(get_db),
    tier: ViewerTier = Depends(viewer_tier),
) -> NewsArticle:
    return news_service.set_article_status(conn, tier, article_id, body.status)


@app.delete("/news/{article_id}", status_code=204, responses=_ERROR_RESPONSES)
def news_delete(article_id: int, conn: Any = Depends(get_db), tier: ViewerTier = Depends(viewer_tier)) -> None:
    news_service.delete_article(conn, tier, article_id)


# --- Ledger audit trail ---
@app.get("/ledger/events", response_model=LedgerEventsResponse, responses=_ERROR_RESPONSES)
def ledger_events(
    pick_id: int | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    conn: Any = Depends(get_db),
    tier: ViewerTier = Depends(viewer_tier),
) -> LedgerEventsResponse:
    events = pick_service.ledger_events(conn, tier, pick_id=pick_id, limit=limit)
    return LedgerEventsResponse(events=events, total=len(events))


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    global _config_profile, _config_dir
    _config_profile = profile
    _config_dir = config_dir
    import uvicorn
    uvicorn.run("pronosite.api.main:app", host=host, port=port, reload=False)
