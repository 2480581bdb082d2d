"""
REST API for the straight-pool scorer.
Thin wrappers around the match session and persistence; no rules here.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, Generator

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from straightpool.auth import check_admin_pin
from straightpool.models import Action, OpeningOperation, Player
from straightpool.persistence import (
    MatchHistoryRepository,
    MatchHistoryStore,
    PlayerRepository,
    get_connection,
    get_db_path,
    init_db,
)
from straightpool.rules import DEFAULT_TARGET_SCORE, InvalidActionForPhase
from straightpool.services import (
    MatchClosed,
    MatchNotDecided,
    MatchSession,
    MissingPlayerIdentity,
    SessionNotFound,
    SessionRegistry,
)

logger = logging.getLogger(__name__)


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    init_db(db_path=get_db_path())
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Straight Pool Scorer API",
    description="Live 14.1 continuous scorekeeping for league matches",
    version="0.1.0",
    lifespan=lifespan,
)

# Live matches for this process
sessions = SessionRegistry()


# ---------- Request/Response models ----------


class CreatePlayerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = None
    email: str | None = None


class PlayerSlot(BaseModel):
    roster_id: int | None = Field(None, description="Roster player id; required to save the match")
    name: str | None = Field(None, description="Display name when not using the roster")


class StartMatchRequest(BaseModel):
    target_score: int = Field(default=DEFAULT_TARGET_SCORE, ge=1, le=1000)
    player_a: PlayerSlot
    player_b: PlayerSlot
    week_key: str | None = Field(None, description="e.g. 'Wk-3'")
    week_label: str | None = Field(None, description="e.g. '3-Sep'")


class ActionRequest(BaseModel):
    action: Action


class OpeningRequest(BaseModel):
    operation: OpeningOperation


class FinishMatchRequest(BaseModel):
    save: bool = Field(default=True, description="Hand the result to match history")


class StandingsFlagRequest(BaseModel):
    counts_for_standings: bool


# ---------- Helpers ----------


def _session_or_404(session_id: str) -> MatchSession:
    try:
        return sessions.get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Match not found: {session_id}")


def _session_payload(session_id: str, session: MatchSession) -> dict[str, Any]:
    g = session.state
    return {
        "session_id": session_id,
        "state": g.to_dict(),
        "high_run": session.high_run(),
        "high_run_a": session.high_run_for_player(0),
        "high_run_b": session.high_run_for_player(1),
        "can_undo": session.can_undo,
    }


def _resolve_slot(conn, slot: PlayerSlot, label: str) -> Player:
    if slot.roster_id is not None:
        rp = PlayerRepository().get(conn, slot.roster_id)
        if rp is None:
            raise HTTPException(status_code=404, detail=f"Roster player not found: {slot.roster_id}")
        return Player(id=rp.id, name=rp.name)
    if not slot.name or not slot.name.strip():
        raise HTTPException(status_code=400, detail=f"{label} needs a roster_id or a name")
    return Player(id=None, name=slot.name.strip())


# ---------- Endpoints ----------


@app.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/players")
def list_players() -> dict[str, Any]:
    with db_conn() as conn:
        return {"players": [p.to_dict() for p in PlayerRepository().list_all(conn)]}


@app.post("/players")
def create_player(req: CreatePlayerRequest) -> dict[str, Any]:
    with db_conn() as conn:
        return PlayerRepository().create(conn, req.name.strip(), req.phone, req.email).to_dict()


@app.post("/matches")
def start_match(req: StartMatchRequest) -> dict[str, Any]:
    with db_conn() as conn:
        a = _resolve_slot(conn, req.player_a, "player_a")
        b = _resolve_slot(conn, req.player_b, "player_b")
    session = MatchSession()
    session.start_match(req.target_score, a, b, req.week_key, req.week_label)
    sid = sessions.add(session)
    return _session_payload(sid, session)


@app.get("/matches/{session_id}")
def get_match(session_id: str) -> dict[str, Any]:
    return _session_payload(session_id, _session_or_404(session_id))


@app.post("/matches/{session_id}/opening")
def apply_opening(session_id: str, req: OpeningRequest) -> dict[str, Any]:
    session = _session_or_404(session_id)
    try:
        session.opening(req.operation)
    except (InvalidActionForPhase, MatchClosed) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _session_payload(session_id, session)


@app.post("/matches/{session_id}/actions")
def apply_action(session_id: str, req: ActionRequest) -> dict[str, Any]:
    session = _session_or_404(session_id)
    try:
        session.apply(req.action)
    except (InvalidActionForPhase, MatchClosed) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _session_payload(session_id, session)


@app.post("/matches/{session_id}/undo")
def undo(session_id: str) -> dict[str, Any]:
    session = _session_or_404(session_id)
    try:
        session.undo()
    except MatchClosed as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _session_payload(session_id, session)


@app.post("/matches/{session_id}/finish")
def finish_match(session_id: str, req: FinishMatchRequest | None = None) -> dict[str, Any]:
    """
    Flush the last turn, record the result and (by default) save it to match
    history. The session ends on success; on 422 it stays live and untouched.
    """
    save = req.save if req is not None else True
    session = _session_or_404(session_id)
    try:
        if save:
            with db_conn() as conn:
                result, row = session.finish_and_save(MatchHistoryStore(conn))
        else:
            result, row = session.finish_and_save()
    except (MissingPlayerIdentity, MatchNotDecided) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except MatchClosed as e:
        raise HTTPException(status_code=409, detail=str(e))
    try:
        sessions.discard(session_id)
    except SessionNotFound:
        # Discarded by a concurrent DELETE; the result above still stands.
        logger.info("Session %s was already discarded", session_id)
    return {
        "result": result.to_dict(),
        "saved": row.to_dict() if row is not None else None,
    }


@app.delete("/matches/{session_id}")
def discard_match(session_id: str) -> dict[str, Any]:
    try:
        sessions.discard(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Match not found: {session_id}")
    return {"discarded": session_id}


@app.get("/history")
def list_history(week: int | None = None) -> dict[str, Any]:
    with db_conn() as conn:
        rows = MatchHistoryRepository().list_all(conn, week=week)
        return {"matches": [r.to_dict() for r in rows]}


@app.patch("/history/{row_id}/standings")
def set_standings_flag(
    row_id: int,
    req: StandingsFlagRequest,
    x_admin_pin: str | None = Header(default=None),
) -> dict[str, Any]:
    """Admin only: mark a saved match as counting (or not) for standings."""
    if not check_admin_pin(x_admin_pin):
        logger.warning("Bad admin PIN for history row %s", row_id)
        raise HTTPException(status_code=403, detail="Invalid admin PIN")
    with db_conn() as conn:
        repo = MatchHistoryRepository()
        if not repo.set_counts_for_standings(conn, row_id, req.counts_for_standings):
            raise HTTPException(status_code=404, detail=f"History row not found: {row_id}")
        row = repo.get(conn, row_id)
        return row.to_dict()


# ---------- Run with: uvicorn straightpool.api:app --reload ----------
