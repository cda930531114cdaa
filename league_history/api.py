"""
REST API for league history sync.
Thin wrappers around LeagueSyncService; every route needs a bearer token.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, Generator

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from league_history.auth import decode_token
from league_history.config import SyncConfig
from league_history.persistence import (
    LeagueRepository,
    UserLeagueRepository,
    get_connection,
    get_db_path,
    init_db,
)
from league_history.services import LeagueSyncService, SyncErrorCode, SyncResult
from league_history.sleeper.client import SleeperClient

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
    title="League History API",
    description="Sync Sleeper league history, matchups and playoff brackets",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip()
        for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

security = HTTPBearer(auto_error=False)

_STATUS_BY_CODE = {
    SyncErrorCode.INVALID_USERNAME: 400,
    SyncErrorCode.USERNAME_NOT_FOUND: 404,
    SyncErrorCode.UNEXPECTED_ERROR: 500,
}


# ---------- Request models ----------


class SyncRequest(BaseModel):
    sleeper_username: str = Field(..., description="Sleeper username to link to the caller")


# ---------- Dependencies ----------


async def get_sleeper_client() -> AsyncGenerator[SleeperClient, None]:
    """One upstream client per request; overridden in tests."""
    async with SleeperClient(SyncConfig.from_env()) as client:
        yield client


def _get_current_user_id(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str:
    """Return user_id from the bearer token, or 401."""
    user_id = decode_token(credentials.credentials) if credentials is not None else None
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing or invalid bearer token")
    return user_id


def _respond(result: SyncResult) -> JSONResponse:
    if result.success:
        return JSONResponse(status_code=200, content=result.to_dict())
    status = _STATUS_BY_CODE.get(result.error_code, 500)
    return JSONResponse(status_code=status, content=result.to_dict())


# ---------- Endpoints ----------


@app.post("/users/sync")
async def sync_user(
    req: SyncRequest,
    user_id: str = Depends(_get_current_user_id),
    client: SleeperClient = Depends(get_sleeper_client),
) -> JSONResponse:
    """Link the caller to a Sleeper username and ingest every league they can reach."""
    service = LeagueSyncService(client, SyncConfig.from_env())
    with db_conn() as conn:
        result = await service.initialize_user_data(conn, user_id, req.sleeper_username)
    if result.partial:
        logger.warning(f"sync for {user_id}: {[u.unit for u in result.failures]} failed")
    return _respond(result)


@app.post("/users/playoffs/sync")
async def sync_user_playoffs(
    user_id: str = Depends(_get_current_user_id),
    client: SleeperClient = Depends(get_sleeper_client),
) -> JSONResponse:
    """Rebuild playoff bracket rows for every league the caller belongs to."""
    service = LeagueSyncService(client, SyncConfig.from_env())
    with db_conn() as conn:
        result = await service.populate_playoff_matchups_for_user(conn, user_id)
    return _respond(result)


@app.get("/users/leagues")
def list_user_leagues(user_id: str = Depends(_get_current_user_id)) -> dict[str, Any]:
    with db_conn() as conn:
        league_repo = LeagueRepository()
        league_ids = UserLeagueRepository().list_league_ids_by_user(conn, user_id)
        leagues = [league_repo.get(conn, lid) for lid in league_ids]
        return {"leagues": [lg.to_dict() for lg in leagues if lg is not None]}


# ---------- Run with: uvicorn league_history.api:app --reload ----------
if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="127.0.0.1", port=int(os.environ.get("PORT", "8000")))
