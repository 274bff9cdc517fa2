"""
HackHub — FastAPI application entry-point.

Run with:
    uvicorn hackhub.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

import hackhub.models  # noqa: F401  (registers every table on Base.metadata)
from hackhub.config import settings
from hackhub.database import Base, engine, get_db
from hackhub.models.hackathon import Hackathon, HackathonStatus
from hackhub.models.submission import Submission
from hackhub.models.team import Team

# ── Import routers ──
from hackhub.routers import (
    assignments,
    auth,
    hackathons,
    mentoring,
    notifications,
    organizations,
    ratings,
    submissions,
    teams,
)

API_PREFIX = "/api/v1"

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: create tables on startup ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Hackathon management — lifecycle-gated teams, submissions, mentoring and judging.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=("*",))


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error."})


# ── Register API routers ──
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(organizations.router, prefix=API_PREFIX)
app.include_router(hackathons.router, prefix=API_PREFIX)
app.include_router(teams.router, prefix=API_PREFIX)
app.include_router(submissions.router, prefix=API_PREFIX)
app.include_router(assignments.router, prefix=API_PREFIX)
app.include_router(mentoring.router, prefix=API_PREFIX)
app.include_router(ratings.router, prefix=API_PREFIX)
app.include_router(notifications.router, prefix=API_PREFIX)

if settings.ENVIRONMENT != "production":
    from hackhub.routers.auth import create_access_token

    @app.get("/mock-login/{user_id}")
    def mock_login(user_id: int):
        """Issue a token for any user id (development only)."""
        return {"access_token": create_access_token({"sub": str(user_id)}), "token_type": "bearer"}


# ── Landing ──
@app.get("/")
async def homepage(db: AsyncSession = Depends(get_db)):
    hacks_count = (
        await db.execute(select(func.count(Hackathon.id)).where(Hackathon.status != HackathonStatus.DRAFT))
    ).scalar() or 0
    teams_count = (await db.execute(select(func.count(Team.id)))).scalar() or 0
    subs_count = (await db.execute(select(func.count(Submission.id)))).scalar() or 0

    return {
        "name": settings.APP_NAME,
        "api": API_PREFIX,
        "stats": {
            "hackathons": hacks_count,
            "teams": teams_count,
            "submissions": subs_count,
        },
    }
