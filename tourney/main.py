import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tourney.api.endpoints import auth as auth_endpoints
from tourney.api.endpoints import matches as match_endpoints
from tourney.api.endpoints import teams as team_endpoints
from tourney.api.endpoints import tournaments as tournament_endpoints
from tourney.core.config import settings
from tourney.core.database import init_db
from tourney.core.errors import TournamentError

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Tournament Bracket Engine API", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"Response: {response.status_code}")
    return response


@app.exception_handler(TournamentError)
async def tournament_error_handler(request: Request, exc: TournamentError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(auth_endpoints.router, prefix="/auth", tags=["Authentication"])
app.include_router(tournament_endpoints.router, prefix="/tournaments", tags=["Tournaments"])
app.include_router(team_endpoints.router, prefix="/teams", tags=["Teams"])
app.include_router(match_endpoints.router, prefix="/matches", tags=["Matches"])


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tourney.main:app", host="0.0.0.0", port=8000, reload=True)
