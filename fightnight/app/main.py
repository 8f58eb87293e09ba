import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fightnight.app.core.config import settings
from fightnight.app.core.database import init_models
from fightnight.app.core.errors import FightNightError
from fightnight.app.api.admin import router as admin_router
from fightnight.app.api.catalog import router as catalog_router
from fightnight.app.api.matches import router as matches_router
from fightnight.app.api.stats import router as stats_router
from fightnight.app.api.tournament import router as tournament_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: make sure the schema exists
    await init_models()
    logger.info("Database schema ready")
    yield


app = FastAPI(title="FightNight Tournament Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FightNightError)
async def fightnight_error_handler(request: Request, exc: FightNightError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register routers
app.include_router(catalog_router, tags=["Catalog"])
app.include_router(tournament_router, prefix="/tournaments", tags=["Tournament"])
app.include_router(matches_router, prefix="/matches", tags=["Matches"])
app.include_router(stats_router, prefix="/matches", tags=["Stats"])
app.include_router(admin_router, prefix="/admin", tags=["Admin"])


@app.get("/health")
async def health():
    return {"status": "ok"}
