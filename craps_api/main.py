# craps_api/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from craps_api.core.config import settings
from craps_api.db.session import AsyncSessionLocal

from craps_api.routers.table import router as table_router
from craps_api.routers.bettor import router as bettor_router
from craps_api.routers.bets import router as bets_router
import logging, sys

from craps_api.tasks.scheduler import start_scheduler, stop_scheduler
from craps_api.services.bootstrap_service import init_db, next_ids, void_open_bets
from craps_api.services.runtime import build_runtime

app = FastAPI(
    title=settings.APP_NAME,
    version=getattr(settings, "APP_VERSION", "0.1.0"),
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logging.getLogger("uvicorn").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.CRITICAL)

logging.getLogger("apscheduler").setLevel(logging.ERROR)

# series / roll / settlement lines
logging.getLogger("craps_api.tasks").setLevel(logging.INFO)
logging.getLogger("craps_api.game").setLevel(logging.INFO)

app.include_router(table_router)
app.include_router(bettor_router)
app.include_router(bets_router)


@app.on_event("startup")
async def on_startup() -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        await void_open_bets(session)
        series_id, bet_id = await next_ids(session)
    rt = build_runtime(first_series_id=series_id, first_bet_id=bet_id)
    app.state.runtime = rt
    rt.scheduler.open_betting_window()
    if settings.AUTO_START_SCHEDULER:
        start_scheduler(rt.scheduler)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    rt = getattr(app.state, "runtime", None)
    if rt is not None:
        stop_scheduler(rt.scheduler)


@app.get("/ping")
async def ping():
    return {"ok": True, "env": settings.APP_ENV}


@app.get("/healthz")
async def healthz():
    return {"status": "healthy"}
