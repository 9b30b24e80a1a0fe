import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text

from opsmonitor.api.monitoring import router as monitoring_router
from opsmonitor.core import config
from opsmonitor.core.database import create_all, create_store_engine, make_session_factory, utcnow
from opsmonitor.core.errors import DashboardError, NotFoundError, StoreError
from opsmonitor.metrics import init_metrics_zero

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("opsmonitor")

app = FastAPI(
    title="Ops Monitoring API",
    description="Metrics, logs, alerts and health checks for the operations dashboard",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)

app.include_router(monitoring_router)


@app.on_event("startup")
async def on_startup():
    engine = create_store_engine(config.DATABASE_URL)
    app.state.engine = engine
    app.state.sessions = make_session_factory(engine)
    logger.info("store engine ready: %s", engine.url.render_as_string(hide_password=True))
    if config.DB_CREATE_ALL:
        await create_all(engine)
        logger.info("monitoring tables ensured")
    init_metrics_zero()


@app.on_event("shutdown")
async def on_shutdown():
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.dispose()
        app.state.engine = None
        app.state.sessions = None


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "success": False})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(404, exc)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return _error(502, exc)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    return _error(502, exc)


@app.exception_handler(ValueError)
async def bad_request_handler(request: Request, exc: ValueError):
    # bad page / limit, invalid alert transition
    return _error(400, exc)


@app.get("/health")
async def health_check():
    try:
        async with app.state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected", "timestamp": utcnow().isoformat()}
    except Exception as e:
        logger.warning("health check failed: %s", e)
        return {"status": "unhealthy", "database": "disconnected", "error": str(e),
                "timestamp": utcnow().isoformat()}


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
