"""
Cloner API entrypoint.

Run locally:
    python -m cloner.main
"""

import time
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from . import config
from . import metrics
from .auth_middleware import ClonerAuthMiddleware
from .pipeline import pipeline_router, project_router
from .pipeline.routes import get_service
from .pipeline.store import SETUP_SQL

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Cloner starting up...")
    metrics.set_gauge("start_time", time.time())
    yield
    logger.info("Cloner shutting down...")
    get_service().cancel_all()


app = FastAPI(title="Ad Cloner", lifespan=lifespan)
app.add_middleware(ClonerAuthMiddleware)

app.include_router(project_router)
app.include_router(pipeline_router)


@app.get("/health")
def health_check():
    """Verify the service is running and env vars are configured."""
    return {
        "status": "ok",
        "environment": config.ENVIRONMENT,
        "gemini_api_key_set": bool(config.GEMINI_API_KEY),
        "wavespeed_api_key_set": bool(config.WAVESPEED_API_KEY),
        "kie_api_key_set": bool(config.KIE_API_KEY),
        "supabase_url_set": bool(config.SUPABASE_URL),
    }


@app.get("/metrics")
def metrics_endpoint():
    """Return a snapshot of all service metrics."""
    return metrics.get_snapshot()


@app.get("/setup", response_class=PlainTextResponse)
def setup_sql():
    """SQL that creates the tables, policies and buckets. Paste into the Supabase SQL editor."""
    return SETUP_SQL


if __name__ == "__main__":
    uvicorn.run("cloner.main:app", host="0.0.0.0", port=config.PORT, reload=True)
