# api/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.app.config import get_settings
from api.app.middleware.request_logging import RequestLoggingMiddleware
from api.app.routes import buildings, collection, crafting, gathering, health, jobs, nodes
from db.engine import dispose_engine
from jobs.errors import JobError

logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dispose_engine()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Jobs API",
    description="Timed gathering, building, crafting and collection jobs",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(JobError)
async def job_error_handler(request: Request, exc: JobError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router)
app.include_router(gathering.router, prefix="/v1")
app.include_router(buildings.router, prefix="/v1")
app.include_router(crafting.router, prefix="/v1")
app.include_router(collection.router, prefix="/v1")
app.include_router(jobs.router, prefix="/v1")
app.include_router(nodes.router, prefix="/v1")


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("api.app.main:app", host=settings.api_host, port=settings.api_port)
