# main.py (lifespan-based)
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from tortoise import Tortoise

from routers import (
    meter_data, logger_data,
    daily_reports, losses, total_reports, yearly,
    admin_tasks,
)
from services import config
from services.logging_config import setup_logging
from services.report_cache import KeyedLocks

logger = logging.getLogger("uvicorn")


# ----- lifespan -----
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    # 1) DB init
    await Tortoise.init(
        db_url=config.DB_URL,
        modules={"models": ["models"]},
    )
    if config.DB_GENERATE_SCHEMAS:
        await Tortoise.generate_schemas()

    # 2) Per-key generation locks shared by every request of this process
    app.state.report_locks = KeyedLocks()

    for route in app.routes:
        if isinstance(route, APIRoute):
            logger.info("%s -> %s", sorted(route.methods), route.path)
    try:
        yield
    finally:
        await Tortoise.close_connections()


# ----- app & routers -----
app = FastAPI(lifespan=lifespan, title="Energy Accounting API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "X-Total-Count"],
)

# Meter inputs
app.include_router(meter_data.router)
app.include_router(logger_data.router)

# Reports
app.include_router(daily_reports.router)
app.include_router(losses.router)
app.include_router(total_reports.router)
app.include_router(yearly.router)

app.include_router(admin_tasks.router)
