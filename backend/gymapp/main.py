# gymapp/main.py
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv, find_dotenv

# -------------------------------------------------
# LOAD .env ONCE (top of file, before any getenv use)
# -------------------------------------------------
_env_path = find_dotenv(usecwd=True)
load_dotenv(_env_path, override=False)

from fastapi import FastAPI  # noqa: E402
from starlette.exceptions import HTTPException as StarletteHTTPException  # noqa: E402

from gymapp.bootstrap import run_startup_migrations, warn_if_admin_routes_open  # noqa: E402
from gymapp.database import engine  # noqa: E402
from gymapp.errors import http_exception_handler  # noqa: E402
from gymapp.routers import admin_memberships, member, weekly_charts  # noqa: E402

logging.basicConfig(
    level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# -------------------------------------------------
# STARTUP: CREATE TABLES + SQLITE SAFE MIGRATIONS
# -------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    run_startup_migrations(engine)
    warn_if_admin_routes_open()
    yield


# -------------------------------------------------
# APP SETUP
# -------------------------------------------------
app = FastAPI(title="Gym Membership Lifecycle Backend", version="0.1.0", lifespan=lifespan)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)

# Routers
app.include_router(member.router)
app.include_router(admin_memberships.router)
app.include_router(weekly_charts.router)


@app.get("/health")
def health():
    return {"status": "ok"}

