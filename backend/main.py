import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

# Load env from backend/.env
backend_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(backend_dir, ".env"))

# Import after dotenv is loaded
from backend.core.config import settings, validate_config, csv_setting
from backend.core.logging import configure_logging
from backend.core.middleware.request_id import RequestIdMiddleware
from backend.core.validation import validate_env
from backend.core.database import get_database_url, init_engine
from backend.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from backend.api import health, submodules
from backend.features.submodules.catalog import SubmoduleCatalog
from backend.features.submodules.gate import DEFAULT_POLICY, SubmodulePolicy
from backend.features.submodules.registry import build_default_catalog
from backend.features.submodules.service import SubmoduleService
from backend.features.submodules.store import MemorySubmoduleStore, SqlSubmoduleStore, SubmoduleStore

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))

logger = logging.getLogger("bizdesk")


def build_store() -> SubmoduleStore:
    """SQL store when a database is configured, process-local store otherwise."""
    if get_database_url():
        store = SqlSubmoduleStore(init_engine())
        store.create_tables()
        return store
    logger.warning("No DATABASE_URL configured; submodule entitlements are kept in memory")
    return MemorySubmoduleStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting bizdesk backend...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logger.info("Stopping bizdesk backend...")


def create_app(
    catalog: Optional[SubmoduleCatalog] = None,
    store: Optional[SubmoduleStore] = None,
    policy: Optional[SubmodulePolicy] = None,
) -> FastAPI:
    """
    Assemble the API.

    Catalog, store, service and policy are built once here and shared through
    app.state; the policy is checked against the catalog before serving.
    """
    catalog = catalog or build_default_catalog()
    store = store or build_store()
    policy = policy or DEFAULT_POLICY
    policy.validate_against(catalog)

    app = FastAPI(title="bizdesk - Submodules API", lifespan=lifespan)
    app.state.submodule_catalog = catalog
    app.state.submodule_store = store
    app.state.submodule_service = SubmoduleService(catalog, store)
    app.state.submodule_policy = policy

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=csv_setting(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.root_router)
    app.include_router(submodules.router)

    logger.info(f"Submodule catalog loaded: {len(catalog)} entries")
    return app


app = create_app()
