"""
gearguard/main.py

FastAPI application factory.

Run: uvicorn gearguard.main:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from gearguard.billing import seed_packages
from gearguard.config import CORS_ORIGINS, IS_PROD
from gearguard.db import Database, DatabaseError, DuplicateKeyError
from gearguard.errors import GearGuardError
from gearguard.images import ImageHost, ImgbbHost
from gearguard.migrate import init_db
from gearguard.payments import PaymentProvider, StripeProvider
from gearguard import (
    routes_analytics,
    routes_assets,
    routes_billing,
    routes_employees,
    routes_requests,
    routes_users,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    database.open()
    init_db(database)
    with database.session() as store:
        seed_packages(store)
    try:
        yield
    finally:
        database.close()


def create_app(
    database: Optional[Database] = None,
    payment_provider: Optional[PaymentProvider] = None,
    image_host: Optional[ImageHost] = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators default to the configured database, Stripe and imgbb;
    tests pass a temp-file Database and in-memory fakes instead.
    """
    app = FastAPI(title="GearGuard Backend", version="0.1", lifespan=lifespan)
    app.state.database = database or Database()
    app.state.payment_provider = payment_provider or StripeProvider()
    app.state.image_host = image_host or ImgbbHost()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS if IS_PROD else ["*"],  # Restrict origins in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GearGuardError)
    async def handle_domain_error(request: Request, exc: GearGuardError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message, "detail": exc.message},
        )

    @app.exception_handler(DuplicateKeyError)
    async def handle_duplicate_key(request: Request, exc: DuplicateKeyError) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"success": False, "message": "Duplicate record", "detail": "Duplicate record"},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError) -> JSONResponse:
        # Driver detail is logged by the gateway, never returned
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Database error", "detail": "Database error"},
        )

    @app.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "GearGuard server is running"

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    app.include_router(routes_users.router)
    app.include_router(routes_assets.router)
    app.include_router(routes_requests.router)
    app.include_router(routes_employees.router)
    app.include_router(routes_billing.router)
    app.include_router(routes_analytics.router)

    return app


app = create_app()
