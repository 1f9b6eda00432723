"""FastAPI techwatch API - accounts and authentication."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from accounts.bootstrap import bootstrap_admin
from accounts.email import EmailDispatcher, SmtpEmailDispatcher
from accounts.models import Database
from accounts.passwords import PasswordHasher
from accounts.repository import SqlUserRepository
from accounts.service import AuthService
from accounts.tokens import TokenCodec
from config import Settings
from web.api.auth_routes import router as auth_router
from web.api.user_routes import router as user_router

logger = logging.getLogger("techwatch.http")


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error" if exc.status_code >= 500 else "fail", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = list(err.get("loc", ()))
        # Drop the "body" / "path" / "query" prefix
        if loc and loc[0] in ("body", "path", "query"):
            loc = loc[1:]
        errors.append({"code": err.get("type", "invalid"), "message": err.get("msg", ""), "path": [str(p) for p in loc]})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"status": "fail", "errors": errors})


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "error", "message": "Something went wrong"},
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    email_dispatcher: Optional[EmailDispatcher] = None,
) -> FastAPI:
    """Build the application with all collaborators wired from one Settings instance."""
    settings = settings or Settings.from_env()
    database = Database(settings.database_url)
    users = SqlUserRepository(database.session_factory)
    passwords = PasswordHasher(rounds=settings.password_hash_rounds)
    auth_service = AuthService(
        settings=settings,
        users=users,
        tokens=TokenCodec(settings),
        passwords=passwords,
        mailer=email_dispatcher or SmtpEmailDispatcher(settings),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.init_db()
        await bootstrap_admin(settings, users, passwords)
        yield
        await database.dispose()

    app = FastAPI(title="Techwatch API", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.auth_service = auth_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.include_router(auth_router)
    app.include_router(user_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
