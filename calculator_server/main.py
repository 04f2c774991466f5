# calculator_server/main.py

import os
import sys
import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from calculator_server.api import auth, calculator
from calculator_server.config import Settings, get_settings
from calculator_server.core.errors import CalculatorServerError, Internal, ValidationFailed
from calculator_server.database import Database


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


# -------------------------------
# Exception Handlers
# -------------------------------

async def handle_domain_error(request: Request, exc: CalculatorServerError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path")),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    error = ValidationFailed(details)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def handle_http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        content = {
            "success": False,
            "error": "Endpoint not found",
            "message": "The requested endpoint does not exist",
        }
    else:
        content = {"success": False, "error": str(exc.detail), "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = Internal().to_dict()
    if request.app.state.settings.is_development:
        content["details"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=500, content=content)


# -------------------------------
# Application Factory
# -------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.database.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = Database(settings.database_url)
    app.state.database.init_db()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CalculatorServerError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(auth.router)
    app.include_router(calculator.router)

    @app.get("/")
    def index():
        return {
            "message": settings.app_name,
            "version": settings.version,
            "auth_endpoints": {
                "register": "POST /api/auth/register",
                "login": "POST /api/auth/login",
                "token": "POST /api/auth/token",
                "profile": "GET /api/auth/profile",
                "update_profile": "PUT /api/auth/profile",
                "change_password": "PUT /api/auth/change-password",
            },
            "calculator_endpoints": {
                "add": "POST /api/calculator/add",
                "subtract": "POST /api/calculator/subtract",
                "multiply": "POST /api/calculator/multiply",
                "divide": "POST /api/calculator/divide",
                "power": "POST /api/calculator/power",
                "sqrt": "POST /api/calculator/sqrt",
                "history": "GET /api/calculator/history (requires auth)",
                "clear_history": "DELETE /api/calculator/history (requires auth)",
                "stats": "GET /api/calculator/stats (requires auth)",
            },
        }

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    logger.info("%s v%s started (%s)", settings.app_name, settings.version, settings.environment)
    return app


def run():
    uvicorn.run(
        "calculator_server.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    run()
