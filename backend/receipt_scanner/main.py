import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from receipt_scanner.api.v1.expenses import router as expenses_router
from receipt_scanner.core.config import get_settings
from receipt_scanner.core.dependencies import build_engine, build_session_factory
from receipt_scanner.models.expense import Base

settings = get_settings()

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An internal error occurred."


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = build_engine(settings.database_url)
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    logger.info("Expense store ready (provider=%s)", settings.ai_receipt_provider)
    try:
        yield
    finally:
        app.state.session_factory = None
        engine.dispose()


app = FastAPI(
    title="Receipt Scanner API",
    version="1.0.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.openapi_enabled else None,
    lifespan=lifespan,
)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

app.include_router(expenses_router, prefix="/api/v1", tags=["expenses"])


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Hide internal details for 5xx unless explicitly enabled.
    if exc.status_code >= 500 and not settings.expose_error_details:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": GENERIC_ERROR_MESSAGE})
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=422, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    if settings.expose_error_details:
        return JSONResponse(status_code=500, content={"success": False, "message": str(exc)})
    return JSONResponse(status_code=500, content={"success": False, "message": GENERIC_ERROR_MESSAGE})


@app.get("/health")
async def health_check():
    return {"status": "ok"}
