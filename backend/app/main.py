from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from app.core.config import settings
from app.routers import (
    auth,
    books,
    book_tags,
    categories,
    tags,
    quotes,
    stats,
    search,
    health,
)
from app.database import init_db

# ----------------------------
# Logging
# ----------------------------
logger = logging.getLogger("reading_tracker")
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Reading Tracker API", debug=settings.DEBUG)


# ----------------------------
# CORS
# ----------------------------
cors_origins = settings.cors_origins_list
logger.info("[CORS] allow_origins=%s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_name(loc) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts in front of the field path
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        message = error.get("msg", "Invalid value")
        # "Value error, Title is required" -> "Title is required"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": _field_name(error.get("loc", ())), "message": message})

    logger.info("[VALIDATION] %s %s -> %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[UNHANDLED] %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


# ----------------------------
# Routers
# ----------------------------
app.include_router(auth.router, prefix="/api")
app.include_router(books.router, prefix="/api")
app.include_router(book_tags.router, prefix="/api")
app.include_router(categories.router, prefix="/api")
app.include_router(tags.router, prefix="/api")
app.include_router(quotes.router, prefix="/api")
app.include_router(stats.router, prefix="/api")
app.include_router(search.router, prefix="/api")
app.include_router(health.router, prefix="/api")
app.include_router(health.router)


@app.on_event("startup")
def on_startup() -> None:
    logger.info("[BOOT] environment=%s", settings.ENVIRONMENT)
    init_db()
