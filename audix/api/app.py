import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from audix import __version__, config
from audix.api.routes import activity, liked_songs
from audix.db import connection as db_connection

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Audix API",
    description="Listening activity and liked songs for the Audix music player",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(activity.router, prefix="/api/activity", tags=["activity"])
app.include_router(liked_songs.router, prefix="/api/liked-songs", tags=["liked-songs"])


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    """Malformed or mistyped request bodies are client errors (400)."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    detail = "; ".join(problems) or "Invalid request"
    logger.debug(f"Rejected request to {request.url.path}: {detail}")
    return JSONResponse(status_code=400, content={"detail": detail})


@app.on_event("startup")
def ensure_schema() -> None:
    if config.SKIP_DB_BOOTSTRAP:
        return
    from audix.db.schema import ensure_schema as _ensure_schema

    _ensure_schema()


@app.on_event("shutdown")
def shutdown_connection_pool() -> None:
    """Close the database connection pool on shutdown."""
    db_connection.close_pool()


@app.get("/")
async def root():
    return {"message": "Audix API", "version": __version__}


@app.get("/health")
def health():
    """Health check with connection pool stats."""
    try:
        return {
            "status": "healthy",
            "pool": db_connection.get_pool_stats(),
        }
    except Exception as e:
        logger.warning(f"Health check degraded: {e}")
        return {
            "status": "degraded",
            "error": str(e),
        }
