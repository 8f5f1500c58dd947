import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import weather
from models import RequestEnvelope, ResponseEnvelope, SkillHealthResponse
from skill import SkillContext, apology_response, dispatch
from user_store import StoreUnavailableError, UserStateStore

# Load .env from project root
load_dotenv(dotenv_path=Path(__file__).parent / ".env")

USER_DB_PATH = os.getenv("USER_DB_PATH", str(Path(__file__).parent / "data" / "users.json"))

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_store: UserStateStore | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _store
    if not weather.OPENWEATHER_API_KEY:
        logger.warning(
            "OPENWEATHER_API_KEY is not set. "
            "Weather requests will answer with the unavailable message until it is configured."
        )
    try:
        _store = UserStateStore.open(USER_DB_PATH)
    except StoreUnavailableError as exc:
        logger.error("Failed to open user store: %s", exc)
    yield
    if _store is not None:
        _store.close()
        logger.info("User store closed.")
        _store = None


app = FastAPI(
    title="Adaptive Weather Skill",
    description="Voice skill that reads the weather, more briefly each time you ask.",
    version="1.0.0",
    lifespan=lifespan,
)


# ── Custom exception handlers ────────────────────────────────────────────────

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request envelope."})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Normalise all HTTP errors to {"error": "..."} instead of {"detail": ...}."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    elif isinstance(exc.detail, str):
        content = {"error": exc.detail}
    else:
        content = {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


# ── Endpoints ────────────────────────────────────────────────────────────────

@app.get("/health", response_model=SkillHealthResponse)
async def health() -> SkillHealthResponse:
    return SkillHealthResponse(
        status="ok",
        weather_api_key_configured=bool(weather.OPENWEATHER_API_KEY),
        user_store=_store.label if _store is not None else "unavailable",
    )


@app.post(
    "/invoke",
    response_model=ResponseEnvelope,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def invoke(envelope: RequestEnvelope) -> ResponseEnvelope:
    if _store is None:
        logger.error("Invocation rejected: user store not initialized")
        return apology_response()

    try:
        return await dispatch(envelope, SkillContext(store=_store))
    except Exception:
        logger.error("Unexpected exception in /invoke", exc_info=True)
        return apology_response()


if __name__ == "__main__":
    uvicorn.run(
        "skill_server:app",
        host="0.0.0.0",
        port=int(os.getenv("SKILL_PORT", "8001")),
        reload=False,
    )
