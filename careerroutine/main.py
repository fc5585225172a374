"""FastAPI application exposing the plan generation endpoints."""

from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from careerroutine.config import settings
from careerroutine.errors import ValidationError
from careerroutine.pipeline import GenerationPipeline, build_components, new_trace_id
from careerroutine.schemas.api import (
    PrepRequest,
    PrepResponse,
    RerollRequest,
    RoutineRequest,
    RoutineResponse,
)
from careerroutine.utils.constants import REROLL_SECTIONS
from careerroutine.validation.request_validator import (
    sanitize_preferences,
    validate_current_plan,
    validate_profile,
)

logger = logging.getLogger("uvicorn.error")

# Status nginx uses for "client closed request"; nobody is left to read it.
CLIENT_CLOSED_REQUEST = 499


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Server started model=%s timeout_ms=%s eval_log=%s",
        settings.model,
        settings.model_timeout_ms,
        settings.eval_log_path,
    )
    yield
    logger.info("Server stopped")


app = FastAPI(title="CareerRoutine API", version="0.1.0", lifespan=lifespan)

pipeline = GenerationPipeline(build_components(settings))


class ClientDisconnected(Exception):
    pass


async def run_until_disconnect(request: Request, coro):
    """Await ``coro`` but abandon it promptly if the caller goes away."""
    task = asyncio.ensure_future(coro)
    while True:
        done, _ = await asyncio.wait({task}, timeout=settings.disconnect_poll_seconds)
        if done:
            return task.result()
        if await request.is_disconnected():
            logger.warning("[%s] Client disconnected, abandoning pipeline", request.state.trace_id)
            task.cancel()
            raise ClientDisconnected()


@app.middleware("http")
async def trace_requests(request: Request, call_next):
    request.state.trace_id = new_trace_id()
    logger.info("[%s] Incoming request %s %s", request.state.trace_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Trace-Id"] = request.state.trace_id
    logger.info("[%s] Response sent status=%s", request.state.trace_id, response.status_code)
    return response


def _trace_id(request: Request) -> str | None:
    return getattr(request.state, "trace_id", None)


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    logger.info("[%s] Rejected request: %s %s", _trace_id(request), exc.message, exc.errors)
    return JSONResponse(
        status_code=400,
        content={"error": exc.message, "traceId": _trace_id(request), "details": exc.errors},
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {"path": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "invalid")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Request validation failed", "traceId": _trace_id(request), "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Not Found", "path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail, "traceId": _trace_id(request)})


@app.exception_handler(ClientDisconnected)
async def handle_client_disconnected(request: Request, exc: ClientDisconnected):
    return Response(status_code=CLIENT_CLOSED_REQUEST)


@app.get("/health")
async def health():
    return {"status": "ok", "model": settings.model}


@app.post("/generate/routine", response_model=RoutineResponse, response_model_exclude_none=True)
async def generate_routine(body: RoutineRequest, request: Request):
    """Generate a weekly routine. Model-side failures resolve to the fallback plan."""
    profile = validate_profile(body.profile, settings.max_input_chars)
    preferences = sanitize_preferences(body.preferences, settings.max_input_chars)
    outcome = await run_until_disconnect(
        request,
        pipeline.run("routine", profile, trace_id=request.state.trace_id, preferences=preferences),
    )
    return {"plan": outcome.payload}


@app.post("/generate/prep", response_model=PrepResponse, response_model_exclude_none=True)
async def generate_prep(body: PrepRequest, request: Request):
    """Generate an interview prep pack with the same fallback-first policy."""
    profile = validate_profile(body.profile, settings.max_input_chars)
    outcome = await run_until_disconnect(
        request,
        pipeline.run("prep", profile, trace_id=request.state.trace_id),
    )
    return {"prep": outcome.payload}


@app.post("/reroll/{section}")
async def reroll_section(section: str, body: RerollRequest, request: Request):
    """Regenerate one plan section; any downstream failure returns it unchanged.

    Invalid sections and invalid current plans are rejected before any model call.
    """
    if section not in REROLL_SECTIONS:
        raise ValidationError(
            f"Invalid section: {section}. Must be one of: {', '.join(REROLL_SECTIONS)}",
            [{"path": "section", "message": f"must be one of {', '.join(REROLL_SECTIONS)}"}],
        )
    profile = validate_profile(body.profile, settings.max_input_chars)
    current_plan = validate_current_plan(body.currentPlan, section)
    outcome = await run_until_disconnect(
        request,
        pipeline.run(
            "reroll",
            profile,
            trace_id=request.state.trace_id,
            section=section,
            current_plan=current_plan,
        ),
    )
    return outcome.payload
