"""Entry point for the Daewoo Express voice agent service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agents.errors import VoiceAgentError
from api.routes import router as api_router
from api.twilio_routes import router as twilio_router
from config.settings import get_settings

LOGGER = logging.getLogger(__name__)

DASHBOARD_DEV_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Daewoo Express Voice Agent",
    description="Holds inbound calls for a dashboard decision and answers accepted calls with an AI agent.",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=DASHBOARD_DEV_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VoiceAgentError)
async def voice_agent_error_handler(request: Request, exc: VoiceAgentError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    detail = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"Invalid '{field}': {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": detail})


app.include_router(api_router, prefix="/api")
app.include_router(twilio_router)
