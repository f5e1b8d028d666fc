"""FastAPI server exposing the persona and locations operations as JSON endpoints."""
import logging
import os

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from persona_places.config import Settings
from persona_places.errors import ConfigurationError, ErrorKind
from persona_places.models import Persona, normalize_handle
from persona_places.pipeline import LOCATIONS, PERSONA, PersonaPipeline, PipelineError, user_message

_log = logging.getLogger(__name__)

app = FastAPI(title="persona-places API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def get_pipeline(request: Request) -> PersonaPipeline:
    """Return the process-wide pipeline, building it from the environment on first use."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = PersonaPipeline.from_settings(Settings.from_env())
        request.app.state.pipeline = pipeline
    return pipeline


def _error_response(error: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": error.message},
    )


@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    operation = LOCATIONS if request.url.path.endswith("/locations") else PERSONA
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": user_message(operation, ErrorKind.INPUT_VALIDATION)},
    )


@app.exception_handler(ConfigurationError)
async def _misconfigured(request: Request, exc: ConfigurationError) -> JSONResponse:
    _log.error("Configuration error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": user_message(PERSONA, ErrorKind.CONFIGURATION)},
    )


# ── Endpoints ────────────────────────────────────────────────────────────────

class PersonaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    x_handle: str | None = Field(default=None, alias="xHandle")


class LocationsRequest(BaseModel):
    persona: Persona | None = None


@app.get("/api/health")
def health():
    """Check that required env vars are set."""
    for name in ("EXA_API_KEY", "OPENAI_API_KEY"):
        if not os.getenv(name):
            raise HTTPException(status_code=503, detail=f"{name} not set")
    return {"status": "ok"}


@app.post("/api/persona")
async def create_persona(req: PersonaRequest, request: Request):
    """Search the handle, extract profile signal and synthesize a persona."""
    if not normalize_handle(req.x_handle or ""):
        return _error_response(PipelineError(ErrorKind.INPUT_VALIDATION, user_message(PERSONA, ErrorKind.INPUT_VALIDATION)))

    result = await get_pipeline(request).create_persona(req.x_handle)
    if not result.ok:
        return _error_response(result.error)
    return {"success": True, "persona": result.value.model_dump(mode="json", by_alias=True)}


@app.post("/api/locations")
async def create_locations(req: LocationsRequest, request: Request):
    """Recommend places for a persona."""
    if req.persona is None:
        return _error_response(PipelineError(ErrorKind.INPUT_VALIDATION, user_message(LOCATIONS, ErrorKind.INPUT_VALIDATION)))

    result = await get_pipeline(request).create_recommendations(req.persona)
    if not result.ok:
        return _error_response(result.error)
    return {
        "success": True,
        "locations": [loc.model_dump(mode="json", by_alias=True) for loc in result.value],
    }
