"""FastAPI application exposing the diagram pipeline."""

from __future__ import annotations

import asyncio
import math
from typing import Any, Callable, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ArchvizConfig
from ..digest import digest_from_payload
from ..errors import InvalidInput, QuotaExceeded, UpstreamGenerationError
from ..logging import get_logger
from ..models import PipelineResult
from ..orchestrator import Orchestrator
from ..postproc.analysis import render_analysis_html
from ..postproc.links import DiagramLinkRewriter
from ..quota import QuotaGate

UNKNOWN_IDENTITY = "unknown"

logger = get_logger("service")


class FileEntryPayload(BaseModel):
    path: str
    kind: str = "file"


class RepositoryPayload(BaseModel):
    name: str
    description: str = ""
    default_branch: str = "main"
    html_url: Optional[str] = None
    file_entries: List[FileEntryPayload] = []
    readme_text: Optional[str] = None


class VisualizeRequest(BaseModel):
    repository: Optional[RepositoryPayload] = None


class VisualizeResponse(BaseModel):
    diagram: str
    explanation: str
    analysis_html: str


class LinksRequest(BaseModel):
    diagram: str
    html_url: str
    default_branch: str = "main"


class LinksResponse(BaseModel):
    diagram: str


class HealthResponse(BaseModel):
    status: str


def client_identity(request: Request) -> str:
    """Identify the caller by forwarded address, falling back to the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_IDENTITY


def create_app(
    config: ArchvizConfig | None = None,
    *,
    orchestrator_factory: Callable[[], Orchestrator] | None = None,
    quota_gate: QuotaGate | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing the visualize and link endpoints."""

    settings = config or ArchvizConfig()
    gate = quota_gate or QuotaGate(settings.quota.limit, settings.quota.window_seconds)
    rewriter = DiagramLinkRewriter()

    def _default_orchestrator() -> Orchestrator:
        return Orchestrator.from_config(settings)

    factory = orchestrator_factory or _default_orchestrator

    app = FastAPI(title="archviz", version="1.0.0")
    app.state.quota_gate = gate

    async def enforce_quota(request: Request) -> str:
        identity = client_identity(request)
        gate.check(identity)
        return identity

    async def get_orchestrator() -> Orchestrator:
        # Lazy-instantiate per request to keep state predictable.
        return factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/visualize", response_model=VisualizeResponse)
    async def visualize(
        payload: VisualizeRequest,
        identity: str = Depends(enforce_quota),
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> VisualizeResponse:
        if payload.repository is None:
            raise InvalidInput("Repository data is required")
        digest = digest_from_payload(payload.repository.model_dump())
        logger.info("Visualizing %s for %s", digest.name, identity)

        def _run() -> PipelineResult:
            return orchestrator.run(digest)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run)
        return VisualizeResponse(
            diagram=result.diagram_text,
            explanation=result.explanation_text,
            analysis_html=render_analysis_html(result.explanation_text),
        )

    @app.post("/links", response_model=LinksResponse)
    async def rewrite_links(payload: LinksRequest) -> LinksResponse:
        diagram = rewriter.rewrite(payload.diagram, payload.html_url, payload.default_branch)
        return LinksResponse(diagram=diagram)

    @app.exception_handler(QuotaExceeded)
    async def quota_exceeded_handler(_: Any, exc: QuotaExceeded) -> JSONResponse:
        headers = {}
        if exc.retry_after is not None:
            headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after)))
        return JSONResponse(status_code=429, content={"detail": str(exc)}, headers=headers)

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(_: Any, exc: InvalidInput) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_: Any, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": "Malformed request payload", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(UpstreamGenerationError)
    async def upstream_error_handler(_: Any, exc: UpstreamGenerationError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc), "stage": exc.stage})

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000, config: ArchvizConfig | None = None
) -> None:  # pragma: no cover - integration path
    app = create_app(config)
    uvicorn.run(app, host=host, port=port)


__all__ = ["client_identity", "create_app", "run_service"]
