"""FastAPI application serving resolved pipeline configurations."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ServerConfig
from ..errors import DecodeFailure, ResolutionError
from ..logging import get_logger
from ..models import Environment
from ..orchestrator import Orchestrator
from .signatures import InvalidSignature, SignatureVerifier


class ConfigEntry(BaseModel):
    name: str
    data: str


class ConfigsResponse(BaseModel):
    configs: List[ConfigEntry]


class HealthResponse(BaseModel):
    status: str


def create_app(
    orchestrator: Orchestrator,
    config: ServerConfig | None = None,
    verifier: Optional[SignatureVerifier] = None,
) -> FastAPI:
    """Create the FastAPI application exposing the configuration endpoint."""

    config = config or ServerConfig()
    logger = get_logger("service")
    app = FastAPI(title="CI Config Service", version="1.0.0")

    if verifier is None:
        logger.warning("public key is empty, incoming requests will not be verified, be careful!")

    async def verify_signature(request: Request) -> None:
        if verifier is None:
            return
        try:
            body = await request.body()
            verifier.verify(request.method, str(request.url), request.headers, body)
        except InvalidSignature as exc:
            logger.error("Rejected request signature: %s", exc)
            raise HTTPException(status_code=400, detail="Invalid signature") from exc

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    async def resolve_config(
        request: Request, _: None = Depends(verify_signature)
    ) -> Response:
        body = await request.body()
        try:
            env = Environment.decode(body)
        except DecodeFailure as exc:
            logger.error("%s", exc)
            return JSONResponse(status_code=400, content={"detail": "Failed to decode request"})

        repo = env.repo.full_name or env.repo.name
        logger.debug("Start configuration service for %s", repo)

        loop = asyncio.get_running_loop()
        try:
            files = await loop.run_in_executor(None, orchestrator.resolve, env)
        except ResolutionError as exc:
            logger.error("Failed to resolve configuration for %s: %s", repo, exc)
            return JSONResponse(status_code=500, content={"detail": "Failed to get config"})

        # Woodpecker expects 204 to fall back to the repository's own configuration.
        if not files:
            logger.debug("No configurations found for %s, woodpecker takes over", repo)
            return Response(status_code=204)

        payload = ConfigsResponse(
            configs=[ConfigEntry(name=file.name, data=file.data) for file in files]
        )
        logger.debug("Resolved %d configurations for %s", len(files), repo)
        return JSONResponse(content=payload.model_dump())

    app.add_api_route(
        config.endpoint,
        resolve_config,
        methods=list(config.allowed_methods),
        response_model=None,
    )
    return app


def run_service(
    orchestrator: Orchestrator,
    config: ServerConfig,
    verifier: Optional[SignatureVerifier] = None,
    *,
    log_level: str = "info",
) -> None:  # pragma: no cover - integration path
    app = create_app(orchestrator, config, verifier)
    uvicorn.run(app, host=config.host, port=config.port, log_level=log_level.lower())
