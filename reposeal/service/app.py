"""FastAPI application entrypoint for reposeal service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional, TypeVar

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ReposealConfig, load_config
from ..discovery import discover_repositories
from ..orchestrator import BatchOrchestrator
from ..report import report_to_dict

OrchestratorFactory = Callable[[ReposealConfig, Optional[bool]], BatchOrchestrator]
T = TypeVar("T")


class PublishRequest(BaseModel):
    root: str
    key_id: Optional[str] = None
    push: Optional[bool] = None


class VerifyRequest(BaseModel):
    root: str
    key_id: Optional[str] = None


class VerificationModel(BaseModel):
    signature_valid: bool
    integrity_valid: bool
    per_file_failures: List[str] = []


class RepositoryModel(BaseModel):
    path: str
    flow: str
    stage: str
    status: str
    failure_kind: Optional[str] = None
    log: List[str] = []
    verification: Optional[VerificationModel] = None


class ReportResponse(BaseModel):
    flow: str
    root: str
    ok: bool
    repositories: List[RepositoryModel] = []


class RepositoriesResponse(BaseModel):
    root: str
    repositories: List[str]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator(config: ReposealConfig, push: Optional[bool]) -> BatchOrchestrator:
    return BatchOrchestrator.from_config(config, push=push)


async def _run_blocking(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: OrchestratorFactory = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing publish and verify passes."""

    app = FastAPI(title="reposeal", version="1.0.0")

    def get_factory() -> OrchestratorFactory:
        return orchestrator_factory

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/repositories", response_model=RepositoriesResponse)
    async def repositories(root: str) -> RepositoriesResponse:
        found = await _run_blocking(lambda: discover_repositories(root))
        return RepositoriesResponse(
            root=str(Path(root).expanduser().resolve()),
            repositories=[str(path) for path in found],
        )

    @app.post("/publish", response_model=ReportResponse)
    async def publish(
        payload: PublishRequest,
        factory: OrchestratorFactory = Depends(get_factory),
    ) -> ReportResponse:
        config = load_config(Path(payload.root))
        orchestrator = factory(config, payload.push)
        key_id = payload.key_id or config.signing.key_id
        report = await _run_blocking(lambda: orchestrator.run_publish(payload.root, key_id))
        return ReportResponse(**report_to_dict(report))

    @app.post("/verify", response_model=ReportResponse)
    async def verify(
        payload: VerifyRequest,
        factory: OrchestratorFactory = Depends(get_factory),
    ) -> ReportResponse:
        config = load_config(Path(payload.root))
        orchestrator = factory(config, None)
        key_id = payload.key_id or config.signing.key_id
        report = await _run_blocking(lambda: orchestrator.run_verify(payload.root, key_id))
        return ReportResponse(**report_to_dict(report))

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(
        _: Any, exc: NotADirectoryError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
