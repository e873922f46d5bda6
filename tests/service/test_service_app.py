"""Tests for the FastAPI service mode."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from reposeal.models import (
    FLOW_PUBLISH,
    FLOW_VERIFY,
    OrchestrationReport,
    RepositoryOutcome,
    VerificationResult,
)
from reposeal.service import create_app
from tests._fixtures.repo_builder import RepoBuilder


class _StubOrchestrator:
    def __init__(self) -> None:
        self.calls: list[dict[str, object]] = []

    def run_publish(self, root: str, key_id=None) -> OrchestrationReport:
        self.calls.append({"flow": "publish", "root": root, "key_id": key_id})
        outcome = RepositoryOutcome(path=Path(root) / "alpha", flow=FLOW_PUBLISH, stage="synced")
        return OrchestrationReport(flow=FLOW_PUBLISH, root=Path(root), outcomes=[outcome])

    def run_verify(self, root: str, key_id=None) -> OrchestrationReport:
        self.calls.append({"flow": "verify", "root": root, "key_id": key_id})
        outcome = RepositoryOutcome(
            path=Path(root) / "alpha",
            flow=FLOW_VERIFY,
            stage="reported",
            verification=VerificationResult(signature_valid=True, integrity_valid=True),
        )
        return OrchestrationReport(flow=FLOW_VERIFY, root=Path(root), outcomes=[outcome])


@pytest.fixture
def stub() -> _StubOrchestrator:
    return _StubOrchestrator()


@pytest.fixture
def client(stub: _StubOrchestrator) -> TestClient:
    pushes: list[object] = []

    def factory(config, push):
        pushes.append(push)
        return stub

    app = create_app(factory)
    app.state.pushes = pushes
    return TestClient(app)


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_repositories_endpoint(client: TestClient, repo_builder: RepoBuilder) -> None:
    repo_builder.repo("alpha")
    repo_builder.repo("plain", git=False)

    response = client.get("/repositories", params={"root": str(repo_builder.scan_root)})

    assert response.status_code == 200
    names = [Path(path).name for path in response.json()["repositories"]]
    assert names == ["alpha"]


def test_repositories_endpoint_discovers_off_the_event_loop(
    client: TestClient, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    threads: list[str] = []

    def fake_discover(root):
        threads.append(threading.current_thread().name)
        return []

    monkeypatch.setattr("reposeal.service.app.discover_repositories", fake_discover)

    response = client.get("/repositories", params={"root": str(tmp_path)})

    assert response.status_code == 200
    assert len(threads) == 1
    assert threads[0].startswith("asyncio")


def test_repositories_endpoint_missing_root(client: TestClient, tmp_path: Path) -> None:
    response = client.get("/repositories", params={"root": str(tmp_path / "missing")})

    assert response.status_code == 404


def test_publish_endpoint_uses_config_key(
    client: TestClient, stub: _StubOrchestrator, repo_builder: RepoBuilder
) -> None:
    (repo_builder.scan_root / ".reposeal.yml").write_text("signing:\n  key_id: CONFIGKEY\n", encoding="utf-8")

    response = client.post("/publish", json={"root": str(repo_builder.scan_root), "push": False})

    assert response.status_code == 200
    data = response.json()
    assert data["flow"] == "publish"
    assert data["ok"] is True
    assert data["repositories"][0]["stage"] == "synced"
    assert stub.calls[0]["key_id"] == "CONFIGKEY"
    assert client.app.state.pushes == [False]


def test_verify_endpoint_returns_verdicts(
    client: TestClient, stub: _StubOrchestrator, repo_builder: RepoBuilder
) -> None:
    response = client.post("/verify", json={"root": str(repo_builder.scan_root), "key_id": "EXPLICIT"})

    assert response.status_code == 200
    repo = response.json()["repositories"][0]
    assert repo["verification"]["signature_valid"] is True
    assert repo["verification"]["per_file_failures"] == []
    assert stub.calls[0]["key_id"] == "EXPLICIT"
