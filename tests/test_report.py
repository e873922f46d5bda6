"""Tests for reposeal.report."""

from __future__ import annotations

from pathlib import Path

from reposeal.models import (
    FLOW_VERIFY,
    STAGE_REPORTED,
    STATUS_FAILED,
    OrchestrationReport,
    RepositoryOutcome,
    VerificationResult,
)
from reposeal.report import render_text, report_to_dict


def _report() -> OrchestrationReport:
    good = RepositoryOutcome(
        path=Path("/srv/repos/good"),
        flow=FLOW_VERIFY,
        stage=STAGE_REPORTED,
        verification=VerificationResult(signature_valid=True, integrity_valid=True),
    )
    good.note("Verifying: /srv/repos/good")
    bad = RepositoryOutcome(
        path=Path("/srv/repos/bad"),
        flow=FLOW_VERIFY,
        stage=STAGE_REPORTED,
        status=STATUS_FAILED,
        failure_kind="IntegrityMismatch",
        verification=VerificationResult(signature_valid=True, integrity_valid=False, per_file_failures=["x.txt"]),
    )
    bad.note("x.txt: FAILED mismatch")
    return OrchestrationReport(flow=FLOW_VERIFY, root=Path("/srv/repos"), outcomes=[good, bad])


def test_render_text_includes_logs_and_summary() -> None:
    text = render_text(_report())

    lines = text.splitlines()
    assert lines[0] == "=== Verify (/srv/repos) ==="
    assert "Verifying: /srv/repos/good" in lines
    assert "x.txt: FAILED mismatch" in lines
    assert any(line.startswith("FAILED") and line.endswith("[IntegrityMismatch]") for line in lines)
    assert lines[-1] == "1 succeeded, 1 failed"


def test_render_text_for_empty_root() -> None:
    text = render_text(OrchestrationReport(flow=FLOW_VERIFY, root=Path("/srv/empty")))

    assert "No repositories" in text


def test_report_to_dict_serialises_verification() -> None:
    payload = report_to_dict(_report())

    assert payload["ok"] is False
    assert payload["root"] == "/srv/repos"
    bad = payload["repositories"][1]
    assert bad["status"] == "failed"
    assert bad["verification"] == {
        "signature_valid": True,
        "integrity_valid": False,
        "per_file_failures": ["x.txt"],
    }
