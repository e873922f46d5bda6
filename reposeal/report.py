"""Text and JSON renderings of orchestration reports."""

from __future__ import annotations

from typing import Any, Dict, List

from .models import FLOW_PUBLISH, OrchestrationReport, RepositoryOutcome


def outcome_to_dict(outcome: RepositoryOutcome) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "path": str(outcome.path),
        "flow": outcome.flow,
        "stage": outcome.stage,
        "status": outcome.status,
        "failure_kind": outcome.failure_kind,
        "log": list(outcome.log),
    }
    if outcome.verification is not None:
        payload["verification"] = {
            "signature_valid": outcome.verification.signature_valid,
            "integrity_valid": outcome.verification.integrity_valid,
            "per_file_failures": list(outcome.verification.per_file_failures),
        }
    return payload


def report_to_dict(report: OrchestrationReport) -> Dict[str, Any]:
    return {
        "flow": report.flow,
        "root": str(report.root),
        "ok": report.ok,
        "repositories": [outcome_to_dict(outcome) for outcome in report.outcomes],
    }


def render_text(report: OrchestrationReport) -> str:
    """Render the cumulative per-repository log followed by a summary table."""
    title = "Generate & Sign" if report.flow == FLOW_PUBLISH else "Verify"
    lines: List[str] = [f"=== {title} ({report.root}) ==="]
    if not report.outcomes:
        lines.append("No repositories (directories containing .git) found.")
    for outcome in report.outcomes:
        lines.extend(outcome.log)
    lines.append("=== Summary ===")
    for outcome in report.outcomes:
        kind = f" [{outcome.failure_kind}]" if outcome.failure_kind else ""
        lines.append(f"{outcome.status.upper():<9} {outcome.stage:<18} {outcome.path}{kind}")
    lines.append(f"{len(report.succeeded)} succeeded, {len(report.failed)} failed")
    return "\n".join(lines) + "\n"


__all__ = ["outcome_to_dict", "render_text", "report_to_dict"]
