"""CLI entrypoints for reposeal commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .discovery import discover_repositories
from .errors import ReposealError
from .integrity import IntegrityVerifier
from .logging import configure_logging
from .manifest import HashManifestBuilder
from .orchestrator import BatchOrchestrator
from .report import render_text


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_root_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Directory whose immediate subdirectories are scanned for repositories.",
    )


def _add_key_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--key",
        dest="key_id",
        default=None,
        help="GnuPG key id to sign with or to require on verification (defaults to .reposeal.yml).",
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .reposeal.yml file (defaults to the one in ROOT).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reposeal",
        description="Generate, sign, publish and verify hash manifests for git repositories.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List repositories found under ROOT.")
    _add_verbose_option(list_parser, suppress_default=True)
    _add_root_argument(list_parser)

    publish_parser = subparsers.add_parser(
        "publish",
        help="Generate, sign, commit and push hashes.md5 in every repository under ROOT.",
    )
    _add_verbose_option(publish_parser, suppress_default=True)
    _add_root_argument(publish_parser)
    _add_key_option(publish_parser)
    _add_config_option(publish_parser)
    publish_parser.add_argument(
        "--no-push",
        action="store_true",
        help="Commit the signed manifest but do not push.",
    )
    publish_parser.add_argument(
        "--message",
        default=None,
        help="Commit message for the manifest commit.",
    )

    verify_parser = subparsers.add_parser(
        "verify",
        help="Verify signatures and file contents in every repository under ROOT.",
    )
    _add_verbose_option(verify_parser, suppress_default=True)
    _add_root_argument(verify_parser)
    _add_key_option(verify_parser)
    _add_config_option(verify_parser)

    manifest_parser = subparsers.add_parser(
        "manifest",
        help="Write hashes.md5 for a single repository without signing or committing.",
    )
    _add_verbose_option(manifest_parser, suppress_default=True)
    manifest_parser.add_argument("repo", help="Path to the repository root.")

    check_parser = subparsers.add_parser(
        "check",
        help="Check a single repository's files against its hashes.md5.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    check_parser.add_argument("repo", help="Path to the repository root.")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for reposeal commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "list":
        try:
            repositories = discover_repositories(args.root)
        except OSError as exc:
            parser.exit(1, f"{exc}\n")
        if not repositories:
            print("No repositories (directories containing .git) found.")
        for repo in repositories:
            print(repo)
    elif args.command in {"publish", "verify"}:
        try:
            config = load_config(args.config or Path(args.root))
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        key_id = args.key_id or config.signing.key_id
        if args.command == "publish":
            orchestrator = BatchOrchestrator.from_config(
                config,
                push=False if args.no_push else None,
                commit_message=args.message,
            )
        else:
            orchestrator = BatchOrchestrator.from_config(config)
        try:
            if args.command == "publish":
                report = orchestrator.run_publish(args.root, key_id)
            else:
                report = orchestrator.run_verify(args.root, key_id)
        except OSError as exc:
            parser.exit(1, f"{exc}\n")
        except Exception as exc:  # pragma: no cover - defensive guard
            parser.exit(1, f"reposeal {args.command} failed: {exc}\nRun with --verbose for more details.\n")
        sys.stdout.write(render_text(report))
        if not report.ok:
            parser.exit(1)
    elif args.command == "manifest":
        try:
            manifest_path = HashManifestBuilder().write(args.repo)
        except (ReposealError, OSError) as exc:
            parser.exit(1, f"{exc}\n")
        print(f"Generated: {manifest_path}")
    elif args.command == "check":
        try:
            integrity = IntegrityVerifier().verify(args.repo)
        except (ReposealError, OSError) as exc:
            parser.exit(1, f"{exc}\n")
        for failure in integrity.failures:
            print(f"{failure.path}: FAILED {failure.reason}")
        if not integrity.passed:
            parser.exit(1, f"Integrity FAILED ({len(integrity.failures)} problems in {integrity.checked} entries)\n")
        print(f"Integrity OK ({integrity.checked} files)")
    elif args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
