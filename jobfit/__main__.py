"""Main entry point for jobfit."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from jobfit import __version__
from jobfit.config.settings import Settings
from jobfit.utils.logging import configure_logging


def _write_json(path: Path, payload: object) -> None:
    def _default(value: object):
        to_dict = getattr(value, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        model_dump = getattr(value, "model_dump", None)
        if callable(model_dump):
            return model_dump(mode="json")
        return str(value)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(payload, indent=2, default=_default),
        encoding="utf-8",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="jobfit",
        description="jobfit: score your experiences against a job description",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m jobfit import-profile profile.yaml --user alice
  python -m jobfit add-token --user alice
  python -m jobfit analyze --user alice --jd job.txt --out result.json
  python -m jobfit serve --port 8000
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the log level (overrides settings)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the profile database (overrides JOBFIT_DB_PATH)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
    )

    import_parser = subparsers.add_parser(
        "import-profile",
        help="Import companies, roles, experiences and education from a YAML/JSON file",
    )
    import_parser.add_argument("path", type=Path, help="Profile file (.yaml, .yml or .json)")
    import_parser.add_argument("--user", required=True, help="User id to import for")
    import_parser.add_argument(
        "--append",
        action="store_true",
        help="Keep the user's existing profile instead of replacing it",
    )

    token_parser = subparsers.add_parser(
        "add-token",
        help="Create an API bearer token for a user",
    )
    token_parser.add_argument("--user", required=True, help="User id the token belongs to")
    token_parser.add_argument(
        "--token",
        default=None,
        help="Use this token value instead of generating one",
    )

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a job description against a stored profile",
    )
    analyze_parser.add_argument("--user", required=True, help="User id to analyze for")
    analyze_parser.add_argument(
        "--jd",
        type=Path,
        required=True,
        help="Path to a plain-text job description",
    )
    analyze_parser.add_argument(
        "--keyword-match-type",
        choices=["exact", "flexible"],
        default="exact",
        help="How strictly keywords must appear in bullets (default: exact)",
    )
    analyze_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the full result JSON here instead of stdout",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API",
    )
    serve_parser.add_argument("--host", default=None, help="Bind address (overrides settings)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (overrides settings)")

    return parser


async def _import_profile(settings: Settings, path: Path, user_id: str, replace: bool) -> int:
    from jobfit.profile.loader import load_profile_document
    from jobfit.profile.repository import ProfileRepository

    document = load_profile_document(path)
    for warning in document.validate_document():
        print(f"Warning: {warning}", file=sys.stderr)

    repository = ProfileRepository(settings.db_path)
    await repository.initialize()
    try:
        return await repository.import_profile(user_id, document, replace=replace)
    finally:
        await repository.close()


async def _add_token(settings: Settings, user_id: str, token: str | None) -> str:
    from jobfit.profile.repository import ProfileRepository

    repository = ProfileRepository(settings.db_path)
    await repository.initialize()
    try:
        return await repository.add_token(user_id, token)
    finally:
        await repository.close()


async def _analyze(settings: Settings, user_id: str, job_description: str, mode: str):
    from jobfit.analysis.service import JobFitService
    from jobfit.profile.repository import ProfileRepository

    repository = ProfileRepository(settings.db_path)
    await repository.initialize()
    try:
        service = JobFitService(repository, cache=repository)
        return await service.analyze(user_id, job_description, mode)
    finally:
        await repository.close()


def _print_summary(result) -> None:
    print(f"Job: {result.job_title}")
    print(f"Score: {result.overall_score} ({result.fit_level})")
    print(f"Matched: {len(result.matched_requirements)}")
    print(f"Unmatched: {len(result.unmatched_requirements)}")
    if result.absolute_gap_explanation:
        print(result.absolute_gap_explanation)
    if result.critical_gaps:
        print(f"Critical gaps: {', '.join(result.critical_gaps)}")
    for recommendation in result.recommendations:
        print(f"- {recommendation}")
    if result.resume_bullets is not None:
        for role_key, bullets in result.resume_bullets.bullet_points.items():
            print(f"\n{role_key}")
            for bullet in bullets:
                print(f"  • {bullet.text}")


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    try:
        settings = Settings()
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    if parsed.db is not None:
        settings.db_path = parsed.db

    log_level = parsed.log_level or settings.log_level
    logger = configure_logging(level=log_level)

    if parsed.command is None:
        parser.print_help()
        return 0

    logger.info(f"jobfit v{__version__} running {parsed.command}")

    if parsed.command == "import-profile":
        try:
            count = asyncio.run(
                _import_profile(settings, parsed.path, parsed.user, not parsed.append)
            )
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Imported {count} experiences for {parsed.user}")
        return 0

    if parsed.command == "add-token":
        token = asyncio.run(_add_token(settings, parsed.user, parsed.token))
        print(token)
        return 0

    if parsed.command == "analyze":
        from jobfit.analysis.errors import AnalysisError

        if not parsed.jd.exists():
            print(f"Error: job description not found: {parsed.jd}", file=sys.stderr)
            return 1
        job_description = parsed.jd.read_text(encoding="utf-8")

        try:
            result = asyncio.run(
                _analyze(settings, parsed.user, job_description, parsed.keyword_match_type)
            )
        except AnalysisError as e:
            print(f"Error ({e.code}): {e.message}", file=sys.stderr)
            return 1

        if parsed.out is not None:
            _write_json(parsed.out, result.to_dict())
            print(f"Wrote: {parsed.out}")
            _print_summary(result)
        else:
            print(json.dumps(result.to_dict(), indent=2))
        return 0

    if parsed.command == "serve":
        import uvicorn

        from jobfit.api.app import create_app

        uvicorn.run(
            create_app(settings),
            host=parsed.host or settings.host,
            port=parsed.port or settings.port,
            log_level=log_level.lower(),
        )
        return 0

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
