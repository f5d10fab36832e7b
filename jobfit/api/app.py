"""FastAPI application exposing the job fit analysis."""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Protocol

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

import jobfit
from jobfit.analysis.errors import AnalysisError, AuthError
from jobfit.analysis.models import CamelModel
from jobfit.analysis.service import JobFitService
from jobfit.config.settings import Settings, get_settings
from jobfit.profile.repository import ProfileRepository

logger = logging.getLogger(__name__)


class AnalyzeRequest(CamelModel):
    job_description: str | None = Field(default=None)
    keyword_match_type: str = Field(default="exact")


class TokenResolver(Protocol):
    async def resolve_user_id(self, token: str) -> str | None: ...


def error_body(message: str) -> dict:
    return {"error": message, "timestamp": datetime.now(UTC).isoformat()}


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def create_app(
    settings: Settings | None = None,
    *,
    service: JobFitService | None = None,
    repository: ProfileRepository | TokenResolver | None = None,
) -> FastAPI:
    """Build the application.

    When no repository is given one is opened at ``settings.db_path`` and
    managed by the app lifespan. Injected repositories are left to the caller.
    """
    settings = settings or get_settings()
    owns_repository = repository is None
    if repository is None:
        repository = ProfileRepository(settings.db_path)
    if service is None:
        service = JobFitService(repository, cache=repository)  # type: ignore[arg-type]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_repository:
            await repository.initialize()  # type: ignore[union-attr]
        yield
        if owns_repository:
            await repository.close()  # type: ignore[union-attr]

    app = FastAPI(
        title="Job Fit Analyzer API",
        description="Scores stored experiences against a job description",
        version=jobfit.__version__,
        lifespan=lifespan,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning("Rate limit exceeded for %s", get_remote_address(request))
        return JSONResponse(
            status_code=429,
            content=error_body("Too many requests. Please try again later."),
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg", "invalid value") if errors else "invalid value"
        return JSONResponse(status_code=400, content=error_body(f"Invalid request body: {detail}"))

    @app.exception_handler(AnalysisError)
    async def analysis_failed(request: Request, exc: AnalysisError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Analysis failed (%s): %s", exc.code, exc.message)
        else:
            logger.info("Request rejected (%s): %s", exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(status_code=500, content=error_body("Internal server error"))

    async def require_user(request: Request) -> str:
        token = _bearer_token(request)
        if token is None:
            raise AuthError("Unauthorized")
        user_id = await repository.resolve_user_id(token)  # type: ignore[union-attr]
        if user_id is None:
            raise AuthError("Unauthorized")
        return user_id

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "generatorConfigured": bool(service.config.llm_api_key),
        }

    @app.post("/analyze-job-fit")
    @limiter.limit(settings.rate_limit)
    async def analyze_job_fit(
        request: Request,
        body: AnalyzeRequest,
        user_id: str = Depends(require_user),
    ) -> JSONResponse:
        result = await service.analyze(
            user_id,
            body.job_description or "",
            body.keyword_match_type,
        )
        return JSONResponse(content=result.to_dict())

    return app
