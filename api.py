#!/usr/bin/env python3
"""
REST API for upload validation.

Clients post an image; the API answers whether it would be accepted for
storage and, on /normalize, returns the upright (re-encoded if rotated) bytes.
Nothing is persisted here.
"""

from contextlib import asynccontextmanager
from typing import Annotated

import sentry_sdk
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.concurrency import run_in_threadpool

from image_intake import UploadCandidate, UploadValidator, __version__
from image_intake.auth import AuthInfo, require_api_key
from image_intake.config import get_settings
from image_intake.observability import (
    PrometheusMiddleware,
    get_logger,
    get_metrics,
    metrics_endpoint,
    setup_logging,
)
from image_intake.schemas import ValidationReport
from image_intake.validation import Accepted, ValidationResult

settings = get_settings()
setup_logging(
    json_format=settings.log_json,
    log_level=settings.log_level,
)

if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
    )

logger = get_logger("api")


def get_rate_limit_key(request: Request) -> str:
    """Get rate limit key from API key header or IP address."""
    api_key = request.headers.get("X-API-Key", "")
    if api_key:
        return f"apikey:{api_key[:8]}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle."""
    settings = get_settings()
    logger.info(
        "startup",
        version=__version__,
        auth_env_keys=len(settings.api_keys_list),
        content_types=sorted(settings.content_types),
        extensions=sorted(settings.extensions),
        min_upload_bytes=settings.min_upload_bytes,
        output_format=settings.output_format,
    )
    yield
    logger.info("shutdown_complete")


app = FastAPI(
    title="image-intake API",
    description="Validates uploaded images and normalizes their EXIF orientation",
    version=__version__,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(PrometheusMiddleware)


class HealthResponse(BaseModel):
    status: str
    version: str


def get_validator() -> UploadValidator:
    """Validator built from current settings."""
    return UploadValidator(settings=get_settings())


async def candidate_from_upload(upload: UploadFile) -> UploadCandidate:
    """Wrap a multipart upload, refusing bodies above the configured cap."""
    settings = get_settings()

    size = upload.size
    if size is None:
        size = len(await upload.read())
        await upload.seek(0)

    if size > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Upload exceeds {settings.max_upload_bytes} bytes",
        )

    return UploadCandidate(
        stream=upload.file,
        content_type=upload.content_type,
        filename=upload.filename,
        content_length=size,
    )


async def run_validation(
    upload: UploadFile, validator: UploadValidator, endpoint: str, client: str
) -> ValidationResult:
    """Validate off the event loop and count the outcome."""
    metrics = get_metrics()
    candidate = await candidate_from_upload(upload)
    metrics.upload_size_bytes.observe(candidate.content_length)

    try:
        result = await run_in_threadpool(validator.validate, candidate)
    except Exception as e:
        metrics.record_outcome("error", reason=type(e).__name__)
        logger.error(
            "validation_error",
            endpoint=endpoint,
            error=str(e),
            error_type=type(e).__name__,
            filename=upload.filename,
            client=client,
        )
        sentry_sdk.capture_exception(e)
        raise HTTPException(status_code=500, detail=str(e))

    if isinstance(result, Accepted):
        metrics.record_outcome("accepted", transform=result.transform.value)
    else:
        metrics.record_outcome("rejected", reason=result.reason.value)
        logger.info(
            "upload_refused",
            endpoint=endpoint,
            reason=result.reason.value,
            filename=upload.filename,
            client=client,
        )
    return result


@app.get("/metrics")
async def metrics():
    """Prometheus scraping endpoint."""
    return metrics_endpoint()


@app.get("/health", response_model=HealthResponse)
async def health():
    """API status."""
    return HealthResponse(status="ok", version=__version__)


@app.post("/validate", response_model=ValidationReport)
@limiter.limit(f"{settings.rate_limit_requests}/{settings.rate_limit_window}")
async def validate(
    request: Request,
    file: Annotated[UploadFile, File(description="Image to validate")],
    validator: UploadValidator = Depends(get_validator),
    auth: AuthInfo = Depends(require_api_key),
):
    """
    Validate an uploaded image.

    Returns 200 with the accepted metadata, or 422 with the rejection reason.
    """
    client = auth.client_name or "unknown"
    result = await run_validation(file, validator, "/validate", client)

    with result:
        report = ValidationReport.from_result(result, filename=file.filename)

    if not report.accepted:
        return JSONResponse(status_code=422, content=report.model_dump(mode="json"))
    return report


@app.post("/normalize")
@limiter.limit(f"{settings.rate_limit_requests}/{settings.rate_limit_window}")
async def normalize(
    request: Request,
    file: Annotated[UploadFile, File(description="Image to validate and normalize")],
    validator: UploadValidator = Depends(get_validator),
    auth: AuthInfo = Depends(require_api_key),
):
    """
    Validate an uploaded image and return the bytes that would be stored.

    The body is the original upload when no rotation was needed, otherwise
    the rotated image re-encoded in the configured output format.
    """
    client = auth.client_name or "unknown"
    result = await run_validation(file, validator, "/normalize", client)

    if not isinstance(result, Accepted):
        report = ValidationReport.from_result(result, filename=file.filename)
        return JSONResponse(status_code=422, content=report.model_dump(mode="json"))

    with result:
        return Response(
            content=result.data,
            media_type=result.media_type or "application/octet-stream",
            headers={
                "X-Orientation-Transform": result.transform.value,
                "X-Reencoded": str(result.reencoded).lower(),
            },
        )


def main():
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    logger.info(
        "server_start",
        host=settings.api_host,
        port=settings.api_port,
    )
    uvicorn.run(
        "api:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        access_log=False,  # structlog covers request logging
    )


if __name__ == "__main__":
    main()
