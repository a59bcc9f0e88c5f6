# src/app/routers/ingest.py
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.app.deps import get_recipe_ingestor
from src.app.schemas.ingest import IngestRequest, IngestResponse
from src.services.errors import (
    FetchFailedError,
    InvalidInputError,
    NetworkTimeoutError,
    ProviderUnavailableError,
    RateLimitedError,
    RecipeNotFoundError,
    RecipeValidationError,
    ServiceError,
    SourceBlockedError,
    UpstreamStatusError,
)
from src.services.ingest import IngestResult, RecipeIngestor

log = logging.getLogger("ingest")
router = APIRouter(prefix="/recipes", tags=["ingest"])

TIMEOUT_MESSAGE = "Request timeout. The website took too long to respond."
NOT_FOUND_MESSAGE = "Could not find a recipe on this page. Try a different recipe website."
UNAVAILABLE_MESSAGE = "Recipe extraction service is not configured."
GENERIC_MESSAGE = "Failed to import recipe."

_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (InvalidInputError, 400),
    (SourceBlockedError, 403),
    (RecipeNotFoundError, 404),
    (NetworkTimeoutError, 408),
    (RecipeValidationError, 422),
    (RateLimitedError, 429),
    (ProviderUnavailableError, 503),
    (FetchFailedError, 500),
)


def _error_status(exc: ServiceError) -> tuple[int, str]:
    if isinstance(exc, UpstreamStatusError):
        return exc.status_code, str(exc)
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        return 500, GENERIC_MESSAGE

    if isinstance(exc, NetworkTimeoutError):
        return status_code, TIMEOUT_MESSAGE
    if isinstance(exc, RecipeNotFoundError):
        return status_code, NOT_FOUND_MESSAGE
    if isinstance(exc, ProviderUnavailableError):
        return status_code, UNAVAILABLE_MESSAGE
    if isinstance(exc, FetchFailedError):
        return status_code, GENERIC_MESSAGE
    return status_code, str(exc)


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = IngestResponse(success=False, error=message, statusCode=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _run(body: IngestRequest, ingestor: RecipeIngestor) -> IngestResult:
    if body.url is not None:
        return await ingestor.ingest_url(body.url)
    if body.text is not None:
        return await ingestor.ingest_text(body.text)
    if body.image is not None:
        return await ingestor.ingest_image(body.image)
    raise InvalidInputError("A recipe URL, text or image is required")


@router.post("/import", response_model=IngestResponse, response_model_exclude_none=True)
async def import_recipe(
    body: IngestRequest,
    ingestor: RecipeIngestor = Depends(get_recipe_ingestor),
):
    t0 = time.time()
    source = body.source_kind
    log.info("ingest.start source=%s url=%s", source, body.url)
    try:
        result = await _run(body, ingestor)
    except ServiceError as exc:
        dt = time.time() - t0
        status_code, message = _error_status(exc)
        if status_code >= 500:
            log.error("ingest.fail source=%s status=%d error=%s dt=%.2fs", source, status_code, exc, dt)
        else:
            log.warning("ingest.rejected source=%s status=%d error=%s dt=%.2fs", source, status_code, exc, dt)
        return _error_response(status_code, message)
    except Exception:
        log.exception("ingest.fail source=%s dt=%.2fs", source, time.time() - t0)
        return _error_response(500, GENERIC_MESSAGE)

    dt = time.time() - t0
    log.info(
        "ingest.ok source=%s strategy=%s recipe=%s warnings=%d dt=%.2fs",
        source,
        result.strategy,
        result.recipe.id,
        len(result.warnings),
        dt,
    )
    return IngestResponse(
        success=True,
        recipe=result.recipe,
        warnings=result.warnings or None,
        strategy=result.strategy,
    )
