"""ASGI application for Mealbook."""
# mypy: ignore-errors

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from mealbook import __version__, metrics
from mealbook.config import Settings, get_settings
from mealbook.ingest.errors import FetchError, RecipeImportError
from mealbook.logging_utils import configure_logging as configure_app_logging
from mealbook.models.meal import (
    CanonicalMeal,
    Meal,
    MealUpdate,
    PaprikaImportResult,
    RecipeTextDraft,
)
from mealbook.server import deps

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("mealbook.access")


class UploadRejected(Exception):
    """Upload refused before any importer sees it."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class UrlImportRequest(BaseModel):
    url: str = ""


class TextImportRequest(BaseModel):
    text: str = ""


class PhotoImportResponse(BaseModel):
    text: str
    draft: RecipeTextDraft


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.hex()
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(errors: list[Any]) -> str:
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request body"
    return f"Invalid {field}: {first.get('msg', 'malformed request')}"


def _unexpected_import_failure(source: str, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected failure importing from %s", source)
    metrics.IMPORTS.labels(source=source, outcome="failed").inc()
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc) or f"Failed to import recipe from {source}",
    )


async def _read_upload(file: UploadFile, settings: Settings) -> bytes:
    content = await file.read()
    if not content:
        raise UploadRejected(status.HTTP_400_BAD_REQUEST, "Uploaded file is empty.")
    if len(content) > settings.max_upload_bytes:
        raise UploadRejected(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"Upload exceeds {settings.max_upload_bytes} byte limit.",
        )
    return content


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _record_request(request: Request, status_code: int, started: float, *, failed: bool = False) -> None:
    elapsed = perf_counter() - started
    route = _route_label(request)
    metrics.REQUEST_COUNT.labels(method=request.method, path=route, status=str(status_code)).inc()
    metrics.REQUEST_LATENCY.labels(method=request.method, path=route).observe(elapsed)
    emit = access_logger.exception if failed else access_logger.info
    emit(
        "%s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        status_code,
        elapsed * 1000,
        extra={"request_id": request.state.request_id},
    )


def _configure_logging(settings: Settings) -> None:
    configure_app_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Mealbook", version=__version__)
    logger.debug("Application created with log level %s", settings.log_level)

    @application.middleware("http")
    async def trace_requests(request: Request, call_next):
        """Tag each request with an ID, then count, time and log it."""

        request.state.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        started = perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            if settings.log_requests:
                _record_request(request, status.HTTP_500_INTERNAL_SERVER_ERROR, started, failed=True)
            raise
        response.headers.setdefault("X-Request-ID", request.state.request_id)
        if settings.log_requests:
            _record_request(request, response.status_code, started)
        return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [_json_safe(error) for error in exc.errors()]
        logger.warning(
            "Rejected %s %s: %s",
            request.method,
            request.url.path,
            errors,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        if request.url.path.startswith("/import/"):
            return _error_response(status.HTTP_400_BAD_REQUEST, _validation_message(errors))
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": errors})

    @application.exception_handler(RecipeImportError)
    async def import_error_handler(request: Request, exc: RecipeImportError):
        extra = {"import_source": request.url.path}
        if isinstance(exc, FetchError):
            logger.warning("Import fetch failed url=%s: %s", exc.url, exc.reason, extra=extra)
        else:
            logger.info("Import rejected: %s", exc, extra=extra)
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    @application.exception_handler(UploadRejected)
    async def upload_rejected_handler(request: Request, exc: UploadRejected):
        logger.info("Upload rejected on %s: %s", request.url.path, exc)
        return _error_response(exc.status_code, str(exc))

    @application.get("/healthz", summary="Liveness probe")
    def healthz() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @application.get("/metrics", summary="Prometheus metrics")
    def metrics_endpoint() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @application.post(
        "/import/url",
        response_model=CanonicalMeal,
        summary="Import a recipe from a web page",
    )
    def import_url(
        payload: UrlImportRequest,
        auth: None = Depends(deps.require_api_token),
        importer: deps.UrlImporter = Depends(deps.get_url_importer),
    ):
        url = payload.url.strip()
        if not url:
            return _error_response(status.HTTP_400_BAD_REQUEST, "URL is required")
        try:
            return importer(url)
        except RecipeImportError:
            raise
        except Exception as exc:
            return _unexpected_import_failure("url", exc)

    @application.post(
        "/import/paprika",
        response_model=PaprikaImportResult,
        summary="Import recipes from a Paprika export",
    )
    async def import_paprika(
        file: UploadFile = File(...),
        auth: None = Depends(deps.require_api_token),
        settings: Settings = Depends(get_settings),
        loader: deps.PaprikaLoader = Depends(deps.get_paprika_loader),
    ):
        content = await _read_upload(file, settings)
        logger.debug("Received Paprika export filename=%s size=%s", file.filename, len(content))
        try:
            return PaprikaImportResult(meals=loader(content))
        except RecipeImportError:
            raise
        except Exception as exc:
            return _unexpected_import_failure("paprika", exc)

    @application.post(
        "/import/ocr",
        response_model=RecipeTextDraft,
        summary="Draft a recipe from recognized text",
    )
    def import_ocr(
        payload: TextImportRequest,
        auth: None = Depends(deps.require_api_token),
        parser: deps.TextParser = Depends(deps.get_text_parser),
    ) -> RecipeTextDraft:
        return RecipeTextDraft.from_meal(parser(payload.text))

    @application.post(
        "/import/photo",
        response_model=PhotoImportResponse,
        summary="Recognize a cookbook photo and draft a recipe",
    )
    async def import_photo(
        file: UploadFile = File(...),
        auth: None = Depends(deps.require_api_token),
        settings: Settings = Depends(get_settings),
        reader: deps.PhotoReader = Depends(deps.get_photo_reader),
    ):
        content = await _read_upload(file, settings)
        try:
            recognition = await run_in_threadpool(reader, content, file.content_type)
        except RecipeImportError:
            raise
        except Exception as exc:
            return _unexpected_import_failure("photo", exc)
        return PhotoImportResponse(
            text=recognition.text,
            draft=RecipeTextDraft.from_meal(recognition.meal),
        )

    @application.get("/meals", response_model=list[Meal], summary="List stored meals")
    def meals_list(provider: deps.MealsProvider = Depends(deps.get_meals_provider)) -> list[Meal]:
        return provider()

    @application.post(
        "/meals",
        response_model=Meal,
        status_code=status.HTTP_201_CREATED,
        summary="Store an imported or hand-entered meal",
    )
    def meals_create(
        payload: CanonicalMeal,
        auth: None = Depends(deps.require_api_token),
        creator: deps.MealCreator = Depends(deps.get_meal_creator),
    ) -> Meal:
        meal = creator(payload)
        logger.info("Created meal id=%s source=%s", meal.id, meal.provenance.kind)
        return meal

    @application.get("/meals/{meal_id}", response_model=Meal, summary="Retrieve a meal")
    def meals_get(
        meal_id: int,
        fetcher: deps.MealFetcher = Depends(deps.get_meal_fetcher),
    ) -> Meal:
        try:
            return fetcher(meal_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.put("/meals/{meal_id}", response_model=Meal, summary="Update a meal")
    def meals_update(
        meal_id: int,
        payload: MealUpdate,
        auth: None = Depends(deps.require_api_token),
        updater: deps.MealUpdater = Depends(deps.get_meal_updater),
    ) -> Meal:
        try:
            return updater(meal_id, payload)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.delete(
        "/meals/{meal_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a meal",
    )
    def meals_delete(
        meal_id: int,
        auth: None = Depends(deps.require_api_token),
        deleter: deps.MealDeleter = Depends(deps.get_meal_deleter),
    ) -> None:
        try:
            deleter(meal_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return application


app = create_app()
