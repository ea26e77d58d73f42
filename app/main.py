"""Entry point for the FastAPI-powered catalog service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import __version__
from .config import settings
from .database import Database
from .errors import (
    CatalogError,
    Conflict,
    InvalidRequestError,
    NotFound,
    ProviderError,
    ProviderUnavailable,
)
from .genres import genre_name, genre_payload
from .models import (
    CatalogEntry,
    ContentRecordOut,
    ContentReference,
    ProfileIn,
    ProfileOut,
    ReviewIn,
    ReviewOut,
    ReviewUpdate,
    WatchlistIn,
)
from .services.aggregation import AggregationEngine
from .services.reconciler import CatalogReconciler
from .services.recommender import RecommendationEngine
from .services.reviews import ReviewService
from .services.tmdb import TMDBClient
from .services.watchlist import WatchlistService
from .utils import parse_media_kind

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI


@dataclass(slots=True)
class Services:
    """Collaborators shared by the route handlers."""

    catalog: TMDBClient
    reconciler: CatalogReconciler
    aggregation: AggregationEngine
    recommender: RecommendationEngine
    reviews: ReviewService
    watchlist: WatchlistService


def build_services(
    catalog: TMDBClient, database: Database
) -> Services:
    session_factory = database.session_factory
    reconciler = CatalogReconciler(session_factory, catalog)
    reviews = ReviewService(session_factory)
    return Services(
        catalog=catalog,
        reconciler=reconciler,
        aggregation=AggregationEngine(settings, catalog, reconciler, reviews),
        recommender=RecommendationEngine(settings, catalog, reconciler, reviews),
        reviews=reviews,
        watchlist=WatchlistService(session_factory, reconciler),
    )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=settings.tmdb_base_url,
            timeout=httpx.Timeout(
                settings.tmdb_timeout_seconds,
                connect=min(settings.tmdb_timeout_seconds, 3.0),
            ),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    catalog = TMDBClient(settings, tmdb_http_client)
    fastapi_app.state.services = build_services(catalog, database)
    fastapi_app.state.database = database
    logger.info("%s ready (provider %s)", settings.app_name, settings.tmdb_base_url)

    try:
        yield
    finally:
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Trending, most-reviewed and personalised catalog feeds",
        version=__version__,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_services(fastapi_app: FastAPI) -> Services:
    services = getattr(fastapi_app.state, "services", None)
    if not isinstance(services, Services):
        raise RuntimeError("Catalog services not initialised")
    return services


def register_error_handlers(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(ProviderError)
    async def _provider_error(_: Request, exc: ProviderError) -> JSONResponse:
        status = exc.status_code if 400 <= exc.status_code < 600 else 502
        return JSONResponse(
            status_code=status,
            content={
                "detail": {
                    "error": "provider_error",
                    "upstream_status": exc.status_code,
                    "description": exc.message,
                }
            },
        )

    @fastapi_app.exception_handler(ProviderUnavailable)
    async def _provider_unavailable(_: Request, exc: ProviderUnavailable) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={
                "detail": {
                    "error": "provider_unavailable",
                    "description": "The catalog provider is unavailable. Please try again shortly.",
                }
            },
        )

    @fastapi_app.exception_handler(CatalogError)
    async def _catalog_error(_: Request, exc: CatalogError) -> JSONResponse:
        if isinstance(exc, NotFound):
            status = 404
        elif isinstance(exc, InvalidRequestError):
            status = 400
        elif isinstance(exc, Conflict):
            status = 409
        else:
            status = 500
        return JSONResponse(status_code=status, content={"detail": str(exc)})


def register_routes(fastapi_app: FastAPI) -> None:
    register_error_handlers(fastapi_app)

    def _item_payload(item: CatalogEntry) -> dict[str, Any]:
        payload = item.to_payload()
        payload["displayTitle"] = item.display_title()
        payload["posterUrl"] = item.poster_url(settings.image_base_url)
        payload["backdropUrl"] = item.backdrop_url(settings.image_base_url)
        payload["genreNames"] = [genre_name(genre_id) for genre_id in item.genre_ids]
        return payload

    async def _json_body(request: Request) -> dict[str, Any]:
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = {}
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        return payload

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/genres")
    async def genres() -> list[dict[str, object]]:
        return genre_payload()

    @fastapi_app.get("/api/content/newest")
    async def newest(limit: int | None = None) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        items = await services.aggregation.newest(limit)
        return [_item_payload(item) for item in items]

    @fastapi_app.get("/api/content/popular")
    async def popular(limit: int | None = None) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        items = await services.aggregation.most_popular(limit)
        return [_item_payload(item) for item in items]

    @fastapi_app.get("/api/content/most-viewed")
    async def most_viewed(page: int = 1, limit: int | None = None) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        details = await services.aggregation.most_reviewed(page, limit)
        return [_item_payload(detail) for detail in details]

    @fastapi_app.get("/api/content/recommendations/{profile_id}")
    async def recommendations(
        profile_id: int, limit: int | None = None
    ) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        items = await services.recommender.recommend(profile_id, limit)
        return [_item_payload(item) for item in items]

    @fastapi_app.get("/api/content/movies")
    async def movies(page: int = 1, limit: int | None = None) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        items = await services.aggregation.trending("movie", page, limit)
        return [_item_payload(item) for item in items]

    @fastapi_app.get("/api/content/tvshows")
    async def tvshows(page: int = 1, limit: int | None = None) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        items = await services.aggregation.trending("series", page, limit)
        return [_item_payload(item) for item in items]

    @fastapi_app.get("/api/content/search")
    async def search(
        q: str | None = None,
        page: int = 1,
        language: str | None = None,
        genre: str | None = None,
        year: str | None = None,
    ) -> list[dict[str, Any]]:
        query = (q or "").strip()
        if not query and not genre:
            raise HTTPException(
                status_code=400, detail="Search query or genre is required"
            )
        services = get_services(fastapi_app)
        items = await services.catalog.search(
            query or "*", page=page, language=language, genre=genre, year=year
        )
        return [_item_payload(item) for item in items]

    @fastapi_app.get("/api/content/{kind}/{provider_id}")
    async def content_detail(kind: str, provider_id: int) -> dict[str, Any]:
        resolved = parse_media_kind(kind)
        services = get_services(fastapi_app)
        detail = await services.catalog.item_detail(resolved, provider_id)
        record = await services.reconciler.reconcile(detail, resolved)
        payload = _item_payload(detail)
        payload["contentId"] = record.id
        payload["cast"] = detail.cast_names()
        return payload

    @fastapi_app.post("/api/content")
    async def create_content(request: Request) -> JSONResponse:
        try:
            reference = ContentReference.model_validate(await _json_body(request))
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        services = get_services(fastapi_app)
        kind = parse_media_kind(reference.kind)
        try:
            record = await services.reconciler.by_provider_id(reference.provider_id, kind)
            status = 200
        except NotFound:
            record = await services.reconciler.reconcile_reference(
                kind, reference.provider_id, added_by=reference.added_by
            )
            status = 201
        return JSONResponse(
            ContentRecordOut.model_validate(record).model_dump(mode="json"),
            status_code=status,
        )

    @fastapi_app.post("/api/profiles")
    async def create_profile(request: Request) -> JSONResponse:
        try:
            data = ProfileIn.model_validate(await _json_body(request))
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        services = get_services(fastapi_app)
        profile = await services.reviews.create_profile(data.name, data.avatar_id)
        return JSONResponse(
            ProfileOut.model_validate(profile).model_dump(mode="json"), status_code=201
        )

    @fastapi_app.get("/api/profiles/{profile_id}")
    async def get_profile(profile_id: int) -> dict[str, Any]:
        services = get_services(fastapi_app)
        profile = await services.reviews.get_profile(profile_id)
        return ProfileOut.model_validate(profile).model_dump(mode="json")

    @fastapi_app.post("/api/reviews")
    async def create_review(request: Request) -> JSONResponse:
        try:
            data = ReviewIn.model_validate(await _json_body(request))
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        services = get_services(fastapi_app)
        review = await services.reviews.create_review(
            profile_id=data.profile_id,
            content_id=data.content_id,
            rating=data.rating,
            review=data.review,
            is_public=data.is_public,
        )
        return JSONResponse(
            ReviewOut.model_validate(review).model_dump(mode="json"), status_code=201
        )

    @fastapi_app.put("/api/reviews/{review_id}")
    async def update_review(review_id: int, request: Request) -> dict[str, Any]:
        try:
            changes = ReviewUpdate.model_validate(await _json_body(request))
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        services = get_services(fastapi_app)
        review = await services.reviews.update_review(review_id, changes)
        return ReviewOut.model_validate(review).model_dump(mode="json")

    @fastapi_app.delete("/api/reviews/{review_id}", status_code=204)
    async def delete_review(review_id: int) -> Response:
        services = get_services(fastapi_app)
        await services.reviews.delete_review(review_id)
        return Response(status_code=204)

    @fastapi_app.get("/api/reviews/profile/{profile_id}")
    async def reviews_by_profile(profile_id: int) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        await services.reviews.get_profile(profile_id)
        reviews = await services.reviews.list_by_profile(profile_id)
        return [ReviewOut.model_validate(review).model_dump(mode="json") for review in reviews]

    @fastapi_app.get("/api/reviews/content/{content_id}")
    async def reviews_by_content(
        content_id: int, profile: int | None = None
    ) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        reviews = await services.reviews.list_by_content(
            content_id, viewer_profile_id=profile
        )
        return [ReviewOut.model_validate(review).model_dump(mode="json") for review in reviews]

    @fastapi_app.get("/api/mylist/{profile_id}")
    async def my_list(profile_id: int) -> list[dict[str, Any]]:
        services = get_services(fastapi_app)
        entries = await services.watchlist.entries(profile_id)
        return [
            {
                "profileId": entry.profile_id,
                "contentId": entry.content_id,
                "addedAt": entry.added_at.isoformat(),
                "content": ContentRecordOut.model_validate(record).model_dump(mode="json"),
            }
            for entry, record in entries
        ]

    @fastapi_app.post("/api/mylist")
    async def add_to_list(request: Request) -> JSONResponse:
        try:
            data = WatchlistIn.model_validate(await _json_body(request))
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        services = get_services(fastapi_app)
        entry, record = await services.watchlist.add(
            data.profile_id,
            content_id=data.content_id,
            provider_id=data.provider_id,
            kind=data.kind,
        )
        return JSONResponse(
            {
                "profileId": entry.profile_id,
                "contentId": entry.content_id,
                "addedAt": entry.added_at.isoformat(),
                "content": ContentRecordOut.model_validate(record).model_dump(mode="json"),
            },
            status_code=201,
        )

    @fastapi_app.delete("/api/mylist/{profile_id}/{content_id}", status_code=204)
    async def remove_from_list(profile_id: int, content_id: int) -> Response:
        services = get_services(fastapi_app)
        await services.watchlist.remove(profile_id, content_id)
        return Response(status_code=204)


app = create_app()
