"""FastAPI application routes, middleware, and metrics."""

import asyncio
import re
import secrets
import time
import uuid
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from structlog.contextvars import bind_contextvars, clear_contextvars

from cities_api.config import Settings, get_settings
from cities_api.errors import (
    CityNotFoundError,
    MissingParameterError,
    StoreError,
    StoreFormatError,
)
from cities_api.geometry.distance import GeoPoint, distance_between
from cities_api.health.health_check import is_store_available
from cities_api.jobs.area_search import AreaSearchWorker
from cities_api.jobs.registry import JobRegistry
from cities_api.logging_config import logger
from cities_api.models.city import point_of
from cities_api.models.health import Dependencies, HealthResponse
from cities_api.models.responses import (
    AreaAcceptedResponse,
    CitiesResponse,
    DistanceResponse,
)
from cities_api.store.query import where
from cities_api.store.store import FileBasedStore

INTEGER_PARAM = re.compile(r"-?[0-9]+")

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


def status_response(status_code: int) -> PlainTextResponse:
    """Return a plain text response whose body is the standard reason phrase."""
    return PlainTextResponse(HTTPStatus(status_code).phrase, status_code=status_code)


def is_authorized(header: str | None, token: str) -> bool:
    """Check an Authorization header against the static bearer token."""
    if not token or not header:
        return False
    scheme, _, credentials = header.partition(" ")
    return scheme.lower() == "bearer" and secrets.compare_digest(
        credentials.strip().encode(), token.encode()
    )


def city_point(record: dict) -> GeoPoint:
    """Return the coordinates of a record, failing if they are unusable."""
    point = point_of(record)
    if point is None:
        raise StoreFormatError(f"Invalid coordinates for city {record.get('guid')!r}")
    return point


async def sweep_expired_jobs(registry: JobRegistry, interval_s: float) -> None:
    """Periodically drop expired jobs so memory is released without lookups."""
    while True:
        await asyncio.sleep(interval_s)
        registry.expire()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API with its own store, job registry and area search worker.

    Args:
        settings: Configuration to use; read from the environment when omitted.

    Returns:
        A configured FastAPI application.
    """
    settings = settings or get_settings()
    store = FileBasedStore(
        settings.data_path,
        chunk_size=settings.store_chunk_size,
        max_record_size=settings.store_max_record_size,
    )
    jobs = JobRegistry(ttl_s=settings.job_ttl_s)
    worker = AreaSearchWorker(store, jobs, concurrency=settings.area_workers)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await worker.start()
        sweeper = asyncio.create_task(
            sweep_expired_jobs(jobs, settings.job_sweep_interval_s), name="job-sweeper"
        )
        logger.info("SERVICE_STARTED", data_path=str(store.path), workers=worker.concurrency)
        try:
            yield
        finally:
            sweeper.cancel()
            await asyncio.gather(sweeper, return_exceptions=True)
            await worker.stop()
            jobs.clear()
            logger.info("SERVICE_STOPPED")

    app = FastAPI(title="Cities API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.jobs = jobs
    app.state.worker = worker

    @app.middleware("http")
    async def require_bearer_token(request: Request, call_next):
        """Reject requests that don't carry the configured bearer token."""
        if not is_authorized(request.headers.get("authorization"), settings.auth_token):
            logger.info("UNAUTHORIZED_REQUEST", path=request.url.path)
            response = status_response(401)
            response.headers["www-authenticate"] = "Bearer"
            return response
        return await call_next(request)

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        """Log request details, attach a request ID, and record metrics.

        Args:
            request: Incoming HTTP request.
            call_next: FastAPI handler for the next middleware/app.

        Returns:
            The response produced by the downstream handler.
        """
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            duration_s = time.perf_counter() - start
            duration_ms = round(duration_s * 1000, 2)
            status_code = getattr(response, "status_code", 500)
            path = getattr(request.scope.get("route"), "path", request.url.path)
            logger.info(
                "HTTP_REQUEST",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=duration_ms,
            )
            REQUEST_COUNT.labels(
                method=request.method, path=path, status_code=status_code
            ).inc()
            REQUEST_LATENCY.labels(path=path).observe(duration_s)
            clear_contextvars()

    @app.exception_handler(MissingParameterError)
    async def missing_parameter_handler(request: Request, exc: MissingParameterError):
        """Convert parameter validation errors into 400 responses."""
        logger.info("BAD_REQUEST", path=request.url.path, error=str(exc))
        return status_response(400)

    @app.exception_handler(CityNotFoundError)
    async def city_not_found_handler(request: Request, exc: CityNotFoundError):
        """Convert city lookup errors into 404 responses."""
        return status_response(404)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        """Convert store failures into 500 responses without leaking details.

        Args:
            request: Incoming HTTP request.
            exc: Raised store error.

        Returns:
            A plain text response with the generic status phrase.
        """
        logger.error("STORE_ERROR", path=request.url.path, error=str(exc))
        return status_response(500)

    @app.get("/cities-by-tag", response_model=CitiesResponse)
    async def cities_by_tag(
        tag: str | None = None,
        is_active: str | None = Query(default=None, alias="isActive"),
    ) -> CitiesResponse:
        """Return cities carrying `tag`, optionally restricted by active flag."""
        if tag is None:
            raise MissingParameterError("tag is required")
        query = {"tags": {"includes": tag}}
        if is_active is not None:
            query["isActive"] = {"equals": is_active == "true"}
        return CitiesResponse(cities=await store.filter(where(query)))

    @app.get("/distance", response_model=DistanceResponse)
    async def distance(
        from_id: str | None = Query(default=None, alias="from"),
        to_id: str | None = Query(default=None, alias="to"),
    ) -> DistanceResponse:
        """Return the great-circle distance between two cities in kilometers."""
        if from_id is None or to_id is None:
            raise MissingParameterError("from and to are required")
        found = await store.find_many([from_id, to_id])
        from_city = found.get(from_id)
        to_city = found.get(to_id)
        if from_city is None or to_city is None:
            raise CityNotFoundError(f"City not found: {from_id if from_city is None else to_id}")

        meters = distance_between(city_point(from_city), city_point(to_city))
        return DistanceResponse(distance=round(meters / 1000, 2), from_=from_city, to=to_city)

    @app.get("/area", status_code=202, response_model=AreaAcceptedResponse)
    async def area(
        request: Request,
        from_id: str | None = Query(default=None, alias="from"),
        distance: str | None = None,
    ) -> AreaAcceptedResponse:
        """Start a background search for cities within `distance` meters.

        The origin is resolved by the background job, so an unknown `from`
        is still accepted; its handle then reports 404.
        """
        if from_id is None or distance is None:
            raise MissingParameterError("from and distance are required")
        if not INTEGER_PARAM.fullmatch(distance):
            raise MissingParameterError("distance must be an integer")
        radius_m = int(distance)

        job = jobs.create(origin_id=from_id, radius_m=radius_m)
        worker.submit(job)
        logger.info("AREA_JOB_CREATED", job_id=job.id, origin_id=from_id, radius_m=radius_m)
        return AreaAcceptedResponse(
            resultsUrl=str(request.url_for("area_result", job_id=job.id))
        )

    @app.get("/area-result/{job_id}", name="area_result", response_model=CitiesResponse)
    async def area_result(job_id: str):
        """Return the cities found by an area search, or 202 while it runs."""
        job = jobs.get(job_id)
        if job is None:
            return status_response(404)
        if not job.done:
            return Response(status_code=202)
        return CitiesResponse(cities=job.result)

    @app.get("/all-cities")
    async def all_cities() -> StreamingResponse:
        """Stream the backing file verbatim using chunked transfer encoding."""
        if not store.is_available():
            raise StoreError(f"Backing file {store.path} is not readable")
        return StreamingResponse(store.open_stream(), media_type="application/json")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Report API health and dependency availability.

        Returns:
            A HealthResponse containing dependency status.
        """
        return HealthResponse(
            status="ok",
            dependencies=Dependencies(store=is_store_available(store)),
            active_jobs=len(jobs),
        )

    @app.get("/metrics")
    async def metrics():
        """Expose Prometheus metrics for scraping."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
