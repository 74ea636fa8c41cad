"""Background radius search over the city store."""

import asyncio

from prometheus_client import Counter

from cities_api.errors import StoreError
from cities_api.geometry.distance import distance_between
from cities_api.jobs.registry import AreaJob, JobRegistry
from cities_api.logging_config import logger
from cities_api.models.city import point_of
from cities_api.store.query import Predicate
from cities_api.store.store import FileBasedStore

AREA_JOBS = Counter("area_jobs_total", "Finished area search jobs", ["outcome"])


def within_radius(origin: dict, radius_m: float) -> Predicate:
    """Match records strictly closer than `radius_m` to `origin`, except itself."""
    origin_guid = origin.get("guid")
    origin_point = point_of(origin)

    def predicate(record: dict) -> bool:
        if record.get("guid") == origin_guid:
            return False
        point = point_of(record)
        if origin_point is None or point is None:
            return False
        return distance_between(origin_point, point) < radius_m

    return predicate


async def run_area_search(store: FileBasedStore, registry: JobRegistry, job: AreaJob) -> None:
    """Resolve the job's origin, scan for nearby cities and publish the result.

    The job is deleted when the origin doesn't exist or the store fails, so
    its handle resolves as not found from then on.
    """
    log = logger.bind(job_id=job.id, origin_id=job.origin_id, radius_m=job.radius_m)
    try:
        origin = await store.find(job.origin_id)
        if origin is None:
            log.info("AREA_ORIGIN_NOT_FOUND")
            registry.delete(job.id)
            AREA_JOBS.labels(outcome="origin_not_found").inc()
            return
        matches = await store.filter(within_radius(origin, job.radius_m))
    except StoreError as exc:
        log.error("AREA_SEARCH_FAILED", error=str(exc))
        registry.delete(job.id)
        AREA_JOBS.labels(outcome="failed").inc()
        return

    if registry.complete(job.id, matches):
        log.info("AREA_SEARCH_COMPLETED", matches=len(matches))
        AREA_JOBS.labels(outcome="completed").inc()
    else:
        log.info("AREA_SEARCH_DROPPED")
        AREA_JOBS.labels(outcome="dropped").inc()


class AreaSearchWorker:
    """Queue of submitted area jobs drained by a fixed number of tasks."""

    def __init__(self, store: FileBasedStore, registry: JobRegistry, concurrency: int = 1):
        self.store = store
        self.registry = registry
        self.concurrency = concurrency
        self._queue: asyncio.Queue[AreaJob] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def submit(self, job: AreaJob) -> None:
        """Queue a job without waiting for it to run."""
        self._queue.put_nowait(job)
        logger.info("AREA_JOB_QUEUED", job_id=job.id, queued=self._queue.qsize())

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._consume(), name=f"area-search-{n}")
            for n in range(self.concurrency)
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if self.registry.get(job.id) is not None:
                    await run_area_search(self.store, self.registry, job)
            except Exception:
                logger.exception("AREA_SEARCH_CRASHED", job_id=job.id)
                self.registry.delete(job.id)
                AREA_JOBS.labels(outcome="failed").inc()
            finally:
                self._queue.task_done()
