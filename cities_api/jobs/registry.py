"""In-memory registry of area search jobs with time-based expiry."""

import heapq
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from cities_api.logging_config import logger

DEFAULT_JOB_TTL_S = 5 * 60


@dataclass
class AreaJob:
    """A pending or finished area search."""

    id: str
    origin_id: str
    radius_m: float
    created_at: float
    expires_at: float
    result: list[dict] = field(default_factory=list)
    done: bool = False


class JobRegistry:
    """Table of jobs keyed by id.

    Every job is removed `ttl_s` seconds after creation whether or not it has
    finished. Deadlines sit in a min-heap so a sweep only touches due entries.
    Completion and deletion both treat a missing job as a normal outcome.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_JOB_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_s = ttl_s
        self._clock = clock
        self._jobs: dict[str, AreaJob] = {}
        self._deadlines: list[tuple[float, str]] = []

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        return self.get(job_id) is not None

    def create(self, origin_id: str, radius_m: float, job_id: str | None = None) -> AreaJob:
        """Register a new pending job.

        Args:
            origin_id: guid of the city the search is centred on.
            radius_m: Search radius in meters.
            job_id: Explicit id; a random UUID is used when omitted.

        Returns:
            The new job.
        """
        now = self._clock()
        job = AreaJob(
            id=job_id or str(uuid.uuid4()),
            origin_id=origin_id,
            radius_m=radius_m,
            created_at=now,
            expires_at=now + self.ttl_s,
        )
        self._jobs[job.id] = job
        heapq.heappush(self._deadlines, (job.expires_at, job.id))
        return job

    def get(self, job_id: str) -> AreaJob | None:
        self.expire()
        return self._jobs.get(job_id)

    def complete(self, job_id: str, results: list[dict]) -> bool:
        """Store results and mark the job done.

        Returns:
            False if the job was already deleted or expired.
        """
        job = self.get(job_id)
        if job is None:
            return False
        job.result = results
        job.done = True
        return True

    def delete(self, job_id: str) -> bool:
        return self._jobs.pop(job_id, None) is not None

    def expire(self) -> int:
        """Drop every job whose deadline has passed.

        Returns:
            Number of jobs removed.
        """
        now = self._clock()
        removed = 0
        while self._deadlines and self._deadlines[0][0] <= now:
            expires_at, job_id = heapq.heappop(self._deadlines)
            job = self._jobs.get(job_id)
            # Skip stale heap entries left behind by an earlier delete.
            if job is not None and job.expires_at == expires_at:
                del self._jobs[job_id]
                removed += 1
        if removed:
            logger.info("AREA_JOBS_EXPIRED", count=removed, remaining=len(self._jobs))
        return removed

    def clear(self) -> None:
        self._jobs.clear()
        self._deadlines.clear()
