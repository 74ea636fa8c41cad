import asyncio

from cities_api.errors import StoreError
from cities_api.jobs.area_search import AreaSearchWorker, run_area_search, within_radius
from cities_api.jobs.registry import JobRegistry
from cities_api.store.store import FileBasedStore

LONDON = {"guid": "london", "latitude": 51.5074, "longitude": -0.1278}


class FailingStore:
    async def find(self, guid):
        return LONDON

    async def filter(self, predicate):
        raise StoreError("disk on fire")


def test_within_radius_is_strict_and_excludes_origin():
    paris = {"guid": "paris", "latitude": 48.8566, "longitude": 2.3522}
    predicate = within_radius(LONDON, 400_000)
    assert predicate(paris)
    assert not predicate(LONDON)
    assert not predicate({**LONDON, "guid": "london-copy", "latitude": 0})
    assert not within_radius(LONDON, 0)({**LONDON, "guid": "twin"})


def test_within_radius_ignores_records_without_coordinates():
    predicate = within_radius(LONDON, 10_000_000)
    assert not predicate({"guid": "nowhere"})
    assert not predicate({"guid": "text", "latitude": "51", "longitude": "0"})


def test_run_area_search_completes_job(data_file):
    store = FileBasedStore(data_file)
    registry = JobRegistry()
    job = registry.create(origin_id="london", radius_m=120_000)

    asyncio.run(run_area_search(store, registry, job))

    assert job.done
    assert [city["guid"] for city in job.result] == ["brighton", "dover"]


def test_run_area_search_unknown_origin_deletes_job(data_file):
    registry = JobRegistry()
    job = registry.create(origin_id="atlantis", radius_m=120_000)

    asyncio.run(run_area_search(FileBasedStore(data_file), registry, job))

    assert registry.get(job.id) is None


def test_run_area_search_store_failure_deletes_job():
    registry = JobRegistry()
    job = registry.create(origin_id="london", radius_m=120_000)

    asyncio.run(run_area_search(FailingStore(), registry, job))

    assert registry.get(job.id) is None


def test_run_area_search_missing_file_deletes_job(tmp_path):
    registry = JobRegistry()
    job = registry.create(origin_id="london", radius_m=1)

    asyncio.run(run_area_search(FileBasedStore(tmp_path / "missing.json"), registry, job))

    assert registry.get(job.id) is None


def test_run_area_search_after_deletion_is_dropped(data_file):
    registry = JobRegistry()
    job = registry.create(origin_id="london", radius_m=120_000)
    registry.delete(job.id)

    asyncio.run(run_area_search(FileBasedStore(data_file), registry, job))

    assert registry.get(job.id) is None
    assert len(registry) == 0


def test_worker_processes_submitted_jobs(data_file):
    async def scenario():
        registry = JobRegistry()
        worker = AreaSearchWorker(FileBasedStore(data_file), registry, concurrency=2)
        await worker.start()
        try:
            near = registry.create(origin_id="london", radius_m=120_000)
            far = registry.create(origin_id="sydney", radius_m=1_000)
            missing = registry.create(origin_id="atlantis", radius_m=1_000)
            for job in (near, far, missing):
                worker.submit(job)
            await worker.join()
        finally:
            await worker.stop()
        return registry, near, far, missing

    registry, near, far, missing = asyncio.run(scenario())

    assert [city["guid"] for city in registry.get(near.id).result] == ["brighton", "dover"]
    assert registry.get(far.id).done
    assert registry.get(far.id).result == []
    assert registry.get(missing.id) is None


def test_worker_skips_jobs_deleted_before_they_run(data_file):
    async def scenario():
        registry = JobRegistry()
        worker = AreaSearchWorker(FileBasedStore(data_file), registry)
        job = registry.create(origin_id="london", radius_m=120_000)
        worker.submit(job)
        registry.delete(job.id)
        await worker.start()
        await worker.join()
        await worker.stop()
        return worker, registry, job

    worker, registry, job = asyncio.run(scenario())

    assert not worker.running
    assert registry.get(job.id) is None
    assert not job.done
