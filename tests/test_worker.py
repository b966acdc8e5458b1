import threading

import pytest

from fakes import (
    FakeBlobStore,
    FakeHostController,
    FakeJobSource,
    FakeMediaEngine,
    make_metadata,
)
from transcode_worker.handlers import TranscodeJobHandler
from transcode_worker.worker import Worker


def _worker(
    staging,
    clock,
    bodies,
    objects,
    engine=None,
    host=None,
    failing_acks=(),
    **kwargs,
):
    events = []
    source = FakeJobSource(bodies, events=events, failing_acks=failing_acks)
    storage = FakeBlobStore(objects, events=events)
    engine = engine or FakeMediaEngine(make_metadata())
    handler = TranscodeJobHandler(storage, engine, staging, clock=clock)
    worker = Worker(source, handler, host, **kwargs)
    return worker, source, storage, events


@pytest.mark.asyncio
async def test_single_job_is_processed_acknowledged_and_host_stopped(
    staging, clock
) -> None:
    host = FakeHostController()
    worker, source, storage, events = _worker(
        staging,
        clock,
        ['{"key":"clip+one.mp4"}'],
        {"clip one.mp4": b"SRC"},
        host=host,
    )
    host.events = events

    summary = await worker.run()

    assert events == ["receive", "fetch:clip one.mp4", "ack:rh-0", "receive", "stop"]
    assert summary.processed == 1
    assert summary.failed == 0
    assert source.acknowledged == ["rh-0"]
    assert len(storage.published) == 2
    assert host.stops == 1


@pytest.mark.asyncio
async def test_jobs_run_strictly_one_at_a_time(staging, clock) -> None:
    worker, source, _, events = _worker(
        staging,
        clock,
        ['{"key": "a.mp4"}', '{"key": "b.mp4"}'],
        {"a.mp4": b"A", "b.mp4": b"B"},
    )

    summary = await worker.drain()

    assert events == [
        "receive",
        "fetch:a.mp4",
        "ack:rh-0",
        "receive",
        "fetch:b.mp4",
        "ack:rh-1",
        "receive",
    ]
    assert summary.processed == 2


@pytest.mark.asyncio
async def test_missing_object_leaves_message_and_loop_continues(staging, clock) -> None:
    host = FakeHostController()
    worker, source, storage, events = _worker(
        staging,
        clock,
        ['{"key": "gone.mp4"}', '{"key": "b.mp4"}'],
        {"b.mp4": b"B"},
        host=host,
    )

    summary = await worker.run()

    assert source.acknowledged == ["rh-1"]
    assert source.released == ["rh-0"]
    assert summary.failed == 1
    assert summary.processed == 1
    assert host.stops == 1


@pytest.mark.asyncio
async def test_malformed_message_is_skipped(staging, clock) -> None:
    worker, source, _, _ = _worker(
        staging,
        clock,
        ["not json", '{"key": "b.mp4"}'],
        {"b.mp4": b"B"},
    )

    summary = await worker.drain()

    assert summary.malformed == 1
    assert summary.processed == 1
    assert source.released == ["rh-0"]
    assert source.acknowledged == ["rh-1"]


@pytest.mark.asyncio
async def test_transform_failure_is_not_acknowledged(staging, clock) -> None:
    engine = FakeMediaEngine(make_metadata(), fail_video=True)
    worker, source, storage, _ = _worker(
        staging, clock, ['{"key": "a.mp4"}'], {"a.mp4": b"A"}, engine=engine
    )

    summary = await worker.drain()

    assert summary.failed == 1
    assert source.acknowledged == []
    assert storage.published == {}


@pytest.mark.asyncio
async def test_ack_failure_is_logged_and_not_fatal(staging, clock) -> None:
    worker, source, _, _ = _worker(
        staging,
        clock,
        ['{"key": "a.mp4"}', '{"key": "b.mp4"}'],
        {"a.mp4": b"A", "b.mp4": b"B"},
        failing_acks={"rh-0"},
    )

    summary = await worker.drain()

    assert summary.processed == 2
    assert summary.ack_failed == 1
    assert source.acknowledged == ["rh-1"]


@pytest.mark.asyncio
async def test_empty_queue_stops_host_immediately(staging, clock) -> None:
    host = FakeHostController()
    worker, _, _, events = _worker(staging, clock, [], {}, host=host)

    summary = await worker.run()

    assert summary.received == 0
    assert events == ["receive"]
    assert host.stops == 1


@pytest.mark.asyncio
async def test_shutdown_waits_for_grace_delay(staging, clock) -> None:
    host = FakeHostController()
    calls = []

    async def fake_sleep(seconds):
        calls.append(("sleep", seconds, host.stops))

    worker, _, _, _ = _worker(
        staging,
        clock,
        [],
        {},
        host=host,
        shutdown_delay_seconds=30.0,
        sleep=fake_sleep,
    )

    await worker.run()

    assert calls == [("sleep", 30.0, 0)]
    assert host.stops == 1


@pytest.mark.asyncio
async def test_host_stop_failure_is_not_raised(staging, clock) -> None:
    host = FakeHostController(fail=True)
    worker, _, _, _ = _worker(staging, clock, [], {}, host=host)

    await worker.run()

    assert host.events == ["stop"]


@pytest.mark.asyncio
async def test_without_host_controller_run_just_drains(staging, clock) -> None:
    worker, source, _, _ = _worker(
        staging, clock, ['{"key": "a.mp4"}'], {"a.mp4": b"A"}
    )

    summary = await worker.run()

    assert summary.processed == 1
    assert source.acknowledged == ["rh-0"]


@pytest.mark.asyncio
async def test_unexpected_error_stops_the_worker(staging, clock) -> None:
    host = FakeHostController()
    engine = FakeMediaEngine(make_metadata(), unexpected=RuntimeError("bug"))
    worker, source, _, _ = _worker(
        staging,
        clock,
        ['{"key": "a.mp4"}'],
        {"a.mp4": b"A"},
        engine=engine,
        host=host,
    )

    with pytest.raises(RuntimeError):
        await worker.run()

    assert source.acknowledged == []
    assert host.stops == 0


@pytest.mark.asyncio
async def test_job_source_calls_share_one_dedicated_thread(staging, clock) -> None:
    worker, source, _, _ = _worker(
        staging,
        clock,
        ["not json", '{"key": "a.mp4"}', '{"key": "gone.mp4"}'],
        {"a.mp4": b"A"},
    )

    await worker.run()

    # receive x4, release x2, ack x1
    assert len(source.threads) == 7
    assert len(set(source.threads)) == 1
    assert source.threads[0].startswith("job-source")
    assert source.threads[0] != threading.current_thread().name
