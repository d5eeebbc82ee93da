import asyncio

import pytest

from lecture_rag.jobs import ALREADY_RUNNING, JobContext, JobRunner, JobState


class TestJobRunner:
    def test_unknown_job_is_idle(self) -> None:
        status = JobRunner().status("nothing")

        assert status.state is JobState.IDLE
        assert status.running is False
        assert status.started_at is None

    @pytest.mark.asyncio
    async def test_job_completes_with_progress(self) -> None:
        runner = JobRunner()

        async def job(context: JobContext) -> None:
            context.update(processed=1)
            context.update(processed=2, total=2)

        result = runner.start("ingest", job)
        status = await runner.wait("ingest")

        assert result.started is True
        assert status.state is JobState.COMPLETED
        assert status.progress == {"processed": 2, "total": 2}
        assert status.finished_at is not None
        assert status.error is None

    @pytest.mark.asyncio
    async def test_second_start_while_running_is_refused(self) -> None:
        runner = JobRunner()
        release = asyncio.Event()

        async def job(context: JobContext) -> None:
            await release.wait()

        first = runner.start("ingest", job)
        second = runner.start("ingest", job)

        assert first.started is True
        assert second.started is False
        assert second.reason == ALREADY_RUNNING
        assert runner.status("ingest").running is True

        release.set()
        await runner.wait("ingest")
        assert runner.start("ingest", job).started is True
        release.set()
        await runner.wait("ingest")

    @pytest.mark.asyncio
    async def test_failure_is_recorded(self) -> None:
        runner = JobRunner()

        async def job(context: JobContext) -> None:
            context.update(stage="fetch")
            raise RuntimeError("network down")

        runner.start("ingest", job)
        status = await runner.wait("ingest")

        assert status.state is JobState.FAILED
        assert status.error == "network down"
        assert status.progress == {"stage": "fetch"}

    @pytest.mark.asyncio
    async def test_jobs_with_different_names_run_independently(self) -> None:
        runner = JobRunner()
        release = asyncio.Event()

        async def job(context: JobContext) -> None:
            await release.wait()

        assert runner.start("a", job).started
        assert runner.start("b", job).started

        release.set()
        assert (await runner.wait("a")).state is JobState.COMPLETED
        assert (await runner.wait("b")).state is JobState.COMPLETED

    @pytest.mark.asyncio
    async def test_wait_without_run(self) -> None:
        assert (await JobRunner().wait("none")).state is JobState.IDLE

    @pytest.mark.asyncio
    async def test_oldest_finished_statuses_are_evicted(self) -> None:
        runner = JobRunner(max_finished=2)
        release = asyncio.Event()

        async def job(context: JobContext) -> None:
            context.update(done=True)

        async def blocked(context: JobContext) -> None:
            await release.wait()

        runner.start("long", blocked)
        for name in ("a", "b", "c"):
            runner.start(name, job)
            await runner.wait(name)

        assert runner.status("a").state is JobState.IDLE
        assert runner.status("a").progress == {}
        assert runner.status("b").state is JobState.COMPLETED
        assert runner.status("c").state is JobState.COMPLETED
        assert runner.status("long").running

        release.set()
        await runner.wait("long")
        assert runner.status("b").state is JobState.IDLE
        assert runner.status("long").state is JobState.COMPLETED

    def test_max_finished_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="max_finished"):
            JobRunner(max_finished=0)
