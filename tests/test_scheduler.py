"""Tests for TaskScheduler and configured prompt tasks."""

import asyncio
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

import pytest

from c3p1.agent.conversation import ConversationLoop
from c3p1.agent.executor import ToolExecutor
from c3p1.agent.memory import MemoryStore
from c3p1.core.config import Config, PromptTaskDefinition
from c3p1.core.errors import TaskNotFoundError
from c3p1.core.metrics import AuditLogger
from c3p1.db.models import TaskRunStatus
from c3p1.db.repositories.audit_repo import AuditRepository
from c3p1.scheduler.scheduler import ScheduledTask, TaskScheduler
from c3p1.scheduler.tasks import build_prompt_task, register_configured_tasks
from c3p1.scheduler.tracker import TaskContext, TaskRunTracker


@pytest.fixture
def tracker(db_manager):
    return TaskRunTracker(db_manager, AuditLogger(db_manager))


@pytest.fixture
def scheduler(tracker):
    return TaskScheduler(tracker, timezone="America/New_York")


async def succeed(ctx: TaskContext) -> str:
    return f"handled run {ctx.task_run_id}"


class SilentError(Exception):
    """Raised without a message."""


class TestRegistration:
    """Test task registration rules."""

    def test_timezone_stored(self, scheduler):
        assert scheduler._timezone == "America/New_York"
        assert scheduler._tz == ZoneInfo("America/New_York")

    def test_register(self, scheduler):
        scheduler.register(ScheduledTask("briefing", "0 9 * * 1-5", succeed))

        assert [t.name for t in scheduler.registered_tasks] == ["briefing"]

    def test_duplicate_name_rejected(self, scheduler):
        scheduler.register(ScheduledTask("briefing", "0 9 * * *", succeed))

        with pytest.raises(ValueError, match="already registered"):
            scheduler.register(ScheduledTask("briefing", "0 10 * * *", succeed))

    def test_invalid_cron_rejected(self, scheduler):
        with pytest.raises(ValueError, match="Invalid cron expression"):
            scheduler.register(ScheduledTask("bad", "not a cron", succeed))

        assert scheduler.registered_tasks == []

    async def test_register_after_start_rejected(self, scheduler):
        with patch("c3p1.scheduler.scheduler.AsyncIOScheduler"):
            await scheduler.start()

        with pytest.raises(RuntimeError):
            scheduler.register(ScheduledTask("late", "0 9 * * *", succeed))


class TestStartStop:
    """Test APScheduler wiring."""

    async def test_start_adds_one_job_per_task(self, scheduler):
        scheduler.register(ScheduledTask("a", "0 9 * * *", succeed))
        scheduler.register(ScheduledTask("b", "*/15 * * * *", succeed))

        with patch("c3p1.scheduler.scheduler.AsyncIOScheduler") as mock_scheduler_class:
            mock_scheduler_instance = MagicMock()
            mock_scheduler_class.return_value = mock_scheduler_instance

            await scheduler.start()

        mock_scheduler_class.assert_called_once_with(timezone=ZoneInfo("America/New_York"))
        assert mock_scheduler_instance.add_job.call_count == 2
        kwargs = mock_scheduler_instance.add_job.call_args_list[0].kwargs
        assert kwargs["id"] == "a"
        assert kwargs["name"] == "a"
        assert kwargs["replace_existing"] is True
        assert kwargs["args"][0].name == "a"
        mock_scheduler_instance.start.assert_called_once()

    async def test_cron_trigger_receives_timezone(self, scheduler):
        scheduler.register(ScheduledTask("a", "0 9 * * *", succeed))

        with (
            patch("c3p1.scheduler.scheduler.AsyncIOScheduler"),
            patch("c3p1.scheduler.scheduler.CronTrigger") as mock_cron_trigger,
        ):
            await scheduler.start()

        mock_cron_trigger.from_crontab.assert_called_once_with("0 9 * * *", timezone=ZoneInfo("America/New_York"))

    async def test_stop_without_start(self, scheduler):
        await scheduler.stop()

        assert not scheduler.running


class TestRunProcedure:
    """Test run_now and the fire path."""

    async def test_run_now_completes_with_summary(self, scheduler):
        scheduler.register(ScheduledTask("briefing", "0 9 * * *", succeed))

        run = await scheduler.run_now("briefing")

        assert run.status == TaskRunStatus.COMPLETED
        assert run.result_summary == f"handled run {run.id}"
        assert run.run_metadata == {"manual": True}
        assert run.completed_at is not None

    async def test_run_now_unknown_task(self, scheduler):
        with pytest.raises(TaskNotFoundError) as exc_info:
            await scheduler.run_now("ghost")

        assert exc_info.value.task_name == "ghost"
        assert str(exc_info.value) == "Task not found: ghost"

    async def test_handler_error_marks_failed(self, scheduler):
        async def explode(ctx: TaskContext) -> str:
            raise RuntimeError("printer on fire")

        scheduler.register(ScheduledTask("explode", "0 9 * * *", explode))

        run = await scheduler.run_now("explode")

        assert run.status == TaskRunStatus.FAILED
        assert run.result_summary == "printer on fire"

    async def test_empty_error_message_uses_class_name(self, scheduler):
        async def explode(ctx: TaskContext) -> str:
            raise SilentError()

        scheduler.register(ScheduledTask("explode", "0 9 * * *", explode))

        run = await scheduler.run_now("explode")

        assert run.result_summary == "SilentError"

    async def test_none_summary_recorded_as_empty(self, scheduler):
        async def quiet(ctx: TaskContext) -> str:
            return None

        scheduler.register(ScheduledTask("quiet", "0 9 * * *", quiet))

        run = await scheduler.run_now("quiet")

        assert run.status == TaskRunStatus.COMPLETED
        assert run.result_summary == ""

    async def test_fire_runs_overlap_without_lock(self, scheduler, tracker):
        release = asyncio.Event()
        started = 0

        async def slow(ctx: TaskContext) -> str:
            nonlocal started
            started += 1
            await release.wait()
            return "done"

        task = ScheduledTask("slow", "* * * * *", slow)
        scheduler.register(task)

        await scheduler._fire(task)
        await scheduler._fire(task)
        for _ in range(200):
            if started == 2:
                break
            await asyncio.sleep(0.01)

        running = await tracker.recent("slow")
        assert started == 2
        assert [r.status for r in running] == [TaskRunStatus.RUNNING, TaskRunStatus.RUNNING]

        release.set()
        await scheduler.stop()

        finished = await tracker.recent("slow")
        assert [r.status for r in finished] == [TaskRunStatus.COMPLETED, TaskRunStatus.COMPLETED]
        assert all(r.run_metadata is None for r in finished)


class TestPromptTasks:
    """Test tasks built from configuration."""

    async def test_prompt_task_records_response_and_usage(
        self, db_manager, scheduler, scripted_model, make_ai_message
    ):
        model = scripted_model([make_ai_message("Two items in progress, sir.", input_tokens=40, output_tokens=12)])
        executor = ToolExecutor(db_manager, MemoryStore(db_manager))
        definition = PromptTaskDefinition(name="briefing", schedule="0 9 * * *", prompt="Brief me")

        scheduler.register(build_prompt_task(definition, lambda: ConversationLoop(model, executor)))
        run = await scheduler.run_now("briefing")

        assert run.status == TaskRunStatus.COMPLETED
        assert run.result_summary == "Two items in progress, sir."
        assert model.calls[0][-1].content == "Brief me"

        async with db_manager.session() as session:
            repo = AuditRepository(session)
            actions = await repo.actions_for("scheduled", str(run.id))
            usage = await repo.usage_for("scheduled", str(run.id))
        assert [a.action_type for a in actions] == ["prompt_response"]
        assert actions[0].details == {"task": "briefing", "rounds": 1}
        assert [(u.tokens_in, u.tokens_out) for u in usage] == [(40, 12)]

    async def test_long_reply_summarized_to_one_line(self, db_manager, scheduler, scripted_model, make_ai_message):
        model = scripted_model([make_ai_message("line one\n" + "x" * 400)])
        executor = ToolExecutor(db_manager, MemoryStore(db_manager))
        definition = PromptTaskDefinition(name="long", schedule="0 9 * * *", prompt="Go")

        scheduler.register(build_prompt_task(definition, lambda: ConversationLoop(model, executor)))
        run = await scheduler.run_now("long")

        assert "\n" not in run.result_summary
        assert len(run.result_summary) == 200
        assert run.result_summary.endswith("...")

    async def test_model_failure_marks_run_failed(self, db_manager, scheduler, scripted_model):
        model = scripted_model([RuntimeError("overloaded_error")])
        executor = ToolExecutor(db_manager, MemoryStore(db_manager))
        definition = PromptTaskDefinition(name="flaky", schedule="0 9 * * *", prompt="Go")

        scheduler.register(build_prompt_task(definition, lambda: ConversationLoop(model, executor)))
        run = await scheduler.run_now("flaky")

        assert run.status == TaskRunStatus.FAILED
        assert run.result_summary == "overloaded_error"

    def test_register_configured_tasks_skips_disabled(self, scheduler):
        config = Config(
            scheduler={
                "tasks": [
                    {"name": "on", "schedule": "0 9 * * *", "prompt": "a"},
                    {"name": "off", "schedule": "0 9 * * *", "prompt": "b", "enabled": False},
                ]
            }
        )

        count = register_configured_tasks(scheduler, config, MagicMock())

        assert count == 1
        assert [t.name for t in scheduler.registered_tasks] == ["on"]
