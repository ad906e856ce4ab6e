"""Scheduled tasks declared in configuration.

Each definition sends a fixed prompt through a fresh conversation loop
when its cron schedule fires, e.g.:

    scheduler:
      tasks:
        - name: morning-briefing
          schedule: "0 9 * * 1-5"
          prompt: "Summarize what is in progress across active projects."
"""

import logging
from collections.abc import Callable

from c3p1.agent.conversation import ChatMessage, ConversationLoop
from c3p1.core.config.models import Config, PromptTaskDefinition
from c3p1.scheduler.scheduler import ScheduledTask, TaskHandler, TaskScheduler
from c3p1.scheduler.tracker import TaskContext

logger = logging.getLogger(__name__)

LoopFactory = Callable[[], ConversationLoop]

SUMMARY_PREVIEW_LENGTH = 200


def _summarize(text: str) -> str:
    line = " ".join(text.split())
    if len(line) > SUMMARY_PREVIEW_LENGTH:
        return line[: SUMMARY_PREVIEW_LENGTH - 3] + "..."
    return line


def build_prompt_task(definition: PromptTaskDefinition, loop_factory: LoopFactory) -> ScheduledTask:
    """Create a scheduled task that answers a fixed prompt.

    Args:
        definition: Task definition from configuration.
        loop_factory: Returns a fresh ConversationLoop per run.

    Returns:
        ScheduledTask whose handler returns a one-line summary of the reply.
    """

    async def handler(ctx: TaskContext) -> str:
        loop = loop_factory()
        reply = await loop.run([ChatMessage(role="user", content=definition.prompt)])

        metrics = loop.last_metrics
        if metrics is not None:
            await ctx.log_usage(metrics.input_tokens, metrics.output_tokens)

        summary = _summarize(reply)
        await ctx.log_action(
            "prompt_response",
            summary,
            {"task": definition.name, "rounds": metrics.rounds if metrics else 0},
        )
        return summary

    task_handler: TaskHandler = handler
    return ScheduledTask(name=definition.name, schedule=definition.schedule, handler=task_handler)


def register_configured_tasks(scheduler: TaskScheduler, config: Config, loop_factory: LoopFactory) -> int:
    """Register every enabled prompt task from configuration.

    Returns:
        Number of tasks registered.
    """
    registered = 0
    for definition in config.scheduler.tasks:
        if not definition.enabled:
            logger.debug(f"Skipping disabled task: {definition.name}")
            continue
        scheduler.register(build_prompt_task(definition, loop_factory))
        registered += 1
    return registered
