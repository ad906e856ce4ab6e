"""Application container wiring storage, agent, and scheduler together."""

import logging

from langchain_core.language_models import BaseChatModel

from c3p1.agent.assistant import Assistant
from c3p1.agent.client import create_chat_model
from c3p1.agent.conversation import ConversationLoop
from c3p1.agent.executor import ToolExecutor
from c3p1.agent.history import ConversationHistory
from c3p1.agent.memory import MemoryStore
from c3p1.core.config import Config
from c3p1.core.metrics import AuditLogger
from c3p1.db.database import DatabaseManager
from c3p1.scheduler.scheduler import TaskScheduler
from c3p1.scheduler.tasks import register_configured_tasks
from c3p1.scheduler.tracker import TaskRunTracker

logger = logging.getLogger(__name__)


class C3P1App:
    """Owns every long-lived component for one process.

    All components share a single DatabaseManager. Configured prompt tasks
    are registered at construction, so run_now() works without start().
    """

    def __init__(self, config: Config, model: BaseChatModel | None = None):
        """Build the component graph.

        Args:
            config: Application configuration.
            model: Chat model to use; built from config.anthropic when omitted.
        """
        self.config = config
        self.db = DatabaseManager(config.database.path, echo=config.database.echo)
        self.audit = AuditLogger(self.db)
        self.memory = MemoryStore(self.db, root=config.memory.root)
        self.executor = ToolExecutor(self.db, self.memory)
        self.model = model if model is not None else create_chat_model(config.anthropic)

        self.history = ConversationHistory(
            self.db,
            agent_id=config.agent.agent_id,
            max_history=config.agent.max_history,
        )
        self.assistant = Assistant(self.history, self.create_loop())

        self.tracker = TaskRunTracker(self.db, self.audit, agent_id=config.agent.agent_id)
        self.scheduler = TaskScheduler(self.tracker, timezone=config.scheduler.timezone)
        count = register_configured_tasks(self.scheduler, config, self.create_loop)
        logger.info(f"Application initialized with {count} scheduled task(s)")

    def create_loop(self) -> ConversationLoop:
        """Create a conversation loop bound to this app's model and tools."""
        return ConversationLoop(
            self.model,
            self.executor,
            audit=self.audit,
            max_rounds=self.config.agent.max_rounds,
            model_name=self.config.anthropic.model,
        )

    async def start(self) -> None:
        """Create tables if needed and start the scheduler."""
        await self.db.init_db()
        await self.scheduler.start()
        logger.info("c3p1 started")

    async def stop(self) -> None:
        """Stop the scheduler, flush detached writes, and close the database.

        Logs errors but does not raise - shutdown should always reach close().
        """
        try:
            await self.scheduler.stop()
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

        await self.audit.drain()
        await self.db.close()
        logger.info("c3p1 stopped")
