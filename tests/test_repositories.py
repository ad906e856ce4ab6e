"""Tests for repository classes."""

from sqlalchemy import select

from c3p1.db.models import Project, ProjectStatus, WorkItem, WorkStatus
from c3p1.db.repositories.memory_repo import MemoryRepository
from c3p1.db.repositories.message_repo import MessageRepository
from c3p1.db.repositories.project_repo import ProjectRepository
from c3p1.db.repositories.work_repo import WorkRepository


class TestProjectRepository:
    """Test ProjectRepository methods."""

    async def test_get_by_slug(self, db_manager, project):
        async with db_manager.session() as session:
            found = await ProjectRepository(session).get_by_slug("droid")

            assert found is not None
            assert found.id == project.id
            assert found.tech == []

    async def test_get_by_slug_not_found(self, db_manager):
        async with db_manager.session() as session:
            assert await ProjectRepository(session).get_by_slug("missing") is None

    async def test_list_active(self, db_manager, project):
        async with db_manager.session() as session:
            session.add(Project(slug="old", title="Old", status=ProjectStatus.COMPLETED.value))

        async with db_manager.session() as session:
            active = await ProjectRepository(session).list_active()

        assert [p.slug for p in active] == ["droid"]


class TestWorkRepository:
    """Test WorkRepository methods."""

    async def test_lifecycle_timestamps(self, db_manager, project):
        async with db_manager.session() as session:
            repo = WorkRepository(session)
            item = await repo.add(project.id, "Wire the relay", ["hardware"])
            assert item.status == WorkStatus.PENDING
            assert item.started_at is None

            item = await repo.start(item.id)
            assert item.status == WorkStatus.IN_PROGRESS
            assert item.started_at is not None

            item = await repo.complete(item.id, "Wired the relay")
            assert item.status == WorkStatus.COMPLETED
            assert item.completed_summary == "Wired the relay"
            assert item.completed_at is not None

    async def test_missing_item_returns_none(self, db_manager):
        async with db_manager.session() as session:
            repo = WorkRepository(session)
            assert await repo.complete(42) is None
            assert await repo.update_fields(42, summary="x") is None

    async def test_list_by_status(self, db_manager, project):
        async with db_manager.session() as session:
            repo = WorkRepository(session)
            a = await repo.add(project.id, "A")
            b = await repo.add(project.id, "B")
            await repo.complete(a.id)

            pending = await repo.list_by_status(WorkStatus.PENDING)
            completed = await repo.list_by_status(WorkStatus.COMPLETED, project_id=project.id)

        assert [w.id for w in pending] == [b.id]
        assert [w.id for w in completed] == [a.id]

    async def test_recent_completed_summaries(self, db_manager, project):
        async with db_manager.session() as session:
            repo = WorkRepository(session)
            for i in range(7):
                item = await repo.add(project.id, f"Task {i}")
                await repo.complete(item.id)

            summaries = await repo.recent_completed_summaries(limit=5)

        assert len(summaries) == 5

    async def test_project_delete_cascades(self, db_manager, project):
        async with db_manager.session() as session:
            await WorkRepository(session).add(project.id, "Orphan candidate")

        async with db_manager.session() as session:
            repo = ProjectRepository(session)
            await repo.remove(await repo.get_by_id(project.id))

        async with db_manager.session() as session:
            result = await session.execute(select(WorkItem))
            assert result.scalars().all() == []


class TestMessageRepository:
    """Test MessageRepository methods."""

    async def test_get_recent_oldest_first(self, db_manager):
        async with db_manager.session() as session:
            repo = MessageRepository(session)
            for i in range(4):
                await repo.add("k", "user", f"m{i}")

            recent = await repo.get_recent("k", 2)

        assert [m.content for m in recent] == ["m2", "m3"]

    async def test_prune_keeps_newest(self, db_manager):
        async with db_manager.session() as session:
            repo = MessageRepository(session)
            for i in range(5):
                await repo.add("k", "user", f"m{i}")
            await repo.add("other", "user", "untouched")

            deleted = await repo.prune("k", keep=2)

        async with db_manager.session() as session:
            repo = MessageRepository(session)
            assert deleted == 3
            assert [m.content for m in await repo.get_recent("k", 10)] == ["m3", "m4"]
            assert await repo.count("other") == 1


class TestMemoryRepository:
    """Test MemoryRepository methods."""

    async def test_prefix_listing_escapes_wildcards(self, db_manager):
        async with db_manager.session() as session:
            repo = MemoryRepository(session)
            await repo.add("/memories/a_b/x.md", "1")
            await repo.add("/memories/aXb/y.md", "2")

            paths = await repo.list_paths("/memories/a_b/")

        assert paths == ["/memories/a_b/x.md"]

    async def test_delete_prefix(self, db_manager):
        async with db_manager.session() as session:
            repo = MemoryRepository(session)
            await repo.add("/memories/p/1.md", "1")
            await repo.add("/memories/p/2.md", "2")
            await repo.add("/memories/q.md", "3")

            assert await repo.delete_prefix("/memories/p/") == 2
            assert await repo.list_paths("/memories/") == ["/memories/q.md"]

    async def test_set_content_stamps_updated_at(self, db_manager):
        async with db_manager.session() as session:
            repo = MemoryRepository(session)
            memory = await repo.add("/memories/t.md", "old")
            created = memory.updated_at

            memory = await repo.set_content(memory, "new")

        assert memory.content == "new"
        assert memory.updated_at >= created
