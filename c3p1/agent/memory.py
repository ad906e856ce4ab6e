"""Virtual memory filesystem backed by the `memories` table.

Implements the command set of the model's built-in memory tool (view,
create, str_replace, insert, delete, rename) over path-addressed text rows.
Every command returns a human-readable string; validation problems are
reported in that string rather than raised. Store failures propagate.

Paths must live under a reserved root (default `/memories`) and may not
contain `..`. Reads and writes are plain read-modify-write sequences, so
concurrent edits to the same path can race.
"""

import logging

from c3p1.agent.tools import MemoryInput
from c3p1.db.database import DatabaseManager
from c3p1.db.repositories.memory_repo import MemoryRepository

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "/memories"
TRAVERSAL_TOKEN = ".."


class MemoryStore:
    """Path-addressed text file store with line-oriented edits."""

    def __init__(self, db: DatabaseManager, root: str = DEFAULT_ROOT):
        """Initialize the store.

        Args:
            db: Database manager providing sessions.
            root: Reserved root prefix every path must start with.
        """
        self._db = db
        self.root = root.rstrip("/")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, args: MemoryInput) -> str:
        """Run a memory tool command."""
        if args.command == "view":
            return await self.view(args.path, args.view_range)
        if args.command == "create":
            return await self.create(args.path, args.file_text or "")
        if args.command == "str_replace":
            return await self.str_replace(args.path, args.old_str or "", args.new_str or "")
        if args.command == "insert":
            insert_line = args.insert_line if args.insert_line is not None else 0
            return await self.insert(args.path, insert_line, args.insert_text or "")
        if args.command == "delete":
            return await self.delete(args.path)
        if args.command == "rename":
            return await self.rename(args.old_path, args.new_path)
        return f"Unknown memory command: {args.command}"

    # ------------------------------------------------------------------
    # Path validation
    # ------------------------------------------------------------------

    def validate_path(self, path: str | None) -> str | None:
        """Return the path if it is a legal memory path, else None."""
        if not path:
            return None
        if TRAVERSAL_TOKEN in path:
            return None
        if path != self.root and not path.startswith(self.root + "/"):
            return None
        return path

    def _is_root(self, path: str) -> bool:
        return path.rstrip("/") == self.root

    @staticmethod
    def _missing(path: str | None) -> str:
        return f"The path {path} does not exist. Please provide a valid path."

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def view(self, path: str | None, view_range: list[int] | None = None) -> str:
        """List the root directory, or show a file with line numbers.

        Args:
            path: Root path for a listing, or a file path.
            view_range: Optional inclusive 1-based [start, end]; end -1 means end of file.
        """
        safe_path = self.validate_path(path)
        if not safe_path:
            return self._missing(path)

        if self._is_root(safe_path):
            return await self._list_root()

        async with self._db.session() as session:
            memory = await MemoryRepository(session).get_by_path(safe_path)
            content = memory.content if memory else None

        if content is None:
            return self._missing(safe_path)

        lines = content.split("\n")
        if view_range is None:
            start, end = 1, len(lines)
        else:
            if len(view_range) != 2:
                return "Error: Invalid `view_range`. It should be a list of two integers."
            start, end = view_range
            if start < 1 or start > len(lines):
                return (
                    f"Error: Invalid `view_range` parameter: {view_range}. Its first element "
                    f"should be within the range of lines of the file: [1, {len(lines)}]"
                )
            if end == -1 or end > len(lines):
                end = len(lines)
            if end < start:
                return (
                    f"Error: Invalid `view_range` parameter: {view_range}. Its second element "
                    f"should be larger or equal than its first"
                )

        numbered = "\n".join(
            f"{number:>6}\t{line}" for number, line in enumerate(lines[start - 1 : end], start=start)
        )
        return f"Here's the content of {safe_path} with line numbers:\n{numbered}"

    async def _list_root(self) -> str:
        async with self._db.session() as session:
            paths = await MemoryRepository(session).list_paths(self.root + "/")

        header = (
            f"Here're the files and directories up to 2 levels deep in {self.root}, "
            f"excluding hidden items:\n4.0K\t{self.root}"
        )
        if not paths:
            return f"{header}\n(empty directory)"
        listing = "\n".join(f"1.0K\t{p}" for p in paths)
        return f"{header}\n{listing}"

    async def create(self, path: str | None, file_text: str = "") -> str:
        """Create a new file. Creating over an existing path is an error."""
        safe_path = self.validate_path(path)
        if not safe_path or self._is_root(safe_path):
            return self._missing(path)

        async with self._db.session() as session:
            repo = MemoryRepository(session)
            if await repo.exists(safe_path):
                return f"Error: File {safe_path} already exists"
            await repo.add(safe_path, file_text)

        logger.debug(f"Created memory file {safe_path} ({len(file_text)} chars)")
        return f"File created successfully at: {safe_path}"

    async def str_replace(self, path: str | None, old_str: str, new_str: str = "") -> str:
        """Replace the single occurrence of old_str with new_str.

        Zero or multiple occurrences leave the file untouched.
        """
        safe_path = self.validate_path(path)
        if not safe_path:
            return f"Error: {self._missing(path)}"
        if not old_str:
            return "Error: Parameter `old_str` is required for command: str_replace"

        async with self._db.session() as session:
            repo = MemoryRepository(session)
            memory = await repo.get_by_path(safe_path)
            if memory is None:
                return f"Error: {self._missing(safe_path)}"

            occurrences = memory.content.count(old_str)
            if occurrences == 0:
                return (
                    f"No replacement was performed, old_str `{old_str}` did not appear "
                    f"verbatim in {safe_path}."
                )
            if occurrences > 1:
                line_numbers = _occurrence_lines(memory.content, old_str)
                return (
                    f"No replacement was performed. Multiple occurrences of old_str `{old_str}` "
                    f"in lines: {', '.join(str(n) for n in line_numbers)}. Please ensure it is unique"
                )

            await repo.set_content(memory, memory.content.replace(old_str, new_str, 1))

        return "The memory file has been edited."

    async def insert(self, path: str | None, insert_line: int, insert_text: str = "") -> str:
        """Insert insert_text as a new line after line `insert_line` (0 = top)."""
        safe_path = self.validate_path(path)
        if not safe_path:
            return f"Error: {self._missing(path)}"

        async with self._db.session() as session:
            repo = MemoryRepository(session)
            memory = await repo.get_by_path(safe_path)
            if memory is None:
                return f"Error: {self._missing(safe_path)}"

            lines = memory.content.split("\n")
            if insert_line < 0 or insert_line > len(lines):
                return (
                    f"Error: Invalid `insert_line` parameter: {insert_line}. It should be within "
                    f"the range of lines of the file: [0, {len(lines)}]"
                )

            lines.insert(insert_line, insert_text)
            await repo.set_content(memory, "\n".join(lines))

        return f"The file {safe_path} has been edited."

    async def delete(self, path: str | None) -> str:
        """Delete a file, or every file under a directory path.

        Only a path ending in "/" removes a subtree. Any other path removes
        at most the one file stored at exactly that path. Success is reported
        even when nothing matched.
        """
        safe_path = self.validate_path(path)
        if not safe_path:
            return f"Error: {self._missing(path)}"

        async with self._db.session() as session:
            repo = MemoryRepository(session)
            if safe_path.endswith("/"):
                deleted = await repo.delete_prefix(safe_path)
            else:
                deleted = await repo.delete_path(safe_path)

        logger.debug(f"Deleted {deleted} memory file(s) at {safe_path}")
        return f"Successfully deleted {safe_path}"

    async def rename(self, old_path: str | None, new_path: str | None) -> str:
        """Move a file to a new path, keeping its content."""
        safe_old = self.validate_path(old_path)
        safe_new = self.validate_path(new_path)
        if not safe_old:
            return f"Error: {self._missing(old_path)}"
        if not safe_new or self._is_root(safe_new):
            return f"Error: {self._missing(new_path)}"

        async with self._db.session() as session:
            repo = MemoryRepository(session)
            if await repo.exists(safe_new):
                return f"Error: The destination {safe_new} already exists"
            memory = await repo.get_by_path(safe_old)
            if memory is None:
                return f"Error: {self._missing(safe_old)}"
            await repo.move(memory, safe_new)

        return f"Successfully renamed {safe_old} to {safe_new}"


def _occurrence_lines(content: str, needle: str) -> list[int]:
    """1-based line numbers on which each occurrence of needle starts."""
    lines: list[int] = []
    start = content.find(needle)
    while start != -1:
        line = content.count("\n", 0, start) + 1
        if not lines or lines[-1] != line:
            lines.append(line)
        start = content.find(needle, start + 1)
    return lines
