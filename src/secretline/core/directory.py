"""Line directory: line identity and metadata.

Line ids are 1-indexed and allocated sequentially. Allocation is a
two-step affair so that a line only becomes visible once its secret and
creator membership exist: ``reserve`` validates input and builds the
entry, ``commit`` publishes it. A reservation that is never committed
consumes no id.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .exceptions import InvalidInputError, NotFoundError
from .models import Line, utcnow

logger = logging.getLogger(__name__)


class LineDirectory:
    """Arena of lines indexed by id. Lines are never removed."""

    def __init__(self, lines: list[Line] | None = None) -> None:
        self._lines: dict[int, Line] = {}
        for line in lines or []:
            self._lines[line.id] = line
        self._next_id = max(self._lines, default=0) + 1

    def reserve(self, name: str, creator: str, created_at: datetime | None = None) -> Line:
        """Validate and build the next line entry without publishing it.

        Raises:
            InvalidInputError: If name is empty or blank.
        """
        if not name or not name.strip():
            raise InvalidInputError("Line name must not be empty", field="name")
        if not creator:
            raise InvalidInputError("Creator identity must not be empty", field="creator")
        return Line(
            id=self._next_id,
            name=name,
            creator=creator,
            created_at=created_at or utcnow(),
        )

    def commit(self, line: Line) -> int:
        """Publish a reserved line. Must follow reserve() under the same writer lock."""
        if line.id != self._next_id:
            raise RuntimeError(f"Stale reservation for line {line.id}, next id is {self._next_id}")
        self._lines[line.id] = line
        self._next_id += 1
        logger.debug("Committed line %d (%r)", line.id, line.name)
        return line.id

    def create_line(self, name: str, creator: str) -> int:
        """Reserve and commit in one step, for callers with no other state to stage."""
        return self.commit(self.reserve(name, creator))

    def exists(self, line_id: int) -> bool:
        return line_id in self._lines

    def get_line(self, line_id: int) -> Line:
        """Get line metadata.

        Raises:
            NotFoundError: If the id was never allocated.
        """
        line = self._lines.get(line_id)
        if line is None:
            raise NotFoundError("Line", line_id)
        return line

    def require(self, line_id: int) -> None:
        if line_id not in self._lines:
            raise NotFoundError("Line", line_id)

    def line_count(self) -> int:
        return len(self._lines)

    def lines(self) -> list[Line]:
        """All lines in id order."""
        return [self._lines[i] for i in sorted(self._lines)]
