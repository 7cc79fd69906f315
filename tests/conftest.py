from __future__ import annotations

import pytest

from pageink.ink.errors import StorageUnavailable, StorageWriteError
from pageink.ink.model import DocumentSession
from pageink.ink.strokes import Point, Stroke


class MemoryStorage:
    """In-memory storage double; names in `fail` raise on write."""

    def __init__(self, fail: set[str] | None = None, available: bool = True) -> None:
        self.files: dict[tuple[str, str], bytes] = {}
        self.order: list[str] = []
        self.fail = fail or set()
        self.available = available

    def check(self) -> None:
        if not self.available:
            raise StorageUnavailable("no folder picked")

    async def write(self, directory: str, name: str, data: bytes) -> None:
        if name in self.fail:
            raise StorageWriteError(f"disk full writing {name}")
        self.files[(directory, name)] = data
        self.order.append(name)

    async def list_directory(self, directory: str) -> list[str]:
        return sorted(n for d, n in self.files if d == directory)


def make_stroke(times, *, sid="s1", xy=None, color="#0b57d0", width=2.5) -> Stroke:
    xy = xy or [(10.0 + i, 20.0 + 2 * i) for i in range(len(times))]
    points = tuple(Point(x, y, t) for (x, y), t in zip(xy, times))
    return Stroke(id=sid, color=color, width=width, points=points, t_start=points[0].t, t_end=points[-1].t)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def two_page_doc():
    """2-page document; page 1 holds one 3-point stroke at t=[0, 50, 120]."""
    doc = DocumentSession.from_dimensions("report.pdf", [(800, 1000), (800, 1000)])
    doc.page(1).append(make_stroke([0.0, 50.0, 120.0], sid="abc"))
    return doc
