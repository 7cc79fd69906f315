from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .encoding import EncodedStroke, encode_stroke
from .mapper import PageSpace
from .strokes import Stroke

logger = logging.getLogger(__name__)


@dataclass
class PageInk:
    """Committed strokes for one page, in commit order."""

    page_number: int
    width: int
    height: int
    strokes: list[Stroke] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.page_number < 1:
            raise ValueError(f"page numbers start at 1, got {self.page_number}")
        if self.width < 1 or self.height < 1:
            raise ValueError(f"page {self.page_number} has empty size {self.width}x{self.height}")

    @property
    def space(self) -> PageSpace:
        return PageSpace(self.width, self.height)

    def append(self, stroke: Stroke) -> None:
        if not stroke.points:
            raise ValueError(f"stroke {stroke.id} has no points")
        self.strokes.append(stroke)

    def clear(self) -> None:
        self.strokes = []

    def render(self, in_progress: Iterable[Stroke] = ()) -> list[EncodedStroke]:
        # Always rebuilt from `strokes`; in-progress strokes are drawn on top but never stored.
        out = [encode_stroke(s) for s in self.strokes]
        out.extend(encode_stroke(s) for s in in_progress)
        return out


@dataclass
class DocumentSession:
    source_name: str
    pages: list[PageInk]
    active_page_index: int = 0

    def __post_init__(self) -> None:
        for i, page in enumerate(self.pages):
            if page.page_number != i + 1:
                raise ValueError(f"page at index {i} is numbered {page.page_number}")

    @classmethod
    def from_dimensions(cls, source_name: str, dims: Iterable[tuple[int, int]]) -> DocumentSession:
        pages = [PageInk(page_number=i, width=w, height=h) for i, (w, h) in enumerate(dims, start=1)]
        logger.info("loaded %r with %d page(s)", source_name, len(pages))
        return cls(source_name=source_name, pages=pages)

    @property
    def active_page(self) -> PageInk | None:
        if not self.pages:
            return None
        return self.pages[self.active_page_index]

    def page(self, page_number: int) -> PageInk:
        if not 1 <= page_number <= len(self.pages):
            raise KeyError(page_number)
        return self.pages[page_number - 1]

    def select_page(self, index: int) -> int:
        """Set the active page by zero-based index, clamped to the page range."""
        if not self.pages:
            self.active_page_index = 0
        else:
            self.active_page_index = max(0, min(index, len(self.pages) - 1))
        return self.active_page_index

    def clear_active_page(self) -> None:
        page = self.active_page
        if page is not None:
            page.clear()
            logger.info("cleared page %d of %r", page.page_number, self.source_name)
