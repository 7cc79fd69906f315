from __future__ import annotations

import enum
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Hashable, Optional

from .errors import InvalidState
from .mapper import Rect, map_point
from .model import DocumentSession
from .strokes import Point, Stroke

logger = logging.getLogger(__name__)

# Wall-clock anchor + monotonic counter: ms timestamps that never step backwards.
_EPOCH_MS = time.time() * 1000.0 - time.perf_counter() * 1000.0


def now_ms() -> float:
    return _EPOCH_MS + time.perf_counter() * 1000.0


def new_stroke_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PenStyle:
    color: str = "#0b57d0"
    width: float = 2.5


class RecorderState(enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"


class StrokeRecorder:
    """
    Accumulates samples for one pointer id into one stroke.

    Events from a pointer type outside `accept` are dropped silently; with
    `accept=None` every pointer type is taken.
    """

    def __init__(
        self,
        style: PenStyle,
        accept: Optional[frozenset[str]] = None,
        id_factory: Callable[[], str] = new_stroke_id,
    ) -> None:
        self.style = style
        self.accept = accept
        self._id_factory = id_factory
        self.state = RecorderState.IDLE
        self.pointer_id: Optional[Hashable] = None
        self._id = ""
        self._points: list[Point] = []
        self._t_start = 0.0
        self._t_end = 0.0

    def accepts(self, capability: Optional[str]) -> bool:
        return self.accept is None or capability in self.accept

    def _require(self, state: RecorderState, op: str) -> None:
        if self.state is not state:
            raise InvalidState(f"{op}() called while {self.state.value}")

    def begin(
        self, pointer_id: Hashable, capability: Optional[str], point: tuple[float, float], time: float
    ) -> Optional[Stroke]:
        self._require(RecorderState.IDLE, "begin")
        if not self.accepts(capability):
            logger.debug("rejected begin from pointer %s (%s)", pointer_id, capability)
            return None
        self.state = RecorderState.RECORDING
        self.pointer_id = pointer_id
        self._id = self._id_factory()
        x, y = point
        self._points = [Point(x, y, time)]
        self._t_start = self._t_end = time
        return self.snapshot()

    def extend(self, point: tuple[float, float], time: float, capability: Optional[str] = None) -> bool:
        self._require(RecorderState.RECORDING, "extend")
        if not self.accepts(capability):
            logger.debug("rejected sample from pointer %s (%s)", self.pointer_id, capability)
            return False
        self._t_end = max(self._t_end, time)
        x, y = point
        self._points.append(Point(x, y, self._t_end))
        return True

    def snapshot(self) -> Stroke:
        """Frozen view of the in-progress stroke (for live rendering)."""
        self._require(RecorderState.RECORDING, "snapshot")
        return Stroke(
            id=self._id,
            color=self.style.color,
            width=self.style.width,
            points=tuple(self._points),
            t_start=self._t_start,
            t_end=self._t_end,
        )

    def commit(self) -> Stroke:
        stroke = self.snapshot()
        self._reset()
        return stroke

    def abort(self) -> None:
        self._require(RecorderState.RECORDING, "abort")
        self._reset()

    def _reset(self) -> None:
        self.state = RecorderState.IDLE
        self.pointer_id = None
        self._id = ""
        self._points = []


class PointerRouter:
    """
    Routes pointer events to one StrokeRecorder per pressed pointer id.

    A pointer stays captured by the page it went down on until up/cancel.
    Committed strokes are appended to that page.
    """

    def __init__(
        self,
        document: DocumentSession,
        style: PenStyle,
        accept: Optional[frozenset[str]] = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.document = document
        self.style = style
        self.accept = accept
        self.clock = clock
        self._active: dict[Hashable, tuple[int, StrokeRecorder]] = {}

    def _time(self, ts: Optional[float]) -> float:
        return self.clock() if ts is None else ts

    def down(
        self,
        pointer_id: Hashable,
        pointer_type: Optional[str],
        page_number: int,
        client_x: float,
        client_y: float,
        rect: Rect,
        ts: Optional[float] = None,
    ) -> Optional[tuple[int, Stroke]]:
        if pointer_id in self._active:
            logger.debug("pointer %s already captured; ignoring down", pointer_id)
            return None
        page = self.document.page(page_number)
        rec = StrokeRecorder(self.style, self.accept)
        live = rec.begin(pointer_id, pointer_type, map_point(client_x, client_y, rect, page.space), self._time(ts))
        if live is None:
            return None
        self._active[pointer_id] = (page_number, rec)
        return page_number, live

    def move(
        self,
        pointer_id: Hashable,
        pointer_type: Optional[str],
        client_x: float,
        client_y: float,
        rect: Rect,
        ts: Optional[float] = None,
    ) -> Optional[tuple[int, Stroke]]:
        entry = self._active.get(pointer_id)
        if entry is None:
            return None
        page_number, rec = entry
        page = self.document.page(page_number)
        point = map_point(client_x, client_y, rect, page.space)
        if not rec.extend(point, self._time(ts), pointer_type):
            return None
        return page_number, rec.snapshot()

    def up(self, pointer_id: Hashable) -> Optional[tuple[int, Stroke]]:
        entry = self._active.pop(pointer_id, None)
        if entry is None:
            return None
        page_number, rec = entry
        stroke = rec.commit()
        self.document.page(page_number).append(stroke)
        logger.info("committed stroke %s on page %d (%d points)", stroke.id, page_number, len(stroke.points))
        return page_number, stroke

    def cancel(self, pointer_id: Hashable) -> Optional[tuple[int, Stroke]]:
        """Abort the pointer's stroke; returns what was discarded."""
        entry = self._active.pop(pointer_id, None)
        if entry is None:
            return None
        page_number, rec = entry
        dropped = rec.snapshot()
        rec.abort()
        logger.debug("aborted stroke %s for pointer %s", dropped.id, pointer_id)
        return page_number, dropped

    def in_progress(self, page_number: int) -> list[Stroke]:
        return [rec.snapshot() for pn, rec in self._active.values() if pn == page_number]

    def abort_all(self) -> list[tuple[int, Stroke]]:
        dropped = [self.cancel(pointer_id) for pointer_id in list(self._active)]
        return [d for d in dropped if d is not None]
