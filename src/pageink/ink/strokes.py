from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    # x,y in page-local units; t in ms since a fixed process epoch
    x: float
    y: float
    t: float


@dataclass(frozen=True)
class Stroke:
    """
    One committed pen/touch gesture.

    - **points**: ordered samples, never empty, timestamps non-decreasing
    - **t_start / t_end**: equal to the first / last point's timestamp
    """

    id: str
    color: str
    width: float
    points: tuple[Point, ...]
    t_start: float
    t_end: float

    def __post_init__(self) -> None:
        if not self.points:
            raise ValueError("stroke has no points")
        if self.width <= 0:
            raise ValueError(f"stroke width must be positive, got {self.width}")
        if self.points[0].t != self.t_start or self.points[-1].t != self.t_end:
            raise ValueError("stroke t_start/t_end do not match its points")
        for a, b in zip(self.points, self.points[1:]):
            if b.t < a.t:
                raise ValueError("stroke timestamps go backwards")
