from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .strokes import Point, Stroke

COORD_DECIMALS = 2


@dataclass(frozen=True)
class EncodedStroke:
    """Geometry + delta timing for one stroke, as written to the vector export."""

    id: str
    color: str
    width: float
    d: str
    t_start_ms: int
    dt_ms: tuple[int, ...]


def _round_ms(v: float) -> int:
    # half-up, so 0.5 ms always lands on the later millisecond
    return int(math.floor(v + 0.5))


def _fmt(v: float) -> str:
    s = f"{v:.{COORD_DECIMALS}f}"
    return "0.00" if s == "-0.00" else s


def encode_path(points: Sequence[Point]) -> str:
    """`M x y` to the first point, then `L x y` to each following point."""
    if not points:
        return ""
    head, *rest = points
    parts = [f"M {_fmt(head.x)} {_fmt(head.y)}"]
    parts.extend(f"L {_fmt(p.x)} {_fmt(p.y)}" for p in rest)
    return " ".join(parts)


def encode_timing(stroke: Stroke) -> tuple[int, tuple[int, ...]]:
    """Return (t_start rounded to ms, per-point non-negative ms offsets)."""
    t0 = stroke.t_start
    dts = tuple(max(0, _round_ms(p.t - t0)) for p in stroke.points)
    return _round_ms(t0), dts


def encode_stroke(stroke: Stroke) -> EncodedStroke:
    t_start_ms, dt_ms = encode_timing(stroke)
    return EncodedStroke(
        id=stroke.id,
        color=stroke.color,
        width=stroke.width,
        d=encode_path(stroke.points),
        t_start_ms=t_start_ms,
        dt_ms=dt_ms,
    )


def decode_path(d: str) -> list[tuple[float, float]]:
    """Inverse of `encode_path`; only the `M`/`L` subset it emits is accepted."""
    tokens = d.replace(",", " ").split()
    if len(tokens) % 3:
        raise ValueError(f"malformed path data: {d!r}")
    out: list[tuple[float, float]] = []
    for i in range(0, len(tokens), 3):
        cmd, xs, ys = tokens[i : i + 3]
        if cmd != ("M" if i == 0 else "L"):
            raise ValueError(f"unexpected command {cmd!r} in path data: {d!r}")
        out.append((float(xs), float(ys)))
    return out


def decode_timing(t_start_ms: int, dt_ms: Iterable[int]) -> list[float]:
    return [float(t_start_ms + dt) for dt in dt_ms]


def parse_dt(raw: str) -> tuple[int, ...]:
    """Parse the comma-separated `data-dt` attribute."""
    if not raw.strip():
        return ()
    return tuple(int(v) for v in raw.split(","))


def decode_stroke(enc: EncodedStroke) -> Stroke:
    coords = decode_path(enc.d)
    times = decode_timing(enc.t_start_ms, enc.dt_ms)
    if not coords:
        raise ValueError(f"stroke {enc.id}: empty path data")
    if len(coords) != len(times):
        raise ValueError(f"stroke {enc.id}: {len(coords)} points but {len(times)} timestamps")
    points = tuple(Point(x, y, t) for (x, y), t in zip(coords, times))
    return Stroke(
        id=enc.id,
        color=enc.color,
        width=enc.width,
        points=points,
        t_start=points[0].t,
        t_end=points[-1].t,
    )
