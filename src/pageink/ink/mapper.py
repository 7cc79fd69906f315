from __future__ import annotations

from typing import NamedTuple


class Rect(NamedTuple):
    """On-screen bounding box of a page's ink layer, in client pixels."""

    left: float
    top: float
    width: float
    height: float


class PageSpace(NamedTuple):
    """Page-local coordinate extents, fixed when the page was rendered."""

    width: float
    height: float


def map_point(client_x: float, client_y: float, rect: Rect, space: PageSpace) -> tuple[float, float]:
    """
    Rescale a pointer's client coordinates into page-local units.

    Call this for every sample: the on-screen rect can move or resize between
    samples (scroll, zoom, relayout). A zero-size rect is a caller error.
    """
    x = (client_x - rect.left) * (space.width / rect.width)
    y = (client_y - rect.top) * (space.height / rect.height)
    return (x, y)
