from __future__ import annotations

import asyncio
import io
import logging
import math
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Iterable, Optional

from PIL import Image, ImageColor, ImageDraw, ImageSequence

from pageink.ink.model import DocumentSession, PageInk
from pageink.ink.strokes import Stroke

logger = logging.getLogger(__name__)


@dataclass
class RenderedPage:
    page_number: int
    width: int
    height: int
    image: Optional[Image.Image] = None


def _decode_frames(data: bytes, scale: float) -> list[RenderedPage]:
    out: list[RenderedPage] = []
    with Image.open(io.BytesIO(data)) as img:
        for i, frame in enumerate(ImageSequence.Iterator(img), start=1):
            w = max(1, math.floor(frame.width * scale))
            h = max(1, math.floor(frame.height * scale))
            page_img = frame.convert("RGB").resize((w, h), Image.Resampling.LANCZOS)
            out.append(RenderedPage(page_number=i, width=w, height=h, image=page_img))
    return out


async def render_image_pages(data: bytes, scale: float = 1.0) -> AsyncIterator[RenderedPage]:
    """
    Render a raster document (PNG, multi-frame TIFF/GIF, ...) to pages.

    One page per frame; each page is `floor(frame size * scale)` pixels.
    """
    pages = await asyncio.to_thread(_decode_frames, data, scale)
    for page in pages:
        yield page


async def load_document(
    source_name: str, rendered: AsyncIterable[RenderedPage]
) -> tuple[DocumentSession, dict[int, Image.Image]]:
    """Build a fresh DocumentSession from rendered pages (dims are read once)."""
    dims: list[tuple[int, int]] = []
    backgrounds: dict[int, Image.Image] = {}
    async for page in rendered:
        if page.page_number != len(dims) + 1:
            raise ValueError(f"renderer yielded page {page.page_number} out of order")
        dims.append((page.width, page.height))
        if page.image is not None:
            backgrounds[page.page_number] = page.image
    return DocumentSession.from_dimensions(source_name, dims), backgrounds


def render_page_png(
    page: PageInk,
    background: Optional[Image.Image] = None,
    in_progress: Iterable[Stroke] = (),
) -> bytes:
    """Flatten ink over the page raster (white when absent) into PNG bytes."""
    size = (page.width, page.height)
    if background is None:
        img = Image.new("RGB", size, "white")
    else:
        img = background.convert("RGB")
        if img.size != size:
            img = img.resize(size, Image.Resampling.LANCZOS)
        else:
            img = img.copy()
    draw = ImageDraw.Draw(img)

    for s in [*page.strokes, *in_progress]:
        col = ImageColor.getrgb(s.color)
        w = max(1, round(s.width))
        xy = [(p.x, p.y) for p in s.points]
        if len(xy) == 1:
            (x, y), r = xy[0], s.width / 2
            draw.ellipse([x - r, y - r, x + r, y + r], fill=col)
        else:
            draw.line(xy, fill=col, width=w, joint="curve")

    bio = io.BytesIO()
    img.save(bio, format="PNG", optimize=True)
    return bio.getvalue()
