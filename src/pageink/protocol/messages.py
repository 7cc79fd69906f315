from __future__ import annotations

from typing import Annotated, Literal, Optional, TypeAlias, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Inbound pointer coordinates are raw client pixels; the server maps them into
# page-local units using `rect` (the page ink layer's on-screen bounding box).
# `ts` is an optional ms timestamp; the server clock is used when absent.


class ClientRect(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    left: float
    top: float
    width: Annotated[float, Field(gt=0)]
    height: Annotated[float, Field(gt=0)]


class _PointerEvent(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    pointer_id: int
    pointer_type: Optional[str] = None  # "pen" | "touch" | "mouse"
    x: float
    y: float
    rect: ClientRect
    ts: Annotated[Optional[float], Field(default=None, description="ms timestamp")]


class PointerDown(_PointerEvent):
    t: Literal["pointer_down"]
    page: Annotated[int, Field(ge=1)]


class PointerMove(_PointerEvent):
    t: Literal["pointer_move"]


class PointerUp(BaseModel):
    t: Literal["pointer_up"]
    pointer_id: int


class PointerCancel(BaseModel):
    t: Literal["pointer_cancel"]
    pointer_id: int


class SelectPage(BaseModel):
    t: Literal["select_page"]
    page: Annotated[int, Field(ge=1)]


class ClearPage(BaseModel):
    t: Literal["clear_page"]
    page: Optional[int] = None  # active page when omitted


class StrokeOut(BaseModel):
    """Encoded stroke as broadcast to viewers and embedded in page artifacts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    color: str
    width_px: float
    geometry: str
    t_start_ms: int
    dt_ms: list[int]


class StrokeLive(BaseModel):
    t: Literal["stroke_live"] = "stroke_live"
    page: int
    stroke: StrokeOut


class StrokeCommit(BaseModel):
    t: Literal["stroke_commit"] = "stroke_commit"
    page: int
    stroke: StrokeOut


class StrokeAbort(BaseModel):
    t: Literal["stroke_abort"] = "stroke_abort"
    page: int
    id: str


class PageCleared(BaseModel):
    t: Literal["page_cleared"] = "page_cleared"
    page: int


class PageSelected(BaseModel):
    t: Literal["page_selected"] = "page_selected"
    page: int


class Hello(BaseModel):
    t: Literal["hello"] = "hello"
    session: str


# HTTP bodies

class PageDims(BaseModel):
    width: Annotated[int, Field(ge=1)]
    height: Annotated[int, Field(ge=1)]


class DocumentLoad(BaseModel):
    source: Annotated[str, Field(min_length=1)]
    pages: list[PageDims]


class PageArtifact(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_document: str
    page: int
    exported_at: str
    width: int
    height: int
    strokes: list[StrokeOut]


class ManifestPage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int
    width: int
    height: int
    artifact: str
    stroke_count: int


class Manifest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_document: str
    exported_at: str
    pages: list[ManifestPage]


InboundMsg: TypeAlias = Annotated[
    Union[PointerDown, PointerMove, PointerUp, PointerCancel, SelectPage, ClearPage],
    Field(discriminator="t"),
]
OutboundMsg: TypeAlias = Union[Hello, StrokeLive, StrokeCommit, StrokeAbort, PageCleared, PageSelected]
