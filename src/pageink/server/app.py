from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Hashable

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response
from PIL import UnidentifiedImageError
from pydantic import TypeAdapter, ValidationError

from pageink.ink.encoding import encode_stroke
from pageink.ink.errors import PartialExportFailure, StorageUnavailable
from pageink.ink.mapper import Rect
from pageink.ink.model import DocumentSession, PageInk
from pageink.ink.strokes import Stroke
from pageink.protocol.messages import (
    ClearPage,
    ClientRect,
    DocumentLoad,
    Hello,
    InboundMsg,
    PageArtifact,
    PageCleared,
    PageSelected,
    PointerCancel,
    PointerDown,
    PointerMove,
    PointerUp,
    SelectPage,
    StrokeAbort,
    StrokeCommit,
    StrokeLive,
)

from .config import Settings, get_settings
from .export import export_session, page_artifact, page_svg, stroke_out
from .rendering import load_document, render_image_pages, render_page_png
from .sessions import Session, broadcast, get_session
from .storage import FolderStorage, Storage

logger = logging.getLogger(__name__)

app = FastAPI()

_INBOUND = TypeAdapter(InboundMsg)


def get_storage(settings: Settings = Depends(get_settings)) -> Storage:
    return FolderStorage(settings.export_root)


def _document(session: Session) -> DocumentSession:
    if session.document is None:
        raise HTTPException(status_code=409, detail="no document loaded")
    return session.document


def _page(session: Session, page_number: int) -> PageInk:
    try:
        return _document(session).page(page_number)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"no page {page_number}") from None


def _in_progress(session: Session, page_number: int) -> list[Stroke]:
    return session.router.in_progress(page_number) if session.router is not None else []


def _summary(doc: DocumentSession) -> dict:
    return {
        "source": doc.source_name,
        "pages": [{"page": p.page_number, "width": p.width, "height": p.height} for p in doc.pages],
        "active_page": doc.active_page_index + 1,
    }


async def _broadcast_aborts(
    session: Session, dropped: list[tuple[int, Stroke]], exclude: WebSocket | None = None
) -> None:
    for page_number, stroke in dropped:
        await broadcast(session, StrokeAbort(page=page_number, id=stroke.id).model_dump(), exclude=exclude)


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/sessions/{session_id}/document")
async def load_dimensions(session_id: str, body: DocumentLoad, settings: Settings = Depends(get_settings)):
    session = await get_session(session_id)
    async with session.lock:
        doc = DocumentSession.from_dimensions(body.source, [(p.width, p.height) for p in body.pages])
        dropped = session.replace_document(doc, settings)
    await _broadcast_aborts(session, dropped)
    return _summary(doc)


@app.post("/sessions/{session_id}/document/image")
async def load_image(session_id: str, name: str, request: Request, settings: Settings = Depends(get_settings)):
    data = await request.body()
    session = await get_session(session_id)
    async with session.lock:
        try:
            doc, backgrounds = await load_document(name, render_image_pages(data, settings.render_scale))
        except UnidentifiedImageError:
            raise HTTPException(status_code=400, detail="body is not a readable image") from None
        dropped = session.replace_document(doc, settings, backgrounds)
    await _broadcast_aborts(session, dropped)
    return _summary(doc)


@app.post("/sessions/{session_id}/pages/{page_number}/select")
async def select_page(session_id: str, page_number: int):
    session = await get_session(session_id)
    page = _page(session, page_number)
    session.document.select_page(page.page_number - 1)
    await broadcast(session, PageSelected(page=page.page_number).model_dump())
    return {"active_page": page.page_number}


@app.post("/sessions/{session_id}/pages/{page_number}/clear")
async def clear_page(session_id: str, page_number: int):
    session = await get_session(session_id)
    page = _page(session, page_number)
    page.clear()
    await broadcast(session, PageCleared(page=page.page_number).model_dump())
    return {"page": page.page_number, "strokes": 0}


# The suffixed routes must be registered before the bare `/pages/{page_number}`.
@app.get("/sessions/{session_id}/pages/{page_number}.svg")
async def page_svg_view(session_id: str, page_number: int):
    session = await get_session(session_id)
    page = _page(session, page_number)
    data = page_svg(page, session.document.source_name, datetime.now(timezone.utc), _in_progress(session, page_number))
    return Response(content=data, media_type="image/svg+xml")


@app.get("/sessions/{session_id}/pages/{page_number}.png")
async def page_png_view(session_id: str, page_number: int):
    session = await get_session(session_id)
    page = _page(session, page_number)
    data = render_page_png(page, session.backgrounds.get(page_number), _in_progress(session, page_number))
    return Response(content=data, media_type="image/png")


@app.get("/sessions/{session_id}/pages/{page_number}", response_model=PageArtifact)
async def page_view(session_id: str, page_number: int):
    session = await get_session(session_id)
    page = _page(session, page_number)
    return page_artifact(page, session.document.source_name, datetime.now(timezone.utc))


@app.post("/sessions/{session_id}/export")
async def export(session_id: str, storage: Storage = Depends(get_storage)):
    session = await get_session(session_id)
    async with session.lock:
        doc = _document(session)
        try:
            report = await export_session(doc, storage)
        except StorageUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e)) from None
        except PartialExportFailure as e:
            r = e.report
            return JSONResponse(
                status_code=502,
                content={"ok": False, "directory": r.directory, "written": r.written, "failed": r.failed},
            )
    return {"ok": True, "directory": report.directory, "exported_at": report.exported_at, "written": report.written}


def _live(page_number: int, stroke: Stroke) -> dict:
    return StrokeLive(page=page_number, stroke=stroke_out(encode_stroke(stroke))).model_dump(by_alias=True)


def _rect(r: ClientRect) -> Rect:
    return Rect(r.left, r.top, r.width, r.height)


async def _dispatch(session: Session, ws: WebSocket, conn: str, pressed: set[Hashable], msg) -> None:
    doc = session.document
    router = session.router
    if doc is None or router is None:
        logger.debug("no document loaded; dropping %s", msg.t)
        return

    if isinstance(msg, PointerDown):
        key = (conn, msg.pointer_id)
        try:
            res = router.down(key, msg.pointer_type, msg.page, msg.x, msg.y, _rect(msg.rect), msg.ts)
        except KeyError:
            logger.debug("pointer_down on missing page %d", msg.page)
            return
        if res is not None:
            pressed.add(key)
            await broadcast(session, _live(*res), exclude=ws)

    elif isinstance(msg, PointerMove):
        res = router.move((conn, msg.pointer_id), msg.pointer_type, msg.x, msg.y, _rect(msg.rect), msg.ts)
        if res is not None:
            await broadcast(session, _live(*res), exclude=ws)

    elif isinstance(msg, PointerUp):
        key = (conn, msg.pointer_id)
        pressed.discard(key)
        res = router.up(key)
        if res is not None:
            page_number, stroke = res
            out = StrokeCommit(page=page_number, stroke=stroke_out(encode_stroke(stroke)))
            await broadcast(session, out.model_dump(by_alias=True), exclude=ws)

    elif isinstance(msg, PointerCancel):
        key = (conn, msg.pointer_id)
        pressed.discard(key)
        res = router.cancel(key)
        if res is not None:
            await _broadcast_aborts(session, [res], exclude=ws)

    elif isinstance(msg, SelectPage):
        idx = doc.select_page(msg.page - 1)
        await broadcast(session, PageSelected(page=idx + 1).model_dump(), exclude=ws)

    elif isinstance(msg, ClearPage):
        if msg.page is None:
            page = doc.active_page
        else:
            try:
                page = doc.page(msg.page)
            except KeyError:
                return
        if page is not None:
            page.clear()
            await broadcast(session, PageCleared(page=page.page_number).model_dump())


@app.websocket("/ws/{session_id}")
async def ws(session_id: str, ws: WebSocket):
    await ws.accept()
    session = await get_session(session_id)
    session.clients.add(ws)
    settings = get_settings()

    # Pointer ids are only unique per client, so they are keyed by connection.
    conn = uuid.uuid4().hex
    pressed: set[Hashable] = set()

    await ws.send_text(json.dumps(Hello(session=session_id).model_dump(), separators=(",", ":")))

    try:
        while True:
            raw = await ws.receive_text()
            try:
                msg = _INBOUND.validate_json(raw)
            except ValidationError as e:
                logger.debug("[ws:%s] dropping malformed message: %s", session_id, e.errors()[:1])
                continue
            if settings.debug_log_msgs:
                logger.info("[ws:%s] in t=%s from=%s", session_id, msg.t, getattr(ws.client, "host", None))
            await _dispatch(session, ws, conn, pressed, msg)
    except WebSocketDisconnect:
        pass
    finally:
        session.clients.discard(ws)
        # Strokes still held by this client end abnormally.
        if session.router is not None:
            dropped = [session.router.cancel(key) for key in pressed]
            await _broadcast_aborts(session, [d for d in dropped if d is not None])
