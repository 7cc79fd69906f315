from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket
from PIL import Image

from pageink.ink.model import DocumentSession
from pageink.ink.recorder import PointerRouter
from pageink.ink.strokes import Stroke

from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class Session:
    clients: set[WebSocket] = field(default_factory=set)

    # Current document; replaced wholesale on every load.
    document: Optional[DocumentSession] = None
    router: Optional[PointerRouter] = None
    # page number -> rendered page raster (only for raster-loaded documents)
    backgrounds: dict[int, Image.Image] = field(default_factory=dict)

    # Serializes document loads and exports for this session.
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def replace_document(
        self,
        document: DocumentSession,
        settings: Settings,
        backgrounds: Optional[dict[int, Image.Image]] = None,
    ) -> list[tuple[int, Stroke]]:
        """Swap in a new document; returns the in-progress strokes that were dropped."""
        dropped = self.router.abort_all() if self.router is not None else []
        self.document = document
        self.backgrounds = dict(backgrounds or {})
        self.router = PointerRouter(
            document,
            style=settings.pen_style,
            accept=settings.accepted_pointer_types,
        )
        return dropped


SESSIONS: dict[str, Session] = {}
LOCK = asyncio.Lock()


async def get_session(session_id: str) -> Session:
    async with LOCK:
        if session_id not in SESSIONS:
            SESSIONS[session_id] = Session()
        return SESSIONS[session_id]


async def broadcast(session: Session, msg: dict, exclude: WebSocket | None = None) -> None:
    dead: list[WebSocket] = []
    data = json.dumps(msg, separators=(",", ":"), ensure_ascii=False)
    for ws in list(session.clients):
        if exclude is ws:
            continue
        try:
            await ws.send_text(data)
        except Exception:
            dead.append(ws)
    for ws in dead:
        logger.debug("dropping dead client %r", ws.client)
        session.clients.discard(ws)
