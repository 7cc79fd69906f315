from __future__ import annotations

import argparse
import asyncio
import json
import logging
import urllib.request
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

import websockets

from pageink.ink.encoding import EncodedStroke, decode_stroke, parse_dt
from pageink.ink.strokes import Stroke
from pageink.protocol.constants import MANIFEST_NAME
from pageink.protocol.messages import DocumentLoad, Manifest, PageDims

logger = logging.getLogger(__name__)


def read_page_svg(data: bytes) -> list[EncodedStroke]:
    """Pull the encoded strokes back out of one exported page SVG, in document order."""
    root = ET.fromstring(data)
    out: list[EncodedStroke] = []
    for el in root.iter():
        if el.tag.rsplit("}", 1)[-1] != "path":
            continue
        out.append(
            EncodedStroke(
                id=el.get("data-id", ""),
                color=el.get("stroke", ""),
                width=float(el.get("stroke-width", "1")),
                d=el.get("d", ""),
                t_start_ms=int(el.get("data-tstart", "0")),
                dt_ms=parse_dt(el.get("data-dt", "")),
            )
        )
    return out


def load_export(folder: Path) -> tuple[Manifest, dict[int, list[Stroke]]]:
    manifest = Manifest.model_validate_json((folder / MANIFEST_NAME).read_text(encoding="utf-8"))
    pages: dict[int, list[Stroke]] = {}
    for entry in manifest.pages:
        encoded = read_page_svg((folder / entry.artifact).read_bytes())
        if len(encoded) != entry.stroke_count:
            logger.warning("%s: manifest says %d strokes, found %d", entry.artifact, entry.stroke_count, len(encoded))
        pages[entry.page] = [decode_stroke(e) for e in encoded]
    return manifest, pages


def pointer_timeline(manifest: Manifest, pages: dict[int, list[Stroke]]) -> list[tuple[float, dict]]:
    """
    Turn decoded strokes back into (time_ms, pointer message) pairs.

    Every stroke gets its own pointer id so strokes that overlapped in time can
    be replayed concurrently. The rect equals the page size, so client
    coordinates map onto page coordinates unchanged.
    """
    dims = {p.page: p for p in manifest.pages}
    events: list[tuple[float, dict]] = []
    pointer_id = 0
    for page_number in sorted(pages):
        info = dims[page_number]
        rect = {"left": 0.0, "top": 0.0, "width": float(info.width), "height": float(info.height)}
        for stroke in pages[page_number]:
            pointer_id += 1
            first, *rest = stroke.points
            events.append(
                (first.t, {"t": "pointer_down", "page": page_number, "pointer_id": pointer_id,
                           "pointer_type": "pen", "x": first.x, "y": first.y, "rect": rect, "ts": first.t})
            )
            for p in rest:
                events.append(
                    (p.t, {"t": "pointer_move", "pointer_id": pointer_id, "pointer_type": "pen",
                           "x": p.x, "y": p.y, "rect": rect, "ts": p.t})
                )
            events.append((stroke.t_end, {"t": "pointer_up", "pointer_id": pointer_id}))
    # stable: ties keep commit order
    events.sort(key=lambda e: e[0])
    return events


def _post_document(http_base: str, session_id: str, manifest: Manifest) -> None:
    body = DocumentLoad(
        source=manifest.source_document,
        pages=[PageDims(width=p.width, height=p.height) for p in manifest.pages],
    )
    req = urllib.request.Request(
        f"{http_base.rstrip('/')}/sessions/{session_id}/document",
        data=body.model_dump_json().encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(req, timeout=10) as resp:
        resp.read()


async def replay(
    ws_url: str,
    folder: Path,
    *,
    speed: float = 1.0,
    http_base: Optional[str] = None,
) -> int:
    """
    Replay an exported folder into a session websocket with the original timing.

    If `http_base` is set, the document's page sizes are loaded into the target
    session first (the session id is the last path segment of `ws_url`).
    Returns the number of messages sent.
    """
    manifest, pages = load_export(folder)
    if http_base:
        session_id = ws_url.rstrip("/").rsplit("/", 1)[-1]
        await asyncio.to_thread(_post_document, http_base, session_id, manifest)

    timeline = pointer_timeline(manifest, pages)
    sent = 0
    async with websockets.connect(ws_url, max_size=2**22) as ws:
        await ws.recv()  # hello
        prev_t: float | None = None
        for t, msg in timeline:
            dt_ms = 0.0 if prev_t is None else max(0.0, t - prev_t)
            prev_t = t
            if dt_ms:
                await asyncio.sleep((dt_ms / 1000.0) / max(0.01, speed))
            await ws.send(json.dumps(msg, ensure_ascii=False, separators=(",", ":")))
            sent += 1
    logger.info("replayed %d message(s) from %s", sent, folder)
    return sent


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay an exported ink folder into the server websocket.")
    ap.add_argument("--ws", required=True, help="WebSocket URL, e.g. ws://127.0.0.1:8000/ws/session1")
    ap.add_argument("--in", dest="inp", required=True, help="Export folder (contains manifest.json)")
    ap.add_argument("--speed", type=float, default=1.0, help="Speed multiplier (2.0 = 2x faster)")
    ap.add_argument(
        "--http",
        default=None,
        help="If set (e.g. http://127.0.0.1:8000), load the document's page sizes into the session first.",
    )
    ap.add_argument("--print", action="store_true", help="Print the pointer timeline instead of sending it")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO)
    if args.print:
        manifest, pages = load_export(Path(args.inp))
        for t, msg in pointer_timeline(manifest, pages):
            print(f"[replay] t={t:.0f} msg={msg}")
        return

    asyncio.run(replay(args.ws, Path(args.inp), speed=args.speed, http_base=args.http))


if __name__ == "__main__":
    main()
