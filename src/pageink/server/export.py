from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Iterable, Optional

from pageink.ink.encoding import EncodedStroke
from pageink.ink.errors import PartialExportFailure
from pageink.ink.model import DocumentSession, PageInk
from pageink.ink.strokes import Stroke
from pageink.protocol.constants import MANIFEST_NAME, PAGE_ARTIFACT_FMT
from pageink.protocol.messages import Manifest, ManifestPage, PageArtifact, StrokeOut

from .storage import Storage

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"


def iso_utc(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a `Z` suffix."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


DEFAULT_EXPORT_DIR = "document"


def base_name(filename: str) -> str:
    """Export folder name: the file name without extension, never empty or `.`/`..`."""
    name = PurePath(filename).name
    dot = name.rfind(".")
    stem = name[:dot] if dot > 0 else name
    return stem if stem not in ("", ".", "..") else DEFAULT_EXPORT_DIR


def page_artifact_name(page_number: int) -> str:
    return PAGE_ARTIFACT_FMT.format(page_number)


def _num(v: float) -> str:
    return f"{v:g}"


def stroke_out(enc: EncodedStroke) -> StrokeOut:
    return StrokeOut(
        id=enc.id,
        color=enc.color,
        width_px=enc.width,
        geometry=enc.d,
        t_start_ms=enc.t_start_ms,
        dt_ms=list(enc.dt_ms),
    )


def page_artifact(
    page: PageInk,
    source_name: str,
    exported_at: datetime,
    in_progress: Iterable[Stroke] = (),
) -> PageArtifact:
    return PageArtifact(
        source_document=source_name,
        page=page.page_number,
        exported_at=iso_utc(exported_at),
        width=page.width,
        height=page.height,
        strokes=[stroke_out(e) for e in page.render(in_progress)],
    )


def _path_element(enc: EncodedStroke) -> ET.Element:
    return ET.Element(
        "path",
        {
            "fill": "none",
            "stroke": enc.color,
            "stroke-width": _num(enc.width),
            "stroke-linecap": "round",
            "stroke-linejoin": "round",
            "d": enc.d,
            "data-tstart": str(enc.t_start_ms),
            "data-dt": ",".join(str(dt) for dt in enc.dt_ms),
            "data-id": enc.id,
        },
    )


def page_svg(
    page: PageInk,
    source_name: str,
    exported_at: datetime,
    in_progress: Iterable[Stroke] = (),
) -> bytes:
    """
    Serialize one page's ink as a standalone SVG document.

    The viewBox is the page's fixed pixel size. Each stroke is one `<path>`, in
    commit order, carrying its timing as `data-tstart` (ms) and `data-dt`
    (comma-separated ms offsets, one per path vertex).
    """
    svg = ET.Element(
        "svg",
        {
            "xmlns": SVG_NS,
            "class": "inkLayer",
            "viewBox": f"0 0 {page.width} {page.height}",
            "width": str(page.width),
            "height": str(page.height),
            "data-source-document": source_name,
            "data-page": str(page.page_number),
            "data-exported-at": iso_utc(exported_at),
        },
    )
    for enc in page.render(in_progress):
        svg.append(_path_element(enc))
    return ET.tostring(svg, encoding="utf-8", xml_declaration=True)


def build_manifest(session: DocumentSession, exported_at: datetime) -> Manifest:
    pages = sorted(session.pages, key=lambda p: p.page_number)
    return Manifest(
        source_document=session.source_name,
        exported_at=iso_utc(exported_at),
        pages=[
            ManifestPage(
                page=p.page_number,
                width=p.width,
                height=p.height,
                artifact=page_artifact_name(p.page_number),
                stroke_count=len(p.strokes),
            )
            for p in pages
        ],
    )


def manifest_json(manifest: Manifest) -> bytes:
    return manifest.model_dump_json(by_alias=True, indent=2).encode("utf-8")


@dataclass
class ExportReport:
    directory: str
    exported_at: str
    written: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # artifact -> error

    @property
    def ok(self) -> bool:
        return not self.failed


async def export_session(
    session: DocumentSession,
    storage: Storage,
    exported_at: Optional[datetime] = None,
) -> ExportReport:
    """
    Write one SVG per page plus `manifest.json` into `<source base name>/`.

    Writes run one after another. A failed write does not stop the run; every
    artifact is attempted and the outcome recorded. Raises
    `StorageUnavailable` before writing anything when storage is unusable and
    `PartialExportFailure` (carrying the report) when any write failed.
    """
    storage.check()
    ts = exported_at or datetime.now(timezone.utc)
    directory = base_name(session.source_name)
    report = ExportReport(directory=directory, exported_at=iso_utc(ts))

    artifacts: list[tuple[str, bytes]] = [
        (page_artifact_name(p.page_number), page_svg(p, session.source_name, ts))
        for p in sorted(session.pages, key=lambda p: p.page_number)
    ]
    artifacts.append((MANIFEST_NAME, manifest_json(build_manifest(session, ts))))

    for name, data in artifacts:
        try:
            await storage.write(directory, name, data)
        except OSError as e:
            logger.warning("export %s/%s failed: %s", directory, name, e)
            report.failed[name] = str(e)
        else:
            report.written.append(name)

    if not report.ok:
        raise PartialExportFailure(report)
    logger.info("exported %d page(s) of %r into %s/", len(session.pages), session.source_name, directory)
    return report
