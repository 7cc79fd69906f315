from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pageink.server.export import ExportReport


class InvalidState(RuntimeError):
    """Recorder transition called from the wrong state (wiring bug)."""


class StorageUnavailable(RuntimeError):
    """Storage is missing or not writable; raised before any write."""


class StorageWriteError(OSError):
    """A single artifact write failed."""


class PartialExportFailure(RuntimeError):
    def __init__(self, report: ExportReport) -> None:
        self.report = report
        failed = ", ".join(sorted(report.failed))
        super().__init__(f"export incomplete; failed artifacts: {failed}")
