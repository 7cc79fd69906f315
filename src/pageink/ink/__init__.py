from .encoding import (
    EncodedStroke,
    decode_path,
    decode_stroke,
    decode_timing,
    encode_path,
    encode_stroke,
    encode_timing,
)
from .errors import InvalidState, PartialExportFailure, StorageUnavailable, StorageWriteError
from .mapper import PageSpace, Rect, map_point
from .model import DocumentSession, PageInk
from .recorder import PenStyle, PointerRouter, RecorderState, StrokeRecorder, now_ms
from .strokes import Point, Stroke

__all__ = [
    "DocumentSession",
    "EncodedStroke",
    "InvalidState",
    "PageInk",
    "PageSpace",
    "PartialExportFailure",
    "PenStyle",
    "Point",
    "PointerRouter",
    "RecorderState",
    "Rect",
    "StorageUnavailable",
    "StorageWriteError",
    "Stroke",
    "StrokeRecorder",
    "decode_path",
    "decode_stroke",
    "decode_timing",
    "encode_path",
    "encode_stroke",
    "encode_timing",
    "map_point",
    "now_ms",
]
