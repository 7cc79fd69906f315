from .constants import (
    MANIFEST_NAME,
    PAGE_ARTIFACT_FMT,
    T_CLEAR_PAGE,
    T_HELLO,
    T_PAGE_CLEARED,
    T_PAGE_SELECTED,
    T_POINTER_CANCEL,
    T_POINTER_DOWN,
    T_POINTER_MOVE,
    T_POINTER_UP,
    T_SELECT_PAGE,
    T_STROKE_ABORT,
    T_STROKE_COMMIT,
    T_STROKE_LIVE,
)

__all__ = [
    "MANIFEST_NAME",
    "PAGE_ARTIFACT_FMT",
    "T_HELLO",
    "T_POINTER_DOWN",
    "T_POINTER_MOVE",
    "T_POINTER_UP",
    "T_POINTER_CANCEL",
    "T_SELECT_PAGE",
    "T_CLEAR_PAGE",
    "T_STROKE_LIVE",
    "T_STROKE_COMMIT",
    "T_STROKE_ABORT",
    "T_PAGE_CLEARED",
    "T_PAGE_SELECTED",
]
