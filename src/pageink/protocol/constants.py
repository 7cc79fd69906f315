# Message type constants (stringly-typed protocol; canonical list lives here)

T_HELLO = "hello"

# client -> server (pointer stream, one message per DOM pointer event)
T_POINTER_DOWN = "pointer_down"
T_POINTER_MOVE = "pointer_move"
T_POINTER_UP = "pointer_up"
T_POINTER_CANCEL = "pointer_cancel"

# client -> server (page commands)
T_SELECT_PAGE = "select_page"
T_CLEAR_PAGE = "clear_page"

# server -> clients
T_STROKE_LIVE = "stroke_live"
T_STROKE_COMMIT = "stroke_commit"
T_STROKE_ABORT = "stroke_abort"
T_PAGE_CLEARED = "page_cleared"
T_PAGE_SELECTED = "page_selected"

# Export layout
MANIFEST_NAME = "manifest.json"
PAGE_ARTIFACT_FMT = "page-{:03d}.svg"
