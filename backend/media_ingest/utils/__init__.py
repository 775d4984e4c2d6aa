"""
Utilities Package for D4DHub Media Ingest.

Modules:
--------
filename:
    Storage-safe filename generation with a timestamp and random suffix.

file_validator:
    Magic-byte type checks, category allow-lists, size limits and the
    HTTPException helper for rejected uploads.

content_scanner:
    Heuristic scan for script-injection markers.

logger:
    JSON/plain formatters, setup_logging and add_log_context.
"""
