"""
D4DHub Media Ingest Package

This package contains the ingest-time processing pipeline that every user
upload passes through before it is stored:

- Filename sanitization into collision-resistant storage names
- Magic-byte verification of declared image types
- Heuristic scanning for embedded active content
- EXIF stripping with auto-orientation for images
- Duration probing for videos via ffprobe

Package Structure:
- api/: REST API endpoints organized by version (v1)
- models/: Pydantic result models shared by services and endpoints
- services/: Media processing and ingest orchestration
- utils/: Pure validation helpers and logging configuration
"""

__version__ = "1.0.0"
__app_name__ = "D4DHub-Media-Ingest"
