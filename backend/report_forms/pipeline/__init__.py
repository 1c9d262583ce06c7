"""
Pipeline - render orchestration

Submodules:
- render_service: DocumentType dispatch, outcome wrapping, error mapping
"""

from .render_service import RenderService, build_file_name, classify_error

__all__ = [
    "RenderService",
    "build_file_name",
    "classify_error",
]
