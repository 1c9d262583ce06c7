"""
Configuration layer - coordinate map and runtime configuration

Responsibilities:
- Load report_forms/config/layouts.yaml (coordinate map, per document type)
- Load the optional runtime YAML (paths, render defaults, logging)
- Provide typed access to both
"""

from .layout_loader import (
    Anchor,
    Column,
    DocumentLayout,
    ImageBox,
    Label,
    LayoutLoader,
    LayoutSpec,
    MarkBox,
    MultilineField,
    SheetBinding,
    TableLayout,
    load_layouts,
    resolve_y,
)
from .runtime_config import RuntimeConfig, get_config, reload_config

__all__ = [
    "Anchor",
    "Column",
    "TableLayout",
    "MarkBox",
    "MultilineField",
    "ImageBox",
    "Label",
    "DocumentLayout",
    "SheetBinding",
    "LayoutSpec",
    "LayoutLoader",
    "load_layouts",
    "resolve_y",
    "RuntimeConfig",
    "get_config",
    "reload_config",
]
