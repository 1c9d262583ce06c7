"""
Runtime configuration - reads the optional runtime YAML

Responsibilities:
- Template directory and coordinate-map location
- Render defaults (font, text color, sheet clear range)
- Environment variable overrides (REPORT_FORMS_*)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_LAYOUT_PATH = Path(__file__).resolve().parent / "layouts.yaml"


class RenderConfig(BaseModel):
    """Render defaults"""

    font_name: str = "Helvetica"
    bold_font_name: str = "Helvetica-Bold"
    text_color: tuple[float, float, float] = (0.0, 0.0, 1.0)
    mark_text: str = "X"
    highlight_opacity: float = 0.3
    sheet_clear_rows: int = 120


class LoggingConfig(BaseModel):
    """Logging configuration"""

    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class RuntimeConfig(BaseSettings):
    """Runtime configuration (environment variables override)"""

    # paths
    templates_dir: Path = Path("templates")
    layout_path: Path = DEFAULT_LAYOUT_PATH

    # sub-configs
    render: RenderConfig = Field(default_factory=RenderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "REPORT_FORMS_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """Load configuration from a YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})
        paths = cls._extract(runtime_opts, "paths")

        config = cls(
            render=RenderConfig(**cls._extract(runtime_opts, "render")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
            **paths,
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """Extract a section and flatten {default: ...} entries"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """Resolve relative paths against the directory of the config file"""
        if not self.templates_dir.is_absolute():
            self.templates_dir = (base_dir / self.templates_dir).resolve()
        if not self.layout_path.is_absolute():
            self.layout_path = (base_dir / self.layout_path).resolve()

    def template_path(self, file_name: str) -> Path:
        """Absolute path of a template asset"""
        return self.templates_dir / file_name


# global instance
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """Global configuration (lazy)"""
    global _config
    if _config is None:
        default_path = Path("config/report_forms.yaml")
        _config = RuntimeConfig.from_yaml(default_path)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """Reload configuration"""
    global _config
    path = yaml_path or "config/report_forms.yaml"
    _config = RuntimeConfig.from_yaml(path)
    return _config
