"""Extractor configuration.

Provides data-driven configuration with sensible defaults. A JSON file only
needs to carry the keys it overrides.

Usage:
    config = ExtractorConfig.load(Path("config/extractor.json"))
    service = ExtractionService.from_config(config)
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Supported export formats
SUPPORTED_FORMATS = {"csv", "xlsx", "json"}

DEFAULT_CONFIG = {
    "$schema": "extractor_config_v1",
    "version": "1.0",

    "extraction": {
        # Empty list means every registered extractor
        "enabled_extractors": [],
        "max_workers": 1,
    },

    "loader": {
        "encoding": "utf-8",
        "pdf_password": None,
    },

    "output": {
        "format": "csv",
        "include_rejections": True,
    },

    "logging": {
        "level": "WARNING",
    },
}


@dataclass
class ExtractionSettings:
    """Which extractors run and how many documents are processed at once."""
    enabled_extractors: List[str] = field(default_factory=list)
    max_workers: int = 1

    def is_enabled(self, label: str) -> bool:
        if not self.enabled_extractors:
            return True
        return label.upper() in {name.upper() for name in self.enabled_extractors}


@dataclass
class LoaderSettings:
    """Settings for turning files into documents."""
    encoding: str = "utf-8"
    pdf_password: Optional[str] = None


@dataclass
class OutputSettings:
    """Settings for exporting extraction results."""
    format: str = "csv"
    include_rejections: bool = True


class ExtractorConfig:
    """
    Extractor configuration loaded from JSON with fallback to defaults.

    Usage:
        config = ExtractorConfig.load(Path("extractor.json"))
        if config.extraction.is_enabled("Consorsbank"):
            ...
    """

    def __init__(self, data: Dict[str, Any] = None):
        """Initialize from configuration dictionary."""
        data = self._deep_merge(DEFAULT_CONFIG, data or {})
        self._raw = data

        extraction = data.get("extraction", {})
        self.extraction = ExtractionSettings(
            enabled_extractors=list(extraction.get("enabled_extractors") or []),
            max_workers=max(1, int(extraction.get("max_workers", 1))),
        )

        loader = data.get("loader", {})
        self.loader = LoaderSettings(
            encoding=loader.get("encoding", "utf-8"),
            pdf_password=loader.get("pdf_password"),
        )

        output = data.get("output", {})
        fmt = str(output.get("format", "csv")).lower()
        if fmt not in SUPPORTED_FORMATS:
            logger.warning(f"Unsupported output format {fmt!r}, using csv")
            fmt = "csv"
        self.output = OutputSettings(
            format=fmt,
            include_rejections=bool(output.get("include_rejections", True)),
        )

        self.log_level = str(data.get("logging", {}).get("level", "WARNING")).upper()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractorConfig":
        return cls(data)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "ExtractorConfig":
        """
        Load configuration with fallback to defaults.

        A missing or unreadable file yields the default configuration.

        Args:
            config_path: Path to a JSON configuration file

        Returns:
            ExtractorConfig instance
        """
        if config_path is None:
            return cls()

        config_path = Path(config_path)
        if not config_path.exists():
            logger.debug(f"No configuration at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load configuration from {config_path}: {e}")
            return cls()

        logger.debug(f"Loaded configuration from {config_path}")
        return cls(data)

    @staticmethod
    def _deep_merge(base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries, override takes precedence."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ExtractorConfig._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._raw)

    def save(self, config_path: Path) -> None:
        """Write the effective configuration to a JSON file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self._raw, f, indent=2)

        logger.info(f"Saved configuration to {config_path}")
