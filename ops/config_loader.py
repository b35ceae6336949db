"""
Configuration Loader for the State Award-Wins Maps

This module provides a centralized way to load and access configuration
settings from the config.yaml file.

Usage:
    from ops.config_loader import Config

    config = Config()
    shapefile = config.get_input_path('state_boundaries_shp')
    pdf_path = config.get_output_path('map_pop_pdf')
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGE_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the award-wins map pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "columns": {
            "boundary_key": "NAME",
            "attributes": {
                "state": "region_key",
                "population": "population",
                "wins": "wins",
                "estab": "establishments",
                "receipts": "receipts",
                "winsperpop": "wins_per_pop",
                "winsperreceipt": "wins_per_receipt",
            },
        },
        "bbox": {
            "min_lon": -124.7625,
            "max_lon": -66.9326,
            "min_lat": 24.5210,
            "max_lat": 49.3845,
        },
        "visualization": {
            "page_width": 11,
            "page_height": 8.5,
            "map_dpi": 300,
            "colormap_default": "YlOrRd",
            "edge_color": "#444444",
            "edge_width": 0.25,
            "show_on_screen": True,
        },
        "output_files": {
            "map_pop_pdf": "plot_map_pop.pdf",
            "map_receipt_pdf": "plot_map_receipt.pdf",
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable STATEWINS_CONFIG_PATH
                        2. config.yaml in current directory
                        3. ops/config.yaml shipped with this package
            project_root_override: Override project root detection (useful for temp configs)
        """
        if config_file is None:
            env_config = os.environ.get("STATEWINS_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            elif PACKAGE_CONFIG.exists():
                config_file = PACKAGE_CONFIG
                logger.debug("Using ops/config.yaml from package directory")
            else:
                raise FileNotFoundError(
                    "No config.yaml found. Check current directory or set STATEWINS_CONFIG_PATH"
                )

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")
        self.config_dir = self.config_path.parent

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r") as f:
            self.data = yaml.safe_load(f) or {}

        self._setup_paths()

    def _setup_paths(self) -> None:
        """Setup base directory paths relative to project root."""
        dirs = self.data.get("directories", {})

        self.data_dir = self.project_root / dirs.get("data", "data")
        self.output_dir = self.project_root / dirs.get("output", "output")

        for directory in [self.data_dir, self.output_dir]:
            directory.mkdir(parents=True, exist_ok=True)

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Merge nested overrides into the loaded config and refresh derived paths."""
        _apply_nested_override(self.data, overrides)
        self._setup_paths()

    def get_input_path(self, filename_key: str) -> Path:
        """
        Get full path to an input file. The path is taken directly from config.yaml
        and joined with the project root.

        Args:
            filename_key: Key for the filename in input_files

        Returns:
            Full absolute path to the input file
        """
        relative_path_str = self.data.get("input_files", {}).get(filename_key)
        if not relative_path_str:
            raise ValueError(
                f"Input filename key '{filename_key}' not found in config: input_files"
            )
        return self.project_root / relative_path_str

    def get_output_path(self, filename_key: str) -> Path:
        """Get full path to an output file inside the output directory."""
        filename = self.get(f"output_files.{filename_key}")
        if not isinstance(filename, str):
            raise ValueError(f"Unknown output file key: {filename_key}")
        return self.output_dir / filename

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        # If not found in config, try defaults
        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default

        return value

    def get_column_name(self, column_key: str) -> str:
        """Get column name with intelligent defaults."""
        result = self.get(f"columns.{column_key}")
        if isinstance(result, str):
            return result
        raise ValueError(f"Column name not found or not a string: {column_key}")

    def get_attribute_column_map(self) -> Dict[str, str]:
        """Attribute file column -> record field mapping."""
        result = self.get("columns.attributes")
        if not isinstance(result, dict):
            raise ValueError("columns.attributes must be a mapping")
        return {str(k): str(v) for k, v in result.items()}

    def get_bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box as (min_lon, max_lon, min_lat, max_lat)."""
        return tuple(  # type: ignore[return-value]
            float(self.get(f"bbox.{key}")) for key in ("min_lon", "max_lon", "min_lat", "max_lat")
        )

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with intelligent defaults."""
        return self.get(f"visualization.{setting_key}")

    def validate_input_files(self) -> Dict[str, bool]:
        """Validate that input files exist."""
        results: Dict[str, bool] = {}
        for filename_key in self.data.get("input_files", {}):
            results[filename_key] = self.get_input_path(filename_key).exists()
        return results

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.info("📋 Configuration Summary")
        logger.info("=" * 50)
        logger.info(f"Project: {self.get('project_name', 'Unknown')}")
        logger.info(f"Description: {self.get('description', 'No description')}")
        logger.info(f"Config file: {self.config_path}")
        logger.info(f"Project root: {self.project_root}")
        logger.info(f"Output directory: {self.output_dir}")
        logger.info(f"Bounding box: {self.get_bbox()}")

        logger.info("📊 Input Files:")
        for file_key, exists in self.validate_input_files().items():
            status = "✅" if exists else "❌"
            logger.info(f"  {status} {file_key}: {self.get_input_path(file_key)}")

    def _find_project_root(self) -> Path:
        """Find the project root directory by looking for characteristic files/directories."""
        current = self.config_path.parent

        project_markers = ["analysis", "data", "ops", "processing", "pyproject.toml", ".git"]

        for _ in range(5):  # Limit to 5 levels up
            markers_found = sum(1 for marker in project_markers if (current / marker).exists())
            if markers_found >= 2:
                return current

            parent = current.parent
            if parent == current:
                break
            current = parent

        # Fallback: if config is in ops/, project root is parent
        if self.config_path.parent.name == "ops":
            return self.config_path.parent.parent

        logger.warning(
            f"Could not reliably detect project root, using config directory: {self.config_path.parent}"
        )
        return self.config_path.parent


def _apply_nested_override(base_dict: Dict, override_dict: Dict) -> None:
    for key, value in override_dict.items():
        if isinstance(value, dict) and isinstance(base_dict.get(key), dict):
            _apply_nested_override(base_dict[key], value)
        else:
            base_dict[key] = value
