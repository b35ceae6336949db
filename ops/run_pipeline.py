#!/usr/bin/env python3
"""
State Award-Wins Map Pipeline with Click CLI

Runs the full map workflow (load boundaries and attributes, validate region
keys, join, clip to the continental US, render and export) with optional
configuration overrides from the command line.

Usage:
    statewins-maps [OPTIONS] [COMMAND]

    statewins-maps                                   # Run the pipeline
    statewins-maps --no-show                         # Only write the PDFs
    statewins-maps --config path/to/config.yaml      # Use another config file
    statewins-maps --set input_files.attributes_csv=data/wins_2024.csv
    statewins-maps check-keys                        # Only validate region keys
    statewins-maps --dry-run                         # Show what would run

    statewins-maps --verbose                         # Enable DEBUG level logging
"""

import os
import sys
from typing import Any, Dict, Optional, Tuple

import click
import yaml
from loguru import logger

from ops.config_loader import Config
from processing.errors import InputError, KeySetMismatchError


class ConfigContext:
    """Click context object holding config overrides until the config is loaded."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file
        self.overrides: Dict[str, Any] = {}
        self.config: Optional[Config] = None
        self.show: Optional[bool] = None

    def add_override(self, key: str, value: Any):
        """Add config override using dot notation."""
        keys = key.split(".")
        current = self.overrides
        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value
        logger.debug(f"Added override: {key} = {value}")

    def get_config(self) -> Config:
        """Get config with overrides applied."""
        config = Config(self.config_file)
        if self.overrides:
            config.apply_overrides(self.overrides)
        return config


class ConfigOverride(click.ParamType):
    """Custom parameter type for config overrides."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        # Auto-parse value type
        parsed_val: Any
        if val.lower() in ("true", "false"):
            parsed_val = val.lower() == "true"
        else:
            try:
                parsed_val = int(val)
            except ValueError:
                try:
                    parsed_val = float(val)
                except ValueError:
                    parsed_val = val

        return key, parsed_val


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to config.yaml (default: STATEWINS_CONFIG_PATH, ./config.yaml, ops/config.yaml)",
)
@click.option(
    "--set",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., visualization.map_dpi=150)",
)
@click.option("--no-show", is_flag=True, help="Do not display the maps on screen")
@click.option("--dry-run", is_flag=True, help="Show what would be run without executing")
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, **kwargs):
    """
    State award-wins choropleth maps.

    Joins state boundaries with award wins, population and industry receipts,
    then renders wins per resident and wins per receipt dollar maps.
    """
    setup_logging(verbose=kwargs["verbose"], enable_trace=kwargs["trace"])

    if kwargs.get("log_file"):
        log_file = kwargs["log_file"]
        log_level = "TRACE" if kwargs["trace"] else ("DEBUG" if kwargs["verbose"] else "INFO")
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    logger.info("🗺️ State Award-Wins Map Pipeline")
    logger.debug(f"🔧 CLI arguments received: {kwargs}")

    config_ctx = ConfigContext(kwargs["config_file"])
    ctx.obj = config_ctx

    for key, value in kwargs["config_overrides"]:
        config_ctx.add_override(key, value)

    try:
        config = config_ctx.get_config()
        logger.info(f"📋 Project: {config.get('project_name')}")
        logger.info(f"📋 Description: {config.get('description')}")
    except (FileNotFoundError, ValueError, OSError, yaml.YAMLError) as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists and is valid")
        ctx.exit(1)

    config_ctx.config = config
    config_ctx.show = False if kwargs["no_show"] else None

    if kwargs["dry_run"]:
        show_dry_run_info(config)
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        ctx.invoke(run_maps)


@cli.command("run")
@click.pass_context
def run_maps(ctx):
    """Run the full map pipeline."""
    from analysis.map_award_wins import run_map_pipeline

    config_ctx: ConfigContext = ctx.obj
    try:
        run_map_pipeline(config_ctx.config, show=config_ctx.show)
    except KeySetMismatchError as e:
        report_key_mismatch(e)
        ctx.exit(1)
    except InputError as e:
        logger.critical(f"❌ Input error: {e}")
        ctx.exit(1)
    except Exception as e:
        handle_critical_error(e, "Running map pipeline")
        ctx.exit(1)


@cli.command("check-keys")
@click.pass_context
def check_keys_command(ctx):
    """Only load the inputs and validate that their region keys match."""
    from analysis.map_award_wins import check_keys

    config_ctx: ConfigContext = ctx.obj
    try:
        check_keys(config_ctx.config)
    except KeySetMismatchError as e:
        report_key_mismatch(e)
        ctx.exit(1)
    except InputError as e:
        logger.critical(f"❌ Input error: {e}")
        ctx.exit(1)
    except Exception as e:
        handle_critical_error(e, "Checking region keys")
        ctx.exit(1)


def report_key_mismatch(error: KeySetMismatchError) -> None:
    """Log both sorted key lists and what each side is missing."""
    logger.critical("❌ State names in the boundaries and the attribute file do not match")
    logger.error(f"   Geometry keys ({len(error.geometry_keys)}): {error.geometry_keys}")
    logger.error(f"   Attribute keys ({len(error.attribute_keys)}): {error.attribute_keys}")
    if error.missing_from_attributes:
        logger.error(f"   Missing from attributes: {error.missing_from_attributes}")
    if error.missing_from_geometry:
        logger.error(f"   Missing from geometry: {error.missing_from_geometry}")
    logger.info("💡 No maps were written")


def show_dry_run_info(config: Config):
    """Show dry run information."""
    logger.info("🔍 DRY RUN MODE - nothing will be rendered")
    logger.info("=" * 60)

    config.print_config_summary()

    logger.info("Outputs that would be written:")
    for key in ("map_pop_pdf", "map_receipt_pdf"):
        logger.info(f"  🗺️ {config.get_output_path(key)}")


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    elif verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    os.environ["LOGURU_LEVEL"] = log_level

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """
    Handle critical errors with optional trace logging.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
    """
    enable_trace = os.environ.get("LOGURU_LEVEL", "INFO") == "TRACE"

    if enable_trace:
        logger.opt(exception=error).trace(f"💥 Full traceback for: {context}")

    logger.critical(f"💥 CRITICAL ERROR: {context}")
    logger.critical(f"Exception: {type(error).__name__}: {error}")

    if not enable_trace:
        logger.info("💡 For detailed debugging, run with --trace flag")


if __name__ == "__main__":
    cli()
