"""Logging setup shared by the API server and the maintenance scripts."""
from __future__ import annotations

import logging.config
from pathlib import Path

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "logging.yaml"


def configure_logging(config_path: str | Path | None = None, *, level: str | None = None) -> None:
    """Apply the YAML ``dictConfig`` at ``config_path``, or ``basicConfig`` when it is missing.

    ``level`` overrides the root and ``votebox`` logger levels from the file.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists():
        import yaml  # type: ignore[import-untyped]

        with path.open("r", encoding="utf-8") as config_file:
            logging.config.dictConfig(yaml.safe_load(config_file))
    else:
        logging.basicConfig(level=level or logging.INFO)

    if level:
        logging.getLogger().setLevel(level.upper())
        logging.getLogger("votebox").setLevel(level.upper())


__all__ = ["DEFAULT_CONFIG_PATH", "configure_logging"]
