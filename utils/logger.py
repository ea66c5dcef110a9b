import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

__all__ = ["setup_logger"]

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

_CONFIG_CACHE: Optional[Dict[str, Any]] = None

LevelLike = Optional[Union[int, str]]


def _settings(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Layered configuration, resolved on first use only."""
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        from utils.config_loader import load_config

        _CONFIG_CACHE = load_config(config_path or "config.yml")
    return _CONFIG_CACHE


def _as_level(level: LevelLike) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return logging.INFO


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logger(
    name: str,
    *,
    config_path: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    level: LevelLike = None,
) -> logging.Logger:
    """
    Return a logger writing to stderr and to ``<log_dir>/<YYYYMMDD>.log``.

    Handlers are attached once per name; later calls only adjust the level.

    Args:
        name: Logger name, usually the owning class name.
        config_path: Config file consulted for ``paths.log_dir`` and ``logging.level``.
        log_dir: Overrides ``paths.log_dir``.
        level: Overrides ``LOG_LEVEL`` and ``logging.level``; INFO when nothing is set.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        if level is not None:
            logger.setLevel(_as_level(level))
        return logger

    settings = _settings(config_path)
    target_dir = Path(log_dir or settings.get("paths", {}).get("log_dir", "data/logs"))
    target_dir.mkdir(parents=True, exist_ok=True)
    resolved = _as_level(level or os.environ.get("LOG_LEVEL") or settings.get("logging", {}).get("level", "INFO"))
    logger.setLevel(resolved)

    log_file = target_dir / f"{datetime.now():%Y%m%d}.log"
    logger.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), resolved))
    logger.addHandler(_handler(logging.StreamHandler(), resolved))
    return logger
