from __future__ import annotations

import logging
from pathlib import Path

from .config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(settings: Settings) -> None:
    """
    Configura il root logger:
    - console sempre
    - se LOG_DIR è impostata: info.log (INFO+) ed error.log (ERROR+)
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if settings.log_dir:
        folder = Path(settings.log_dir)
        folder.mkdir(parents=True, exist_ok=True)

        info_handler = logging.FileHandler(folder / "info.log", encoding="utf-8")
        info_handler.setLevel(logging.INFO)
        error_handler = logging.FileHandler(folder / "error.log", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        handlers.extend([info_handler, error_handler])

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
