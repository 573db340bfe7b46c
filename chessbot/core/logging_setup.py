"""Process-wide logging setup. Called once by the application shell."""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "debug", log_file: Optional[str] = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        except OSError as e:
            logging.getLogger("ChessBot").error(
                "Failed to open logging file; using default stderr: %s", e
            )

    numeric_level = logging.getLevelName(level.upper())
    invalid_level = not isinstance(numeric_level, int)
    logging.basicConfig(
        level=logging.DEBUG if invalid_level else numeric_level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    if invalid_level:
        logging.getLogger("ChessBot").error(
            "Invalid loglevel %r. Using default 'debug'.", level
        )
