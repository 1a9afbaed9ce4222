# packages/classifier_lib/logging.py

import sys
from pathlib import Path

from loguru import logger as _logger  # Aliased to avoid conflict

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[app]}</magenta>.<cyan>{extra[context]}</cyan> | <level>{message}</level>"
)


class LogManager:
    """
    One console sink plus one JSON-lines file per service (logs/<service>.json.log).
    Components never import the global logger; they receive get_logger(<context>).
    """

    def __init__(self, service_name: str, debug: bool = False, log_dir: Path | None = None):
        self.service_name = service_name
        self.level = "DEBUG" if debug else "INFO"
        self.log_dir = log_dir or Path(__file__).resolve().parents[2] / "logs"
        self.log_file = self.log_dir / f"{service_name}.json.log"
        self._configure()

    def _configure(self):
        _logger.remove()
        _logger.configure(extra={"app": self.service_name, "context": "-"})

        _logger.add(sys.stderr, format=CONSOLE_FORMAT, level=self.level, colorize=True)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        _logger.add(
            self.log_file,
            rotation="10 MB",
            retention="7 days",
            level=self.level,
            serialize=True,
            enqueue=True,
        )

    def get_logger(self, context_name: str):
        return _logger.bind(app=self.service_name, context=context_name)
