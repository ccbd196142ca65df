import logging
from concurrent_log_handler import ConcurrentRotatingFileHandler
from pathlib import Path

from comicseed.config import settings

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


class LogConfig:
    """
    Seed run logging. The file always gets DEBUG, so every record outcome of
    every run is kept; the console shows INFO unless --verbose is given.
    """

    def __init__(self, log_dir: str = settings.log_dir, log_file: str = "seed.log"):
        self.log_dir = Path(log_dir)
        self.log_file = log_file
        self.logger = None
        self.file_handler = None
        self.console_handler = None

    def setup_logging(self, verbose: bool = False):
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("comicseed")
        self.logger.setLevel(logging.DEBUG)

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()

        # - Rotates when file hits 10MB
        # - Keeps 10 backups
        # - File locking lets a CLI run and a polling process share the log
        self.file_handler = ConcurrentRotatingFileHandler(
            filename=self.log_dir / self.log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10,
            encoding="utf-8",
            use_gzip=True
        )
        self.file_handler.setLevel(logging.DEBUG)
        self.file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

        self.console_handler = logging.StreamHandler()
        self.console_handler.setFormatter(logging.Formatter('%(levelname)-7s %(message)s'))
        self.set_console_level("DEBUG" if verbose else "INFO")

        self.logger.addHandler(self.file_handler)
        self.logger.addHandler(self.console_handler)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        return self.logger

    def set_console_level(self, log_level: str):
        """Only the console follows --verbose; the file keeps DEBUG."""
        if self.console_handler:
            self.console_handler.setLevel(getattr(logging, log_level.upper()))

    def close(self):
        if self.logger:
            for handler in list(self.logger.handlers):
                handler.close()
                self.logger.removeHandler(handler)


# Global log config instance
log_config = LogConfig()
