import logging

from comicseed.logging import LogConfig


def test_file_keeps_debug_while_console_shows_info(tmp_path):
    log_config = LogConfig(log_dir=str(tmp_path / "logs"), log_file="run.log")
    logger = log_config.setup_logging()
    try:
        assert log_config.console_handler.level == logging.INFO
        assert log_config.file_handler.level == logging.DEBUG

        logging.getLogger("comicseed.services.seeders.base").debug("Skipped comic: solo-leveling")
    finally:
        log_config.close()

    assert logger.handlers == []
    assert "Skipped comic: solo-leveling" in (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")


def test_verbose_lowers_only_the_console(tmp_path):
    log_config = LogConfig(log_dir=str(tmp_path))
    log_config.setup_logging(verbose=True)
    try:
        assert log_config.console_handler.level == logging.DEBUG
        assert log_config.file_handler.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert len(logging.getLogger("comicseed").handlers) == 2
    finally:
        log_config.close()
