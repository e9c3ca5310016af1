"""Tests for package logger setup."""

import logging

from floodscore.utils.logger import setup_logger


def _reset(logger):
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_console_only_logger():
    logger = setup_logger('floodscore_console_test', log_dir=None)
    try:
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert setup_logger('floodscore_console_test', log_dir=None) is logger
        assert len(logger.handlers) == 1
        assert logging.getLogger('discord').level == logging.WARNING
    finally:
        _reset(logger)


def test_file_logger_writes_package_records(tmp_path):
    logger = setup_logger('floodscore_file_test', debug=True, log_dir=str(tmp_path / 'logs'))
    try:
        logging.getLogger('floodscore_file_test.services').debug("child record")
        for handler in logger.handlers:
            handler.flush()

        log_files = list((tmp_path / 'logs').glob('floodscore_file_test_*.log'))
        assert len(log_files) == 1
        assert "child record" in log_files[0].read_text(encoding='utf-8')
        assert logging.getLogger('sqlalchemy.engine').level == logging.INFO
    finally:
        _reset(logger)
