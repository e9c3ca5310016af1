import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that flood the output at DEBUG
NOISY_LOGGERS = ('discord', 'sqlalchemy.engine', 'aiosqlite')


def setup_logger(name: str, debug: bool = False, log_dir: Optional[str] = 'logs') -> logging.Logger:
    """
    Configure the package logger once.

    Modules log through logging.getLogger(__name__) and propagate here. The
    file handler writes one UTC-dated file per process start; log_dir=None
    keeps output on the console only.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        day = datetime.now(timezone.utc).strftime('%Y%m%d')
        file_handler = logging.FileHandler(log_path / f'{name}_{day}.log', encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.INFO if debug else logging.WARNING)

    return logger
