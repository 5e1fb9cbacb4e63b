import io
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime
from typing import Optional

class DotMsFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        ct = datetime.fromtimestamp(record.created)
        if datefmt:
            s = ct.strftime(datefmt)
            ms = int(record.msecs)
            s = s.replace('%f', f'{ms:03d}')
        else:
            s = ct.strftime("%Y-%m-%d %H:%M:%S")
            s += f".{int(record.msecs):03d}"
        return s

def setup_logger(
    name: str,
    log_path: Optional[str | Path] = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Console + rotating file logger. File output is skipped when log_path is None."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Re-running a job in the same process must not duplicate output
    if logger.handlers:
        return logger

    formatter = DotMsFormatter(
        '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S.%f'
    )

    # Console handler; wallet labels and token symbols may be non-ASCII
    if hasattr(sys.stdout, "buffer"):
        utf8_stream = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    else:
        utf8_stream = sys.stdout
    ch = logging.StreamHandler(utf8_stream)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger
