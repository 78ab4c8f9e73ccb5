"""Logging configuration for Captcha Autosolver.

Library modules only ever call ``logging.getLogger(__name__)``; applications
embedding the pipeline may call :func:`setup_logging` once at startup to get
a dual-handler pipeline:

1. **Console** -- :class:`SafeStreamHandler` that never crashes on
   characters the console encoding cannot represent.
2. **File** (optional) -- :class:`CompressedRotatingFileHandler` with gzip
   rotation (10 MiB per file, 5 backups).

Usage::

    from core.logging_setup import setup_logging
    setup_logging("DEBUG", log_file="logs/captcha.log")
"""

import gzip
import logging
import os
import shutil
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s - %(message)s'

# Chatty third-party loggers kept at WARNING unless DEBUG is requested
NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "asyncio")


class CompressedRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that gzip-compresses rotated log files."""

    def rotation_filename(self, default_name: str) -> str:
        return f"{default_name}.gz"

    def rotate(self, source: str, dest: str) -> None:
        """Compress *source* into *dest* and remove *source*."""
        with open(source, 'rb') as f_in:
            with gzip.open(dest, 'wb') as f_out:
                shutil.copyfileobj(f_in, f_out)
        os.remove(source)


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that degrades unencodable characters.

    Tokens, page titles and URLs can contain characters the console
    encoding cannot represent; those are replaced instead of raising
    :exc:`UnicodeEncodeError` from inside the pipeline.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            stream = self.stream
            try:
                stream.write(msg + self.terminator)
            except UnicodeEncodeError:
                encoding = getattr(stream, "encoding", None) or "ascii"
                safe_msg = msg.encode(
                    encoding, errors='replace',
                ).decode(encoding)
                stream.write(safe_msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger.

    Args:
        log_level: Logging level name (e.g. ``"DEBUG"``). Unknown names
            fall back to ``INFO``.
        log_file: Optional path of a gzip-rotated log file.  Its directory
            is created when missing.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [SafeStreamHandler(sys.stdout)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            CompressedRotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8',
            )
        )

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
