import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - [%(session)s] %(name)s - %(levelname)s - %(message)s"


class SessionFilter(logging.Filter):
    """Stamps each record with the shadow session it belongs to."""

    def __init__(self, session: str):
        super().__init__()
        self.session = session

    def filter(self, record: logging.LogRecord) -> bool:
        record.session = self.session
        return True


def session_name(display_image: str | None) -> str:
    """Session label for log lines: the display image's file stem."""
    if not display_image:
        return "shadow"
    return os.path.splitext(os.path.basename(display_image))[0] or "shadow"


def setup_logging(
    log_level: str = "INFO",
    log_file: str | None = None,
    session: str = "shadow",
):
    """
    Routes every module's log records to one handler tagged with `session`.

    Args:
        log_level: Minimum level, e.g. "INFO" or "DEBUG". Unknown names fall
            back to INFO.
        log_file: Append to this file (its directory is created) instead of
            writing to stdout. Study sessions share one file; the session tag
            tells them apart.
        session: Label written in front of every line, usually from
            `session_name`.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="a")
    else:
        handler = logging.StreamHandler(sys.stdout)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SessionFilter(session))
    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
