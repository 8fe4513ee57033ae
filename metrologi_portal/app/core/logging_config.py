"""
Logging for the portal process.

All portal modules log through ``logging.getLogger(__name__)``; this
module only decides where those records go.  Records always reach
stderr, and also ``LOG_FILE`` when the deployment sets one (the
directory is created on first start).  Chatty third-party loggers are
held at WARNING unless the portal itself runs at a stricter level.
"""

import logging
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# urllib3 reports every pooled connection to the hosted backend
QUIET_LOGGERS = ("urllib3",)


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> bool:
    """Attach the portal's handlers to the root logger.

    ``level`` is a level name such as ``"DEBUG"``; unknown names fall
    back to INFO.  Returns ``False`` without touching anything when the
    root logger already has handlers, which is the case under test
    runners and when ``create_app`` is called a second time.
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = [logging.StreamHandler()]
    if logfile:
        log_path = Path(logfile).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
    return True
