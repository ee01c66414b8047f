import json, time, threading, os, logging, sys
from typing import Dict, Any, Optional

from config import LOG_FORMAT, LOG_LEVEL, LOG_FILE_SERVICE, LOG_FILE_REQUESTS

_LOG_LOCK = threading.Lock()
LOG_FILE = os.path.join(os.getcwd(), LOG_FILE_REQUESTS)


def get_logger(name: str) -> logging.Logger:
    """Return a named service logger, attaching handlers only once."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(LOG_LEVEL)
    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)
    if LOG_FILE_SERVICE:
        file_handler = logging.FileHandler(LOG_FILE_SERVICE)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    # Prevent propagation to root logger to avoid duplicate lines
    logger.propagate = False
    return logger


def log_request(endpoint: str, client: str, outcome: str, started_ts: float,
                meta: Optional[Dict[str, Any]] = None):
    try:
        rec = {
            "ts": time.time(),
            "duration_ms": round((time.time() - started_ts) * 1000, 2),
            "endpoint": endpoint,
            "client": client,
            "outcome": outcome,
            "meta": meta or {},
        }
        line = json.dumps(rec, ensure_ascii=False)
        with _LOG_LOCK:
            with open(LOG_FILE, "a", encoding="utf-8") as f:
                f.write(line + "\n")
    except Exception:
        pass
