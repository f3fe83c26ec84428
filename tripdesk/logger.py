import logging
from logging.handlers import RotatingFileHandler
import os

from tripdesk import BASE_DIR

_FORMAT = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def _log_dir() -> str:
    # serverless hosts only allow writes under /tmp
    if os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
        return "/tmp/logs"
    path = os.environ.get("TRIPDESK_LOG_DIR") or os.path.join(BASE_DIR, "logs")
    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        return "/tmp/logs"
    return path


logger = logging.getLogger("tripdesk")
logger.setLevel(os.environ.get("TRIPDESK_LOG_LEVEL", "INFO").upper())

if not logger.handlers:
    directory = _log_dir()
    os.makedirs(directory, exist_ok=True)
    file_handler = RotatingFileHandler(os.path.join(directory, "tripdesk.log"), maxBytes=5*1024*1024, backupCount=3)
    file_handler.setFormatter(_FORMAT)
    logger.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setFormatter(_FORMAT)
    console.setLevel(logging.WARNING)
    logger.addHandler(console)
