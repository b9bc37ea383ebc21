import logging
from voiceflow.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def setup_logging(level: str = None):
    """Configure the root logger once for the process."""
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # Third-party clients are chatty at INFO
    for noisy in ("httpx", "apscheduler", "groq"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
