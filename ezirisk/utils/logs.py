# ezirisk/utils/logs.py
import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = "INFO", log_dir: str = "data/logs") -> logging.Logger:
    """Configure root logging once (file + console). Safe to call on every streamlit rerun."""
    global _configured
    if not _configured:
        os.makedirs(log_dir, exist_ok=True)
        logging.basicConfig(
            level=getattr(logging, str(level).upper(), logging.INFO),
            format=LOG_FORMAT,
            handlers=[
                logging.FileHandler(os.path.join(log_dir, "ezirisk.log"), encoding="utf-8"),
                logging.StreamHandler(),
            ],
        )
        _configured = True
    return logging.getLogger("ezirisk")
