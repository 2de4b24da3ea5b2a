"""
Logging setup for the vocabulary trainer.

Console plus a plain log file under the data directory. Word text can
contain Bengali or German characters, so helpers here escape it to ASCII
before it reaches a handler that may not speak UTF-8 (Windows consoles).
"""

import os
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(data_dir: Optional[Path] = None, level: Optional[str] = None) -> None:
    """Configure the root logger; level comes from LOG_LEVEL unless given."""
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).strip().upper()
    log_level = getattr(logging, level_name, logging.INFO)
    handlers = [logging.StreamHandler()]
    if data_dir is not None:
        logs_dir = Path(data_dir) / 'logs'
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(logs_dir / 'wordquiz.log', encoding='utf-8'))
        except OSError as e:
            logging.getLogger(__name__).warning(f"File logging disabled: {e}")
    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)
    logging.getLogger('wordquiz').setLevel(log_level)
    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(max(log_level, logging.WARNING))


def ascii_safe(text: object) -> str:
    try:
        return str(text).encode('ascii', errors='backslashreplace').decode('ascii', errors='ignore')
    except Exception:
        return repr(text)
