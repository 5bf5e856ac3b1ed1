# utils/log.py

import logging

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(level: str = 'INFO') -> None:
    """Installs a single stream handler on the root logger."""
    root = logging.getLogger()
    if not any(getattr(h, '_recipecard', False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._recipecard = True
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    # Pillow's plugin loader is chatty at DEBUG
    logging.getLogger('PIL').setLevel(logging.WARNING)
