import logging
import sys
from pixel_pipeline.config import settings # Use absolute import

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}

# Get the desired level from settings, default to INFO if invalid or not found
log_level_str = getattr(settings, 'LOGGING_LEVEL', 'INFO').upper()
log_level = LOG_LEVEL_MAP.get(log_level_str, logging.INFO)

log_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Console Handler, shared by every pipeline logger
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(log_formatter)


def get_logger(name):
    """
    Gets a logger instance configured with the pipeline's settings.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Only attach the handler once per logger name
    if not logger.handlers:
        logger.addHandler(console_handler)

    logger.propagate = False

    return logger


def set_level(level_name):
    """Change the level of every pipeline logger created so far."""
    level = LOG_LEVEL_MAP.get(str(level_name).upper())
    if level is None:
        raise ValueError(f"Unknown log level: {level_name}")

    global log_level
    log_level = level
    for name, candidate in logging.Logger.manager.loggerDict.items():
        if name.startswith('pixel_pipeline') and isinstance(candidate, logging.Logger):
            candidate.setLevel(level)
