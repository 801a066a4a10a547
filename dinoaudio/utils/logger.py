import logging
import os
import sys

LOGGER_NAME = "DinoAudio"


def setup_logger(level=None):
    """Configures the shared engine logger once; later calls only adjust the level."""
    logger = logging.getLogger(LOGGER_NAME)
    if level is None:
        level = os.environ.get("DINOAUDIO_LOG_LEVEL", "DEBUG").upper()
    logger.setLevel(level)

    if not logger.handlers:
        # Console Handler
        ch = logging.StreamHandler(sys.stdout)
        ch.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(ch)

    return logger

logger = setup_logger()
