import logging
import sys

STEP = 25
logging.addLevelName(STEP, "STEP")

COLORS = {
    "INFO": "\033[0;32m",
    "WARNING": "\033[1;33m",
    "ERROR": "\033[0;31m",
    "STEP": "\033[0;34m",
}
RESET = "\033[0m"


class MarkerFormatter(logging.Formatter):
    """Prefix each line with a [LEVEL] marker, colored when writing to a terminal"""

    def __init__(self, color=False):
        super().__init__("%(message)s")
        self.color = color

    def format(self, record):
        marker = f"[{record.levelname}]"
        if self.color and record.levelname in COLORS:
            marker = f"{COLORS[record.levelname]}{marker}{RESET}"
        return f"{marker} {super().format(record)}"


def setup_logging(level="INFO", stream=None):
    stream = stream or sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setFormatter(MarkerFormatter(color=hasattr(stream, "isatty") and stream.isatty()))
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO),
                        handlers=[handler], force=True)


def get_logger(name="fleet_rollout"):
    return logging.getLogger(name)


def log_step(logger, message):
    logger.log(STEP, message)
