# loadrunner/logging_config.py
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-22s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(handler: logging.Handler, level: int | str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logging(level: str = "INFO", log_file: str = None) -> logging.Logger:
    """
    Log to stdout at ``level``. With ``log_file`` everything down to DEBUG
    (chunk sizes, markers, spawn arguments) is also written to that file.
    """
    root = logging.getLogger()
    if root.hasHandlers():
        root.handlers.clear()

    console_level = level.upper()
    root.addHandler(_handler(logging.StreamHandler(sys.stdout), console_level))
    root.setLevel(console_level)

    if log_file:
        root.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG))
        root.setLevel(logging.DEBUG)
        root.info(f"Logging to file: {log_file}")

    # subprocess transport chatter is not useful next to run logs
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        root.error("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception

    return root
