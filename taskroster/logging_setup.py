import logging
import sys

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _QuietThirdParty(logging.Filter):
    """Let our own records through; other libraries only at WARNING and above."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "taskroster" or record.name.startswith("taskroster."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level="INFO") -> None:
    """Install one stderr handler on the root logger.

    Safe to call more than once: a handler installed by an earlier call is
    replaced, handlers added by others (uvicorn, pytest) are left alone.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        if getattr(h, "_taskroster", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    handler.addFilter(_QuietThirdParty())
    handler._taskroster = True
    root.addHandler(handler)

    logging.captureWarnings(True)
