"""
The main pyps package.
"""
import logging
import sys

# Default format for logs
LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logging(verbose: int = 0) -> None:
    """Send pyps logs to stderr.

    Args:
        verbose: 0 and 1 log progress at INFO, 2 adds DEBUG including every
            plumbing command pyps runs, 3 also lets GitPython's own debug
            output through.
    """
    level = logging.DEBUG if verbose >= 2 else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    # Repeated calls replace the handler instead of logging twice
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    root.addHandler(handler)

    logging.getLogger("git").setLevel(logging.DEBUG if verbose >= 3 else logging.WARNING)
