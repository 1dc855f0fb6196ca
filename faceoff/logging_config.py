"""Process-wide logging setup."""
import logging
import sys

_NOISY_LOGGERS = ('werkzeug', 'engineio.server', 'socketio.server', 'urllib3')
_HANDLER_NAME = 'faceoff-stdout'


def setup_logging(level='INFO'):
    """Install one stdout handler on the root logger.

    The app factory runs once per test, so a handler installed by an earlier
    call is replaced rather than stacked. Handlers added by anything else are
    left alone.
    """
    log_level = getattr(logging, str(level or 'INFO').upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S%z',
    )
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
