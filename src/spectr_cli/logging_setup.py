"""Console logging for the spectr CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_NAME = "spectr-console"


def setup_logging(verbose: bool = False) -> None:
    """Install a rich stderr handler on the root logger.

    WARNING and above are shown by default; ``verbose`` lowers the threshold
    to DEBUG for spectr's own loggers. Calling this again replaces the
    handler instead of stacking another one.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("spectr_cli").setLevel(logging.DEBUG if verbose else logging.WARNING)
    # watchdog logs every inotify event at DEBUG
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    logging.captureWarnings(True)
