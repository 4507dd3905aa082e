"""Logging configuration for the interactive app."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from progress_tracker.db import DEFAULT_HOME


def setup_logging(
    log_dir: str | Path = DEFAULT_HOME,
    console: Console | None = None,
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> Path:
    """Send everything to <log_dir>/tracker.log and warnings to the rich console.

    Call once from main(), before the stores are loaded.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tracker.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    ch = RichHandler(console=console, level=console_level, show_path=False, markup=False)
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
