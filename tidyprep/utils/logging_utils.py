#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Logging Utilities for tidyprep
================================

Centralized logging configuration for the recipe engine:
    - One logger per module, obtained with ``get_logger(__name__)``
    - Console output through ``rich`` (or ``colorlog``) when installed
    - Optional log file next to saved recipes
    - Small helpers for step headers, table summaries and timings

``setup_logging()`` is meant to be called once by the application that
uses the library.  The library itself never configures handlers; it only
emits records.

Usage:
------
    >>> from tidyprep.utils.logging_utils import get_logger, setup_logging
    >>>
    >>> setup_logging(level='DEBUG')
    >>> logger = get_logger(__name__)
    >>> logger.info("Training recipe with %d steps", 3)
"""

import sys
import time
import logging
from pathlib import Path
from typing import Optional, Union

# Optional imports
try:
    from rich.logging import RichHandler
    from rich.console import Console
    HAS_RICH = True
except ImportError:
    HAS_RICH = False

try:
    import colorlog
    HAS_COLORLOG = True
except ImportError:
    HAS_COLORLOG = False


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
RICH_FORMAT = '%(message)s'

LEVEL_MAP = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}

_logging_initialized = False


# =============================================================================
# CORE SETUP
# =============================================================================

def setup_logging(
    level: Union[str, int] = 'INFO',
    log_dir: Optional[Union[str, Path]] = None,
    log_filename: str = 'tidyprep.log',
    log_to_console: bool = True,
    use_rich: bool = True,
    use_colors: bool = True,
    fmt: Optional[str] = None,
    date_fmt: Optional[str] = None,
    capture_warnings: bool = True,
    force: bool = False,
) -> logging.Logger:
    """
    Configure the root logger.

    Repeated calls are no-ops unless ``force=True``, in which case the
    existing root handlers are replaced.

    Parameters
    ----------
    level : str or int
        Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL').
    log_dir : str or Path, optional
        Directory for the log file.  No file handler when None.
    log_filename : str
        Name of the log file inside ``log_dir``.
    log_to_console : bool
        Attach a console (stderr) handler.
    use_rich : bool
        Prefer ``rich.logging.RichHandler`` for the console.
    use_colors : bool
        Use ``colorlog`` when rich is not available.
    fmt, date_fmt : str, optional
        Override the record and date formats.
    capture_warnings : bool
        Route ``warnings.warn`` calls (e.g. role warnings) through logging.
    force : bool
        Reconfigure even if logging was already set up.

    Returns
    -------
    logging.Logger
        The root logger.
    """
    global _logging_initialized

    if _logging_initialized and not force:
        return logging.getLogger()

    if isinstance(level, str):
        level = LEVEL_MAP.get(level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    log_fmt = fmt or DEFAULT_FORMAT
    log_date_fmt = date_fmt or DEFAULT_DATE_FORMAT

    if log_to_console:
        root_logger.addHandler(_create_console_handler(
            level=level,
            use_rich=use_rich,
            use_colors=use_colors,
            fmt=log_fmt,
            date_fmt=log_date_fmt,
        ))

    if log_dir is not None:
        root_logger.addHandler(_create_file_handler(
            log_dir=log_dir,
            filename=log_filename,
            level=level,
            fmt=log_fmt,
            date_fmt=log_date_fmt,
        ))

    if capture_warnings:
        logging.captureWarnings(True)
        logging.getLogger('py.warnings').setLevel(logging.WARNING)

    _suppress_noisy_loggers()

    _logging_initialized = True

    root_logger.debug(
        "Logging initialized: level=%s, console=%s, file=%s",
        logging.getLevelName(level),
        log_to_console,
        log_dir is not None,
    )

    return root_logger


def _create_console_handler(
    level: int,
    use_rich: bool,
    use_colors: bool,
    fmt: str,
    date_fmt: str,
) -> logging.Handler:
    """Create the best available console handler."""
    if use_rich and HAS_RICH:
        handler = RichHandler(
            level=level,
            console=Console(stderr=True),
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter(RICH_FORMAT))
        return handler

    if use_colors and HAS_COLORLOG:
        color_fmt = (
            '%(log_color)s%(asctime)s | %(levelname)-8s%(reset)s | '
            '%(name)s | %(message)s'
        )
        handler = colorlog.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(colorlog.ColoredFormatter(
            color_fmt,
            datefmt=date_fmt,
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'bold_red',
            },
        ))
        return handler

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=date_fmt))
    return handler


def _create_file_handler(
    log_dir: Union[str, Path],
    filename: str,
    level: int,
    fmt: str,
    date_fmt: str,
) -> logging.Handler:
    """Create a file handler, creating ``log_dir`` if needed."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_dir / filename, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=date_fmt))
    return handler


def _suppress_noisy_loggers():
    """Reduce verbosity of third-party loggers pulled in by the numeric stack."""
    for name in ('numexpr', 'numexpr.utils', 'joblib', 'urllib3'):
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# LOGGER FACTORY
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger.

    Every module calls ``get_logger(__name__)`` so the logger hierarchy
    follows the package layout (``tidyprep.core.recipe``,
    ``tidyprep.steps.pca`` ...).
    """
    return logging.getLogger(name)


# =============================================================================
# STRUCTURED LOG HELPERS
# =============================================================================

def log_stage_header(
    logger: logging.Logger,
    stage_name: str,
    description: str = "",
    width: int = 70,
    level: int = logging.INFO,
):
    """
    Log a visually prominent header, e.g. at the start of training.

    Example Output
    --------------
    ::

        ======================================================================
         STAGE: train - 3 steps
        ======================================================================
    """
    separator = "=" * width
    title = f" STAGE: {stage_name}"
    if description:
        title += f" - {description}"

    logger.log(level, separator)
    logger.log(level, title)
    logger.log(level, separator)


def log_dataframe_info(
    logger: logging.Logger,
    df: 'pd.DataFrame',
    name: str = "DataFrame",
    level: int = logging.INFO,
):
    """
    Log shape, leading column names and dtype counts of a DataFrame.

    Example Output
    --------------
    ::

        [DF] training: shape=(150, 5), columns=['x1', 'x2', ...], dtypes={float64: 4, object: 1}
    """
    if not logger.isEnabledFor(level):
        return

    dtype_counts = df.dtypes.astype(str).value_counts().to_dict()
    dtype_str = ", ".join(f"{k}: {v}" for k, v in dtype_counts.items())

    cols_preview = list(df.columns[:5])
    if len(df.columns) > 5:
        cols_preview.append("...")

    logger.log(
        level,
        "[DF] %s: shape=%s, columns=%s, dtypes={%s}",
        name,
        df.shape,
        cols_preview,
        dtype_str,
    )


# =============================================================================
# TIMER LOGGING
# =============================================================================

class LogTimer:
    """
    Context manager that logs elapsed time for a code block.

    Parameters
    ----------
    logger : logging.Logger
        Logger to write to.
    label : str
        Description of the timed operation.
    level : int
        Logging level.

    Examples
    --------
    >>> with LogTimer(logger, "step 2 (pca_3f9a1)"):
    ...     trained = step.train(data, metadata, rng)
    2024-01-15 10:30:45 | INFO     | tidyprep.core.recipe | [TIMER] step 2 (pca_3f9a1): 0.04s
    """

    def __init__(
        self,
        logger: logging.Logger,
        label: str = "",
        level: int = logging.INFO,
    ):
        self.logger = logger
        self.label = label
        self.level = level
        self.elapsed: float = 0.0
        self._start: Optional[float] = None

    def __enter__(self) -> 'LogTimer':
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc):
        self.elapsed = time.perf_counter() - self._start

        if self.elapsed < 60:
            time_str = f"{self.elapsed:.2f}s"
        else:
            time_str = f"{self.elapsed / 60:.2f}m"

        self.logger.log(self.level, "[TIMER] %s: %s", self.label, time_str)
        return False
