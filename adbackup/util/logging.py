"""Utility functions for logging setup."""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOGGER_NAME = "adbackup"


def verbosity_to_level(verbosity: int) -> str:
    """Map the number of -v flags to a logging level name."""
    if verbosity <= 0:
        return "INFO"
    elif verbosity <= 2:
        return "DEBUG"
    return "TRACE"


def setup_logging(
    level: str = "INFO", 
    log_file: Optional[Path] = None,
    console: Optional[Console] = None
) -> logging.Logger:
    """Set up structured logging with Rich formatting."""
    
    if console is None:
        console = Console(stderr=True)
    
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")
    
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    
    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    
    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=numeric_level < logging.INFO,
        rich_tracebacks=True,
    )
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    logger.addHandler(console_handler)
    
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(TRACE)
        
        # Detailed format for file
        file_format = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)
        # The file receives everything down to TRACE
        logger.setLevel(TRACE)
    
    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
