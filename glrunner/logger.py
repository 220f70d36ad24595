import logging

from glrunner.constants import PROJECT_NAME

logger = logging.getLogger(PROJECT_NAME)


# "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
def setup_logger(verbose: bool = False, format: str = "%(message)s") -> None:
    """
    Configures the project logger with a single console handler.

    Args:
        verbose (bool): Log at DEBUG level when set, INFO otherwise.
        format (str): The format string of the console handler.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    # Copy, removeHandler mutates the list
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter(format))
    logger.addHandler(ch)


setup_logger()
