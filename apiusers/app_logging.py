"""Log configuration for the application."""

from typing import Union
import logging

from pythonjsonlogger import jsonlogger

FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'
HANDLER_NAME = 'apiusers'


def setup_logger(level: Union[int, str] = logging.INFO,
                 json_logs: bool = True) -> None:
    """Attach a stream handler to the root logger, once."""
    logger = logging.getLogger()
    if isinstance(level, str) and level.isdigit():
        level = int(level)
    logger.setLevel(level)
    if any(h.get_name() == HANDLER_NAME for h in logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    if json_logs:
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            FORMAT,
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
        )
    else:
        formatter = logging.Formatter(FORMAT)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
