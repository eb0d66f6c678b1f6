"""
Non-blocking logging setup.

Records go through a queue so decode paths running inside zigpy callbacks
never wait on file I/O; a listener thread writes them to a rotating file and
the console.
"""
import os
import queue
import logging
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler

from config import LoggingConfig

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def setup_logging(config: LoggingConfig) -> QueueListener:
    """Route the root logger through a queue. Caller stops the returned listener on shutdown."""
    log_queue = queue.Queue(-1)  # Unlimited size

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if config.file:
        log_dir = os.path.dirname(config.file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(config.file, maxBytes=config.max_bytes, backupCount=config.backup_count)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    log_listener = QueueListener(log_queue, *handlers)

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level.upper())
    # Remove default handlers to avoid duplication
    root_logger.handlers = []
    root_logger.addHandler(QueueHandler(log_queue))

    log_listener.start()
    logging.getLogger("logging_setup").info(f"Logging initialised at {config.level.upper()}")
    return log_listener
