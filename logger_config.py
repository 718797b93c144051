# logger_config.py
import logging
import logging.handlers
import os
import queue
import sys

LOG_FORMAT = '%(asctime)s - %(name)-14s - %(levelname)-8s - %(message)s'

def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler

def _file_handler(log_file: str) -> logging.Handler:
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    handler = logging.FileHandler(log_file, mode='a')
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler

def setup_logging(log_file: str, level=logging.INFO, console: bool = False):
    handlers = [_file_handler(log_file)]
    if console:
        handlers.append(_console_handler())
    root = logging.getLogger()
    if root.hasHandlers():
        root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

def start_queue_logging(log_file: str, level=logging.INFO, console: bool = False) -> logging.handlers.QueueListener:
    """Routes every record through a queue so slow file writes never block a training step."""
    log_queue = queue.Queue(-1)
    handlers = [_file_handler(log_file)]
    if console:
        handlers.append(_console_handler())
    listener = logging.handlers.QueueListener(log_queue, *handlers, respect_handler_level=False)
    root = logging.getLogger()
    if root.hasHandlers():
        root.handlers.clear()
    root.addHandler(logging.handlers.QueueHandler(log_queue))
    root.setLevel(level)
    listener.start()
    return listener

def stop_queue_logging(listener: logging.handlers.QueueListener):
    listener.stop()
    for handler in listener.handlers:
        handler.close()
