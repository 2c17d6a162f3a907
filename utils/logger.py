# utils/logger.py
import logging

LOG_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'


def get_logger(name):
    """返回带控制台输出的命名 logger，重复调用不会重复挂 handler"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)
    return logger
