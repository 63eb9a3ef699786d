import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MEGABYTE = 1024 * 1024


def resolve_log_file(config):
    """
    Return the absolute log file path for a Config.

    Relative paths are taken relative to the directory of the config file,
    or the working directory when the config was not read from disk.
    """
    log_file = config.logging.file
    if os.path.isabs(log_file):
        return log_file
    base_dir = os.path.dirname(config.source) if config.source else os.getcwd()
    return os.path.join(base_dir, log_file)


def setup_logger(name, log_file, level=logging.INFO, max_size=10, max_backups=5, console=True):
    """
    Set up and return a logger with a rotating file handler and (optionally)
    a console handler.

    Args:
        name (str): The logger name.
        log_file (str): Path of the log file; its directory is created.
        level (int): Logging level.
        max_size (int): Size in megabytes after which the file is rotated.
        max_backups (int): Number of rotated files to keep.
        console (bool): Whether to add a console handler.

    Returns:
        logging.Logger: The configured logger.
    """
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear out any existing handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size * MEGABYTE,
        backupCount=max_backups,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def setup_from_config(config, level=None):
    """Configure the package logger from a Config's logging section."""
    level_name = level or config.logging.level
    return setup_logger(
        "filemonitor",
        resolve_log_file(config),
        level=getattr(logging, level_name.upper(), logging.INFO),
        max_size=config.logging.max_size,
        max_backups=config.logging.max_backups,
        console=config.logging.console,
    )


def log_startup_summary(logger, config):
    """Log the configuration a service is starting with."""
    logger.info("Starting file monitor with configuration:")
    logger.info(f"Watched directories: {list(config.directories)}")
    logger.info("Ignore rules:")
    logger.info(f"  - file patterns: {list(config.ignore.files)}")
    logger.info(f"  - extensions: {sorted(config.ignore.extensions)}")
    logger.info(f"  - directory patterns: {list(config.ignore.directories)}")
    logger.info(f"Monitored events: {sorted(str(e) for e in config.events) or 'all'}")
    logger.info(f"Path style: {config.path_style}")
    if config.email.enabled:
        logger.info(f"Email notifications enabled, recipients: {list(config.email.to)}")
    elif config.webhook.enabled:
        logger.info(f"Webhook notifications enabled, provider: {config.webhook.provider}")
    else:
        logger.info("No notification channel enabled; events are only logged.")
