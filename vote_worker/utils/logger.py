import logging

# Set up Python logging
logger = logging.getLogger("vote-worker")
logger.setLevel(logging.INFO)
logger.propagate = False  # Prevent duplicate logging from uvicorn's root handler

# Configure logging handler/format only if no handlers present
if not logger.handlers:
    console_handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt="%(asctime)s - [%(levelname)s] - %(name)s - %(funcName)s() - %(message)s"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)


def configure_module_logging(level: int = logging.INFO) -> None:
    """Route `vote_worker.*` module loggers through the project handler."""
    package_logger = logging.getLogger("vote_worker")
    package_logger.setLevel(level)
    package_logger.propagate = False
    if not package_logger.handlers:
        for handler in logger.handlers:
            package_logger.addHandler(handler)
