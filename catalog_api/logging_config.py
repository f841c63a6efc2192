"""
Package logger and tracer.

Every module logs through a child of the ``catalog_api`` logger and passes
structured context in ``extra``. Inside Azure Functions, logs and spans are
also exported to Application Insights.
"""

import logging
import os

import opentelemetry.trace
from azure.monitor.opentelemetry import configure_azure_monitor

LOGGER_NAME = "catalog_api"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _running_in_azure_functions() -> bool:
    return bool(os.environ.get("FUNCTIONS_WORKER_RUNTIME"))


def _enable_azure_monitor() -> None:
    try:
        configure_azure_monitor(logger_name=LOGGER_NAME)
    except Exception as e:
        logging.getLogger(LOGGER_NAME).error(
            "Error configuring Azure Monitor", extra={"error_type": type(e).__name__}
        )
    else:
        logging.getLogger(LOGGER_NAME).info("Azure Monitor OpenTelemetry configured")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a console handler to the package logger (once) and set its level.
    Calling it again only changes the level.
    """
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(level.upper())

    if not package_logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(console_handler)

    for handler in package_logger.handlers:
        handler.setLevel(level.upper())
    return package_logger


def get_child_logger(name: str) -> logging.Logger:
    """Get a child of the package logger, e.g. ``crud.product``."""
    return logger.getChild(name)


logger = configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

if _running_in_azure_functions():
    _enable_azure_monitor()

tracer = opentelemetry.trace.get_tracer(LOGGER_NAME)
