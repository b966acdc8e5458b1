import logging
import sys

from pythonjsonlogger import jsonlogger


def setup_logging(
    service_name: str = "transcode-worker",
    level: str = "INFO",
    log_file: str | None = None,
):
    """
    Configures structured JSON logging for the worker.

    Every record carries timestamp, level, logger name, message, the Datadog
    trace_id/span_id and a static ``service`` field. Records go to stdout
    unless ``log_file`` is given, in which case they are appended to that
    file instead.

    Returns:
        logging.Logger: The configured root logger instance.
    """
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s",
        static_fields={"service": service_name},
    )
    if log_file:
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.handlers = []
    root_logger.addHandler(handler)

    for logger_name in ["botocore", "urllib3", "pika"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return root_logger
