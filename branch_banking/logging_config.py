"""
Structured Logging Configuration Module

JSON log lines for ledger and staff activity. Besides the standard level,
logger and message, each line may carry who acted (user_id), what they did
(action, resource), where (branch sort code, account number) and, for
refused operations, the ErrorKind value that was raised.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import get_config

# Record attributes copied into each JSON line when present
STRUCTURED_FIELDS = ("user_id", "action", "resource", "branch", "account", "error_kind", "extra")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the time the event was logged"""

    def format(self, record):
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: Optional[str] = None, logger_name: str = "branch_banking",
                  log_format: Optional[str] = None) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Level and format default to BANK_LOG_LEVEL and BANK_LOG_FORMAT; a
    format of "json" selects JSONFormatter, anything else plain text.
    Calling it again replaces the handler instead of adding a second one.
    """
    config = get_config()
    level = level or config.log_level
    log_format = log_format or config.log_format

    logger = logging.getLogger(logger_name)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s"
        ))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = "branch_banking") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, branch: Optional[str] = None,
               account: Optional[int] = None, error_kind: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Log a staff or account action with structured fields.

    Args:
        logger: Logger instance
        level: Log level name (info, warning, ...)
        message: Human-readable message
        user_id: Login id of the staff member acting
        action: Operation name, e.g. "open_account"
        resource: Entity acted on, e.g. "account:10001"
        branch: Sort code of the branch involved
        account: Account number involved
        error_kind: ErrorKind value when the operation was refused
        extra: Any further structured data
    """
    fields = {
        "user_id": user_id,
        "action": action,
        "resource": resource,
        "branch": branch,
        "account": account,
        "error_kind": error_kind,
        "extra": extra,
    }
    logger.log(
        getattr(logging, level.upper()), message,
        extra={name: value for name, value in fields.items() if value is not None}
    )
