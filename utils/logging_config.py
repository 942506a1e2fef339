"""
Centralized logging configuration for the GeM portal backend
"""
import logging
import sys
from datetime import datetime
import os

# Create logs directory if it doesn't exist
LOGS_DIR = os.getenv(
    "LOGS_DIR",
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs"),
)
os.makedirs(LOGS_DIR, exist_ok=True)

# Define log format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Create formatters
formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

# Console handler
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(formatter)

# File handler - Application logs
app_log_file = os.path.join(LOGS_DIR, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(app_log_file, encoding='utf-8')
file_handler.setLevel(logging.DEBUG)
file_handler.setFormatter(formatter)

# File handler - Error logs
error_log_file = os.path.join(LOGS_DIR, f"error_{datetime.now().strftime('%Y%m%d')}.log")
error_handler = logging.FileHandler(error_log_file, encoding='utf-8')
error_handler.setLevel(logging.ERROR)
error_handler.setFormatter(formatter)

# File handler - Admin audit logs (document verification, admin grants, bid reviews)
audit_log_file = os.path.join(LOGS_DIR, f"audit_{datetime.now().strftime('%Y%m%d')}.log")
audit_handler = logging.FileHandler(audit_log_file, encoding='utf-8')
audit_handler.setLevel(logging.INFO)
audit_handler.setFormatter(formatter)


def setup_logger(name: str, log_type: str = "app") -> logging.Logger:
    """
    Setup and return a logger with appropriate handlers

    Args:
        name: Logger name (usually __name__ from calling module)
        log_type: Type of log - "app" or "audit"

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only add handlers if not already added (prevents duplicate logs)
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # All loggers get console and error handlers
        logger.addHandler(console_handler)
        logger.addHandler(error_handler)

        if log_type == "audit":
            logger.addHandler(audit_handler)
        else:
            logger.addHandler(file_handler)

    return logger


def get_logger(name: str, log_type: str = "app") -> logging.Logger:
    """Get or create a logger - convenience wrapper"""
    return setup_logger(name, log_type)


# Default app logger
app_logger = setup_logger("gem_portal", "app")
