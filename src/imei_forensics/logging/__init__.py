"""Logging utilities for IMEI forensics."""

from imei_forensics.logging.config import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "setup_logging"]
