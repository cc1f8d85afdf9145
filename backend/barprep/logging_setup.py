from __future__ import annotations

import logging

DEFAULT_LOG_NAME = "barprep"


def configure_logging(*, level: str = "INFO", app_name: str = DEFAULT_LOG_NAME) -> logging.Logger:
	"""
	Attach a console handler to the application logger.
	Subsequent calls return the already-configured logger.
	"""
	logger = logging.getLogger(app_name)
	if logger.handlers:
		return logger

	logger.setLevel(getattr(logging, level.upper(), logging.INFO))

	console_handler = logging.StreamHandler()
	console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
	logger.addHandler(console_handler)

	return logger


__all__ = ["configure_logging"]
