"""Utilities for shared application concerns."""

from indexnow_notifier import __version__
from indexnow_notifier.utils.logging import (
    add_request_logging_middleware,
    setup_logging,
)

__all__ = ["__version__", "add_request_logging_middleware", "setup_logging"]
