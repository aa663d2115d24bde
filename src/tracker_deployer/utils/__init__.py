"""
Shared utilities module.
"""

from tracker_deployer.utils.logging import (
    configure_from_settings,
    configure_logging,
    get_logger,
    timed_operation,
)

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "timed_operation",
]
