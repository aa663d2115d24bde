"""
Configuration module for the tracker deployer.
"""

from tracker_deployer.config.settings import (
    BUILD_DIR_NAME,
    DATA_DIR_NAME,
    ENV_PREFIX,
    DeployerSettings,
    load_settings,
)

__all__ = [
    "BUILD_DIR_NAME",
    "DATA_DIR_NAME",
    "ENV_PREFIX",
    "DeployerSettings",
    "load_settings",
]
