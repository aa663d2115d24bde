"""
Application layer: environment definitions, command handlers and wiring.
"""

from tracker_deployer.application.config import EnvironmentCreationConfig
from tracker_deployer.application.container import Container
from tracker_deployer.application.errors import CommandFailedError, HandlerError, WrongStateError

__all__ = [
    "CommandFailedError",
    "Container",
    "EnvironmentCreationConfig",
    "HandlerError",
    "WrongStateError",
]
