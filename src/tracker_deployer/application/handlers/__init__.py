"""
Command handlers, one per CLI verb.
"""

from tracker_deployer.application.handlers.configure import ConfigureCommandHandler
from tracker_deployer.application.handlers.create import CreateCommandHandler
from tracker_deployer.application.handlers.destroy import DestroyCommandHandler
from tracker_deployer.application.handlers.exists import ExistsCommandHandler
from tracker_deployer.application.handlers.list import ListCommandHandler, ListResult
from tracker_deployer.application.handlers.provision import ProvisionCommandHandler
from tracker_deployer.application.handlers.purge import PurgeCommandHandler
from tracker_deployer.application.handlers.register import RegisterCommandHandler
from tracker_deployer.application.handlers.release import ReleaseCommandHandler
from tracker_deployer.application.handlers.run import RunCommandHandler
from tracker_deployer.application.handlers.show import EnvironmentDetails, ShowCommandHandler
from tracker_deployer.application.handlers.test import TestCommandHandler, TestReport
from tracker_deployer.application.handlers.validate import ValidateCommandHandler, ValidationReport

__all__ = [
    "ConfigureCommandHandler",
    "CreateCommandHandler",
    "DestroyCommandHandler",
    "EnvironmentDetails",
    "ExistsCommandHandler",
    "ListCommandHandler",
    "ListResult",
    "ProvisionCommandHandler",
    "PurgeCommandHandler",
    "RegisterCommandHandler",
    "ReleaseCommandHandler",
    "RunCommandHandler",
    "ShowCommandHandler",
    "TestCommandHandler",
    "TestReport",
    "ValidateCommandHandler",
    "ValidationReport",
]
