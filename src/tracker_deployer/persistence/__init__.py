"""
File-system persistence for environment snapshots.
"""

from tracker_deployer.persistence.file_lock import FileLock, LockAcquisitionTimeout
from tracker_deployer.persistence.file_repository import FileEnvironmentRepository
from tracker_deployer.persistence.json_file import JsonFileStore

__all__ = [
    "FileLock",
    "LockAcquisitionTimeout",
    "FileEnvironmentRepository",
    "JsonFileStore",
]
