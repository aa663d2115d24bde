"""
Failure trace files.
"""

from tracker_deployer.trace.writer import TraceRecord, TraceWriteError, TraceWriter

__all__ = ["TraceRecord", "TraceWriteError", "TraceWriter"]
