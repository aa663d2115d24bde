"""
Tracker deployer: lifecycle orchestration for Torrust Tracker environments.

An environment moves through a typed state machine
(create, provision, configure, release, run, destroy, purge). Every
transition is persisted to ``data/<name>/environment.json``; failures are
recorded with a trace file under ``data/<name>/traces/``.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
