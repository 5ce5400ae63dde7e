"""
Job Tracking Package

Asynchronous generation jobs: a pending record is written by the initiator,
a background worker drives it to completed/failed, and pollers read status
and append-only update streams from the key-value store.
"""

from .store import KeyValueStore, MemoryStore, RedisStore, get_job_store
from .recorder import JobRecorder
from .worker import BackgroundWorker, poll_until_done, register_worker, get_worker_class, build_worker
from .scheduler import JobScheduler, LocalScheduler, CeleryScheduler, get_scheduler
from .initiator import JobInitiator
from .reader import StatusReader
from .poller import wait_for_completion

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
    "get_job_store",
    "JobRecorder",
    "BackgroundWorker",
    "poll_until_done",
    "register_worker",
    "get_worker_class",
    "build_worker",
    "JobScheduler",
    "LocalScheduler",
    "CeleryScheduler",
    "get_scheduler",
    "JobInitiator",
    "StatusReader",
    "wait_for_completion"
]
