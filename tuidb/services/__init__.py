from .clipboard import ClipboardSink, MemoryClipboard
from .jobs import DeferredJobRunner, Job, JobRunner, SyncJobRunner, TextualJobRunner
from .registry import ConnectionRegistry, LiveConnection

__all__ = [
    "ClipboardSink",
    "ConnectionRegistry",
    "DeferredJobRunner",
    "Job",
    "JobRunner",
    "LiveConnection",
    "MemoryClipboard",
    "SyncJobRunner",
    "TextualJobRunner",
]
