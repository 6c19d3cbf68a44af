"""Background refresh jobs."""
from .queue import (
    JobName, JobState, JobQueue, JobHandle, JobResult, QueueMetrics,
    JobTimeoutError, QueueClosedError, PRIORITIES,
)
from .pipeline import (
    RefreshPipeline, PipelineOutcome, JobOutcome, JobStatus,
    CRITICAL_JOBS, MATCH_JOBS, default_handlers, make_job_id,
)

__all__ = [
    'JobName',
    'JobState',
    'JobQueue',
    'JobHandle',
    'JobResult',
    'QueueMetrics',
    'JobTimeoutError',
    'QueueClosedError',
    'PRIORITIES',
    'RefreshPipeline',
    'PipelineOutcome',
    'JobOutcome',
    'JobStatus',
    'CRITICAL_JOBS',
    'MATCH_JOBS',
    'default_handlers',
    'make_job_id',
]
