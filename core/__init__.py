"""Core System - validation, resilience and concurrent reads"""

from .input_validator import InputValidator

from .resilience import (
    CollaboratorTimeout,
    RetryAttempt,
    RetryContext,
    RetryManager
)

from .parallel_executor import (
    ParallelExecutor,
    ReadTask,
    TaskStatus
)

__all__ = [
    'InputValidator',
    'CollaboratorTimeout',
    'RetryAttempt',
    'RetryContext',
    'RetryManager',
    'ParallelExecutor',
    'ReadTask',
    'TaskStatus',
]
