"""
Parallel Execution of Aggregate Reads

Dashboard-style requests fan out to several collaborators at once.
Results are merged in the order the calls were issued, never in the
order they complete, and one failing call does not cancel its siblings.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from logger import get_logger

logger = get_logger(__name__)


class TaskStatus(Enum):
    """Status of a sub-call"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ReadTask:
    """One concurrent read within an aggregate request"""
    key: str
    call: Callable[[], Awaitable[Any]]
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def elapsed_time(self) -> Optional[float]:
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.COMPLETED


@dataclass
class GatherStats:
    total_tasks: int = 0
    failed_tasks: int = 0
    total_time: float = 0.0
    timings: Dict[str, float] = field(default_factory=dict)


class ParallelExecutor:
    """
    Runs independent reads concurrently.

    Tasks are returned in initiation order with their status, result
    and error filled in.
    """

    def __init__(self):
        self.last_stats = GatherStats()

    async def gather_ordered(self, tasks: List[ReadTask]) -> List[ReadTask]:
        """
        Execute all tasks concurrently.

        Args:
            tasks: Reads to run, in the order their results should merge

        Returns:
            The same tasks, in the same order, after completion
        """
        if not tasks:
            return []

        start_time = time.time()

        async def execute_single(task: ReadTask) -> None:
            task.status = TaskStatus.RUNNING
            task.start_time = time.time()
            try:
                task.result = await task.call()
                task.status = TaskStatus.COMPLETED
            except Exception as e:
                task.status = TaskStatus.FAILED
                task.error = str(e) or type(e).__name__
                logger.warning(f"Aggregate read '{task.key}' failed: {task.error}")
            finally:
                task.end_time = time.time()

        await asyncio.gather(*[execute_single(task) for task in tasks])

        self.last_stats = GatherStats(
            total_tasks=len(tasks),
            failed_tasks=sum(1 for task in tasks if not task.succeeded),
            total_time=time.time() - start_time,
            timings={task.key: task.elapsed_time() or 0.0 for task in tasks},
        )
        logger.debug(
            f"Gathered {len(tasks)} reads in {self.last_stats.total_time:.3f}s "
            f"({self.last_stats.failed_tasks} failed)"
        )

        return tasks
