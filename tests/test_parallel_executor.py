import asyncio

from core.parallel_executor import ParallelExecutor, ReadTask, TaskStatus


def delayed(value, delay):
    async def call():
        await asyncio.sleep(delay)
        return value
    return call


def failing(message):
    async def call():
        raise RuntimeError(message)
    return call


async def test_results_keep_initiation_order():
    tasks = [
        ReadTask('slow', delayed('a', 0.03)),
        ReadTask('fast', delayed('b', 0)),
        ReadTask('middle', delayed('c', 0.01)),
    ]
    done = await ParallelExecutor().gather_ordered(tasks)
    assert [t.key for t in done] == ['slow', 'fast', 'middle']
    assert [t.result for t in done] == ['a', 'b', 'c']


async def test_one_failure_does_not_cancel_siblings():
    executor = ParallelExecutor()
    done = await executor.gather_ordered([
        ReadTask('bugs', delayed({'success': True}, 0.01)),
        ReadTask('teams', failing("backend down")),
    ])
    assert done[0].status == TaskStatus.COMPLETED
    assert done[1].status == TaskStatus.FAILED
    assert done[1].error == "backend down"
    assert executor.last_stats.failed_tasks == 1


async def test_empty_input():
    assert await ParallelExecutor().gather_ordered([]) == []
