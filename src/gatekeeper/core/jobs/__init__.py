"""Background job processing with ARQ.

The Redis-backed queue carries "principal created" messages from the
account subsystem to the default role assigner. Run the worker with:

    arq gatekeeper.core.jobs.worker.WorkerSettings
"""

from gatekeeper.core.jobs.registry import close_arq_pool, enqueue, get_arq_pool, init_arq_pool


__all__ = [
    "close_arq_pool",
    "enqueue",
    "get_arq_pool",
    "init_arq_pool",
]
