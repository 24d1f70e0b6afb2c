"""Async utilities for bridging blocking storage calls to the event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Storage adapters are plain blocking objects; stream sinks await them
    through this helper so a slow disk never stalls the editor loop.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        # In a stream sink:
        await run_sync(storage.save_map_markdown, map_id, markdown)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
