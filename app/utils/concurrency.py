"""
Run blocking Firestore work from async route handlers.
"""

import asyncio
import functools


async def run_blocking(func, *args, **kwargs):
    """Run a sync callable in the default thread pool so the event loop stays free."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
