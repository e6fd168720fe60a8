import asyncio


def run_sync(coro):
    """Run a coroutine to completion on a private event loop.

    Flask views and scripts are synchronous; each call gets its own loop so
    concurrent requests never share one.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        asyncio.set_event_loop(None)
        loop.close()
