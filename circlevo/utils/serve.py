import asyncio
from collections.abc import Awaitable, Iterable
import contextlib
import signal


async def serve_until_signal(
    *,
    stop_coros: Iterable[Awaitable] = (),
    on_stop: Iterable[asyncio.Future | None] = (),
) -> None:
    """
    Wait until SIGINT/SIGTERM or any task in on_stop completes naturally, then:
      1) await all stop coroutines (e.g., engine.shutdown())
      2) cancel & await any provided task handles still pending
    """
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    on_stop = [h for h in on_stop if h is not None]

    def _set() -> None:
        if not stop_event.is_set():
            stop_event.set()

    loop.add_signal_handler(signal.SIGINT, _set)
    loop.add_signal_handler(signal.SIGTERM, _set)

    try:
        tasks_to_monitor = [t for t in on_stop if not t.done()]
        if tasks_to_monitor:
            waiter = asyncio.create_task(stop_event.wait())
            await asyncio.wait(
                [waiter, *tasks_to_monitor], return_when=asyncio.FIRST_COMPLETED
            )
            if not waiter.done():
                waiter.cancel()

        if stop_coros:
            await asyncio.gather(*stop_coros, return_exceptions=True)

        # Let any follow-up tasks created by stop() schedule
        await asyncio.sleep(0)

        pending = [h for h in on_stop if not h.done()]
        for h in pending:
            h.cancel()
        if pending:
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(*pending, return_exceptions=True)

    finally:
        loop.remove_signal_handler(signal.SIGINT)
        loop.remove_signal_handler(signal.SIGTERM)
