"""Main event loop: bonus triggers plus the remote snapshot channel."""

import asyncio
import logging

from .app import TVTimeApp
from .errors import RemoteUnavailable
from .firebase_client import RemoteDocument, Subscription
from .reconciler import RemoteError, RemoteEvent, RemoteSnapshot

logger = logging.getLogger(__name__)


def subscribe_to_channel(
    remote: RemoteDocument,
    channel: "asyncio.Queue[RemoteEvent]",
    loop: asyncio.AbstractEventLoop,
) -> Subscription:
    """Forward remote snapshots and errors onto the channel.

    The remote listener may call back from any thread; events are handed to
    the event loop so they are handled on its single timeline.
    """
    return remote.subscribe(
        lambda document: loop.call_soon_threadsafe(channel.put_nowait, RemoteSnapshot(document)),
        lambda error: loop.call_soon_threadsafe(channel.put_nowait, RemoteError(error)),
    )


async def run_tracker_loop(app: TVTimeApp, stop: asyncio.Event | None = None) -> None:
    """Run until stop is set (or forever). Remote failures fall back to local mode."""
    loop = asyncio.get_running_loop()
    channel: asyncio.Queue[RemoteEvent] = asyncio.Queue()

    document = await asyncio.to_thread(app.gateway.fetch_remote)
    app.load(document)

    subscription: Subscription | None = None
    if app.gateway.remote is not None:
        try:
            subscription = subscribe_to_channel(app.gateway.remote, channel, loop)
        except RemoteUnavailable:
            logger.warning("Failed to subscribe to family document", exc_info=True)
            app.gateway.mark_offline()

    logger.info(
        "Starting tracker loop (poll=%ds, status=%s)",
        app.config.poll_interval_seconds,
        app.gateway.sync_status,
    )
    tasks = [
        asyncio.create_task(app.reconciler.consume(channel), name="reconciler"),
        asyncio.create_task(app.scheduler.run(), name="bonus-scheduler"),
    ]
    try:
        if stop is None:
            await asyncio.gather(*tasks)
        else:
            await stop.wait()
    finally:
        if subscription is not None:
            subscription.unsubscribe()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await app.gateway.flush()
        logger.info("Tracker loop stopped")
