"""Main entry point for the telemetry agent.

The agent plays the host role: it reads activity and interaction events, one
per line, from standard input and runs the teardown hooks on SIGINT, SIGTERM
or end of input.

Input lines:
    input                 user input observed
    hidden | visible      page visibility changed
    visit <name>          named visit (registers the user, starts live tracking)
    view|call|whatsapp|share <business_id>
    flush                 flush queued events now
"""

import asyncio
import logging
import os
import signal
import stat
import sys

import aiohttp

from page_telemetry.adapters.config import AppConfig
from page_telemetry.adapters.host import TeardownHooks
from page_telemetry.adapters.sink import InMemoryDataSink, PostgrestDataSink
from page_telemetry.adapters.storage import JsonFileKeyValueStore
from page_telemetry.application import (
    ActivityTracker,
    EventBatcher,
    IdentityStore,
    PresenceHeartbeat,
    TrackingService,
)
from page_telemetry.domain.models import INTERACTION_TYPES, ClientContext
from page_telemetry.domain.ports import DataSink, KeyValueStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


def create_sink(config: AppConfig, session: aiohttp.ClientSession) -> DataSink:
    """Create the configured sink, or an in-memory one if no URL is set."""
    if config.sink_url:
        return PostgrestDataSink(
            config.sink_url,
            session,
            api_key=config.sink_api_key,
            timeout_seconds=config.sink_timeout_seconds,
            beacon_timeout_seconds=config.beacon_timeout_seconds,
        )
    logger.warning("No SINK_URL configured, records are kept in memory only")
    return InMemoryDataSink()


def create_tracking_service(
    config: AppConfig, sink: DataSink, store: KeyValueStore
) -> TrackingService:
    """Wire identity, activity, batcher and heartbeat into a tracking service."""
    identity = IdentityStore(store)
    activity = ActivityTracker(min_activity_gap_seconds=config.min_activity_gap_seconds)
    batcher = EventBatcher(
        sink,
        flush_interval_seconds=config.flush_interval_seconds,
        max_queue_size=config.max_queue_size,
        enabled=config.analytics_enabled,
    )
    heartbeat = PresenceHeartbeat(
        sink,
        activity,
        identity,
        ping_interval_seconds=config.ping_interval_seconds,
        enabled=config.analytics_enabled,
    )
    context = ClientContext(
        page_path=config.page_path,
        referrer=config.referrer,
        user_agent=config.user_agent,
    )
    return TrackingService(
        sink,
        identity,
        activity,
        batcher,
        heartbeat,
        context=context,
        enabled=config.analytics_enabled,
    )


async def handle_host_event(tracking: TrackingService, line: str) -> None:
    """Apply one input line to the tracking service."""
    parts = line.strip().split(maxsplit=1)
    if not parts:
        return
    command = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else ""

    if command == "input":
        tracking.record_input()
    elif command in ("hidden", "visible"):
        tracking.set_visibility(command == "visible")
    elif command == "visit":
        if not argument:
            logger.warning("'visit' needs a user name")
            return
        tracking.record_input()
        await tracking.track_user_visit(argument)
    elif command in INTERACTION_TYPES:
        if not argument:
            logger.warning(f"'{command}' needs a business id")
            return
        tracking.record_input()
        tracking.track_business_interaction(command, argument)
    elif command == "flush":
        await tracking.batcher.flush()
    else:
        logger.warning(f"Ignoring unknown host event: {line.strip()!r}")


def _stdin_is_regular_file() -> bool:
    try:
        return stat.S_ISREG(os.fstat(sys.stdin.fileno()).st_mode)
    except (OSError, ValueError):
        return False


async def _open_stdin() -> asyncio.StreamReader:
    """Wrap standard input in a stream reader.

    Pipes and terminals are read through the event loop. A redirected regular
    file cannot back a pipe transport, so its contents are read in a worker
    thread and fed to the reader followed by end of input.
    """
    reader = asyncio.StreamReader()
    if _stdin_is_regular_file():
        data = await asyncio.to_thread(getattr(sys.stdin, "buffer", sys.stdin).read)
        reader.feed_data(data.encode("utf-8") if isinstance(data, str) else data)
        reader.feed_eof()
        return reader

    loop = asyncio.get_running_loop()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def consume_host_events(tracking: TrackingService, reader: asyncio.StreamReader) -> None:
    """Feed lines from the reader into the tracking service until end of input."""
    while True:
        raw = await reader.readline()
        if not raw:
            logger.info("End of input")
            return
        await handle_host_event(tracking, raw.decode("utf-8", errors="replace"))


async def main() -> None:
    """Main application entry point."""
    config = AppConfig()
    try:
        config.load_config_file()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if not config.analytics_enabled:
        logger.info("Analytics disabled, only identity persistence is active")

    store = JsonFileKeyValueStore(config.identity_file)
    hooks = TeardownHooks()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with aiohttp.ClientSession() as session:
        sink = create_sink(config, session)
        tracking = create_tracking_service(config, sink, store)
        tracking.register_teardown(hooks)
        logger.info(f"Device id: {tracking.identity.get_device_id()}")

        await tracking.initialize_tracking()

        reader = await _open_stdin()
        consumer = asyncio.create_task(consume_host_events(tracking, reader))
        stopper = asyncio.create_task(stop.wait())
        await asyncio.wait({consumer, stopper}, return_when=asyncio.FIRST_COMPLETED)
        for task in (consumer, stopper):
            task.cancel()
        if consumer.done() and not consumer.cancelled() and consumer.exception() is not None:
            logger.error(f"Host event loop failed: {consumer.exception()!r}")

        logger.info("Shutting down...")
        hooks.run()
        await tracking.aclose()
        await sink.drain(config.beacon_timeout_seconds)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
