import asyncio
import contextlib
import logging
import signal

from seren_core.center import NotificationCenter
from seren_core.config import AppConfig
from seren_core.errors import InvalidCadence

logger = logging.getLogger("seren-main")


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # APScheduler logs every job submission at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


async def async_main(config: AppConfig) -> None:
    logger.info(
        "Starting SerenAI notification core (store=%s, target=%s, tz=%s)",
        config.store_backend,
        config.redis_url(redacted=True) if config.store_backend == "redis" else "in-process",
        config.system_timezone,
    )
    center = NotificationCenter.from_config(config)
    try:
        tasks = center.start_scheduler()
    except InvalidCadence as exc:
        logger.warning("Persisted settings rejected (%s); starting with defaults", exc)
        tasks = center.start_scheduler(center.current_settings().merged({"reminderTime": "09:00", "digestTime": "20:00"}))
    logger.info("✓ Scheduler armed with %d task(s)", len(tasks))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
    finally:
        center.shutdown()
        logger.info("SerenAI notification core stopped")


def main() -> None:
    config = AppConfig()
    configure_logging(config)
    asyncio.run(async_main(config))


if __name__ == "__main__":
    main()
