#!/usr/bin/env python3
"""
Main / entry point for SB family of modem exporter.

"""
import asyncio
import sys

import structlog
from arris_cm.metrics import ModemCollector
from arris_cm.scrape import scrape
from err.exceptions import ScrapeError
from prometheus_client import CollectorRegistry, start_http_server
from util.config import ConfigError, Settings

log = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level.value)
    )


async def poll_once(settings: Settings, collector: ModemCollector) -> bool:
    """One scrape cycle. Whatever happens, the collector ends up reflecting it."""
    try:
        with collector.scrape_duration.time():
            state = await scrape(
                settings.modem_host,
                settings.modem_username,
                settings.modem_password,
                scheme=settings.modem_scheme,
                timeout=settings.request_timeout_seconds,
                tls_ciphers=settings.tls_ciphers,
            )
    except ScrapeError as e:
        log.error("Scrape failed", error_type=type(e).__name__, error=e.message, status=e.status_code)
        collector.mark_failed(e)
        return False
    # pylint: disable=broad-exception-caught
    except Exception as e:
        log.error("Unforeseen exception. Treating as non-fatal.", error=repr(e))
        collector.mark_failed(e)
        return False

    collector.update(state)
    log.info(
        "Scrape complete",
        downstream=len(state.downstream),
        upstream=len(state.upstream),
        connected=state.connected,
    )
    return True


async def main(settings: Settings) -> None:
    """Main entry point."""
    log.info("Starting up", host=settings.modem_host)

    registry = CollectorRegistry()
    collector = ModemCollector(registry)

    # In testing, server responds to requests on / and /metrics so there's no real
    #   need to allow customizing the path, I think.
    server, _ = start_http_server(port=settings.metrics_port, registry=registry)
    log.info("Metrics server started", server=server.server_address)

    while True:
        await poll_once(settings, collector)
        log.info(f"Sleeping {settings.poll_interval_seconds} seconds before next poll")
        await asyncio.sleep(settings.poll_interval_seconds)


def run() -> None:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        log.error("Bad configuration", error=str(e))
        sys.exit(1)

    configure_logging(settings)
    asyncio.run(main(settings))


if __name__ == "__main__":
    run()
