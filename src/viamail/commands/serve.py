"""serve — poll the mailbox on a fixed interval until interrupted."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

import click

from viamail.commands._base import ViaCommand

if TYPE_CHECKING:
    from viamail.commands._context import AppContext

logger = logging.getLogger(__name__)


@click.command(
    cls=ViaCommand,
    examples="""\
  # Poll every [polling] interval_seconds (default 30s)
  viamail serve

  # Override the interval for this run
  viamail serve --interval 60

  # Structured logs for a process supervisor
  viamail --log-json serve""",
)
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds between ticks (overrides [polling] interval_seconds).",
)
@click.pass_obj
def serve(app: AppContext, interval: int | None) -> None:
    """Run the mailbox poll loop (one tick at a time, never overlapping)."""
    if not app.settings.polling.enabled:
        logger.info("Polling is disabled ([polling] enabled = false); nothing to do")
        return
    app.require_transport()

    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    seconds = interval or app.settings.polling.interval_seconds
    poller = app.build_poller()
    scheduler = BlockingScheduler()
    scheduler.add_job(
        poller.tick,
        IntervalTrigger(seconds=seconds),
        id="mailbox-tick",
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(),
    )
    logger.info("Polling %s every %ss", app.settings.mailbox.host, seconds)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopping poll loop")
    finally:
        app.close()
