from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from redis import Redis
from rq import Queue, Worker

from apps.api.app.logging_setup import configure_logging
from apps.api.app.settings import settings

from apps.api.app.queue import QUEUE_NAME

from .jobs import job_refresh_stale


def main():
    configure_logging()
    logger = logging.getLogger(__name__)

    scheduler = BackgroundScheduler()
    scheduler.add_job(job_refresh_stale, "cron", kwargs={"dry_run": False}, hour=settings.stale_refresh_hour, minute=0, id="stale_refresh")
    scheduler.start()
    logger.info("availability worker running scheduler (daily at %02d:00)", settings.stale_refresh_hour)

    try:
        conn = Redis.from_url(settings.redis_url or "redis://redis:6379/0")
        w = Worker([Queue(QUEUE_NAME, connection=conn)], connection=conn)
        w.work(with_scheduler=True)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.shutdown(wait=False)


if __name__ == "__main__":
    main()
