"""
Collection Scheduler - periodic pipeline runs.

One interval job per content type on an APScheduler ``AsyncIOScheduler``.
``max_instances=1`` keeps APScheduler from overlapping a job with itself;
the pipeline's own RUNNING state also covers manual triggers.
"""

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from llm_news.models.domain import ContentType

if TYPE_CHECKING:
    from llm_news.jobs.collection import CollectionPipeline, RunReport

logger = logging.getLogger(__name__)


class CollectionScheduler:
    """
    Schedules and runs periodic collection.

    Features:
    - Independent refresh interval per content type
    - Overlapping runs of one pipeline are skipped
    - Manual trigger outside the schedule
    """

    def __init__(
        self,
        pipelines: dict[ContentType, "CollectionPipeline"],
        intervals_minutes: dict[ContentType, int],
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            pipelines: Pipeline per content type
            intervals_minutes: Minutes between runs per content type
            scheduler: APScheduler instance (a new one by default)
        """
        self.pipelines = pipelines
        self.intervals = {
            content_type: timedelta(minutes=minutes)
            for content_type, minutes in intervals_minutes.items()
        }
        self.scheduler = scheduler or AsyncIOScheduler()

    def start(self) -> None:
        """Register one interval job per pipeline and start the scheduler."""
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        for content_type, pipeline in self.pipelines.items():
            interval = self.intervals[content_type]
            self.scheduler.add_job(
                pipeline.run,
                IntervalTrigger(seconds=interval.total_seconds()),
                id=f"collect_{content_type.value}",
                name=f"Collect {content_type.value}",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info(f"Scheduled {content_type.value} collection every {interval}")

        self.scheduler.start()

    def stop(self) -> None:
        """Shut the scheduler down; shutdown may finish on the next loop iteration."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Collection scheduler stopped")

    async def run_now(self, content_type: ContentType) -> "RunReport":
        """Trigger an immediate run outside the schedule."""
        return await self.pipelines[content_type].run()

    @property
    def is_running(self) -> bool:
        return self.scheduler.running

    def get_status(self) -> dict:
        """Get scheduler and pipeline status."""
        status = {"running": self.is_running, "pipelines": {}}

        for content_type, pipeline in self.pipelines.items():
            job = self.scheduler.get_job(f"collect_{content_type.value}")
            next_run = getattr(job, "next_run_time", None) if job else None
            status["pipelines"][content_type.value] = {
                **pipeline.get_status(),
                "interval_minutes": self.intervals[content_type].total_seconds() / 60,
                "next_run": next_run.isoformat() if next_run else None,
            }

        return status
