"""Process-wide wiring: one API client, one database, one job queue."""
import logging
from dataclasses import dataclass
from typing import Optional

from .config import settings
from .database import Database
from .jobs import JobQueue, RefreshPipeline, default_handlers
from .riot_api import RiotAPIClient
from .updaters import SummonerResolver

logger = logging.getLogger(__name__)


@dataclass
class App:
    api_client: RiotAPIClient
    database: Database
    resolver: SummonerResolver
    queue: JobQueue
    pipeline: RefreshPipeline

    def close(self, wait: bool = True) -> None:
        """Stop the workers, then release HTTP and database connections."""
        self.queue.shutdown(wait=wait)
        self.api_client.close()
        self.database.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def build_app(
    api_client: Optional[RiotAPIClient] = None,
    database: Optional[Database] = None,
    concurrency: Optional[int] = None,
) -> App:
    """Construct the shared client, database, queue and pipeline once."""
    api_client = api_client or RiotAPIClient()
    database = database or Database(settings.DATABASE_URL)
    resolver = SummonerResolver(api_client, database)
    job_queue = JobQueue(
        default_handlers(api_client, database, resolver),
        concurrency=concurrency or settings.WORKER_CONCURRENCY,
    )
    pipeline = RefreshPipeline(job_queue, resolver)
    logger.debug(f"Application ready (database: {database.dialect})")
    return App(api_client, database, resolver, job_queue, pipeline)
