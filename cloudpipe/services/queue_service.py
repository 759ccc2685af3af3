from redis import Redis
from rq import Queue


SPOTGUIDE_QUEUE = 'spotguides'
SCRAPE_JOB_ID = 'spotguide-scrape'


def get_redis(config) -> Redis:
    """Redis connection built from the app config"""
    return Redis(host=config['REDIS_HOST'], port=config['REDIS_PORT'])


class QueueService:
    def __init__(self, redis: Redis):
        self._redis = redis
        self._queue = Queue(SPOTGUIDE_QUEUE, connection=self._redis)

    def enqueue_scrape(self) -> str:
        """
        Add a spotguide scrape to the queue.
        A scrape that is already queued or running is not queued again.
        :return: the job id
        """
        if self.get_scrape_status() in ('queued', 'started'):
            return SCRAPE_JOB_ID

        self._queue.enqueue(
            'worker.scrape_spotguides',
            job_id=SCRAPE_JOB_ID
        )
        return SCRAPE_JOB_ID

    def get_scrape_status(self) -> str:
        """
        Get the current status of the scrape job
        Returns: 'queued', 'started', 'finished', 'failed', or 'not_found'
        """
        if SCRAPE_JOB_ID in self._queue.get_job_ids():
            return 'queued'
        if SCRAPE_JOB_ID in self._queue.started_job_registry:
            return 'started'
        if SCRAPE_JOB_ID in self._queue.finished_job_registry:
            return 'finished'
        if SCRAPE_JOB_ID in self._queue.failed_job_registry:
            return 'failed'

        return 'not_found'
