import logging
from rq import Worker
from cloudpipe.app import create_app
from cloudpipe.db import db
from cloudpipe.services.github_client import GithubClient
from cloudpipe.services.queue_service import SPOTGUIDE_QUEUE, get_redis
from cloudpipe.services.spotguide_service import SpotguideScraper
from cloudpipe.utils.redis_lock import RedisLock

logger = logging.getLogger(__name__)

# Flask app for config and database context
app = create_app()


def scrape_spotguides():
    """
    Sync the spotguide catalog with GitHub.
    This function will be called by the RQ worker.
    """
    with app.app_context():
        github = GithubClient(
            app.config['GITHUB_TOKEN'],
            base_url=app.config['GITHUB_API_URL'],
            timeout=app.config['HTTP_TIMEOUT']
        )
        scraper = SpotguideScraper(
            github,
            db.session,
            organization=app.config['SPOTGUIDE_GITHUB_ORGANIZATION']
        )

        # one scrape at a time, across workers
        with RedisLock(get_redis(app.config), 'spotguide-scrape', expire_seconds=600):
            try:
                names = scraper.scrape()
            except Exception:
                logger.exception("Spotguide scrape failed")
                raise

        logger.info(f"Spotguide scrape finished, {len(names)} spotguides synced")
        return names


if __name__ == '__main__':
    redis_conn = get_redis(app.config)

    logger.info(f"Starting worker with Redis at {app.config['REDIS_HOST']}:{app.config['REDIS_PORT']}")
    worker = Worker([SPOTGUIDE_QUEUE], connection=redis_conn)
    worker.work()
