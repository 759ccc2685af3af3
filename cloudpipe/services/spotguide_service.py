import logging
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cloudpipe.db.models.spotguide import SPOTGUIDE_RAW_MAX_SIZE, SpotguideRepo
from cloudpipe.exceptions import DatabaseError, ScrapeFailedError, SpotguideNotFoundError, UpstreamAPIError
from cloudpipe.services.github_client import GithubClient
from cloudpipe.services.manifest import ManifestError, decode_manifest

logger = logging.getLogger(__name__)

SPOTGUIDE_GITHUB_TOPIC = "spotguide"
SPOTGUIDE_GITHUB_ORGANIZATION = "banzaicloud"
SPOTGUIDE_YAML_PATH = ".banzaicloud/spotguide.yaml"
PIPELINE_YAML_PATH = ".banzaicloud/pipeline.yaml"


class SpotguideCatalog:
    """Read access to the scraped spotguide repositories."""

    def __init__(self, session: Session):
        self.session = session

    def _active(self):
        return select(SpotguideRepo).where(SpotguideRepo.deleted_at.is_(None))

    def get_spotguides(self) -> List[SpotguideRepo]:
        try:
            return list(self.session.scalars(self._active().order_by(SpotguideRepo.name)))
        except SQLAlchemyError as e:
            raise DatabaseError("Could not fetch spotguides") from e

    def get_spotguide(self, name: str) -> SpotguideRepo:
        try:
            spotguide = self.session.scalars(self._active().where(SpotguideRepo.name == name)).first()
        except SQLAlchemyError as e:
            raise DatabaseError("Could not get spotguide", spotguide=name) from e

        if spotguide is None:
            raise SpotguideNotFoundError(name)
        return spotguide


class SpotguideScraper:
    """
    Syncs the catalog with the spotguide repositories of a GitHub organisation.

    A run either stores every spotguide it found or nothing: all manifests
    are downloaded before the first write and the writes share one
    transaction.
    """

    def __init__(
        self,
        github: GithubClient,
        session: Session,
        organization: str = SPOTGUIDE_GITHUB_ORGANIZATION,
        topic: str = SPOTGUIDE_GITHUB_TOPIC
    ):
        self.github = github
        self.session = session
        self.organization = organization
        self.topic = topic

    def scrape(self) -> List[str]:
        """Returns the names of the upserted spotguides."""
        logger.info(f"Scraping spotguides of GitHub organization {self.organization}")

        manifests = self._download_manifests()
        self._upsert(manifests)

        logger.info(f"Scraped {len(manifests)} spotguides of {self.organization}")
        return [name for name, _ in manifests]

    def _download_manifests(self) -> List[Tuple[str, bytes]]:
        try:
            repositories = list(self.github.iter_organization_repositories(self.organization))
        except UpstreamAPIError as e:
            raise ScrapeFailedError(
                "Failed to list GitHub repositories",
                organization=self.organization
            ) from e

        manifests = []
        for repository in repositories:
            if self.topic not in (repository.get('topics') or []):
                continue

            full_name = repository['full_name']
            try:
                raw = self.github.download_contents(
                    repository['owner']['login'],
                    repository['name'],
                    SPOTGUIDE_YAML_PATH
                )
                decode_manifest(raw)
            except UpstreamAPIError as e:
                raise ScrapeFailedError(
                    f"Failed to download spotguide YAML of {full_name}",
                    repository=full_name
                ) from e
            except ManifestError as e:
                raise ScrapeFailedError(f"Invalid spotguide YAML in {full_name}", repository=full_name) from e

            if len(raw) > SPOTGUIDE_RAW_MAX_SIZE:
                raise ScrapeFailedError(
                    f"Spotguide YAML of {full_name} is larger than {SPOTGUIDE_RAW_MAX_SIZE} bytes",
                    repository=full_name
                )

            logger.debug(f"Found spotguide {full_name}")
            manifests.append((full_name, raw))

        return manifests

    def _upsert(self, manifests: List[Tuple[str, bytes]]) -> None:
        name = None
        try:
            for name, raw in manifests:
                existing = self.session.scalars(
                    select(SpotguideRepo).where(
                        SpotguideRepo.name == name,
                        SpotguideRepo.deleted_at.is_(None)
                    )
                ).first()

                if existing is None:
                    self.session.add(SpotguideRepo(name=name, spotguide_raw=raw))
                elif existing.spotguide_raw != raw:
                    existing.spotguide_raw = raw

            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise ScrapeFailedError("Failed to store spotguides", repository=name) from e
