import logging
from typing import Callable, Iterable, List

from cloudpipe.db.models.cluster import ClusterRecord
from cloudpipe.exceptions import ResolutionFailedError
from cloudpipe.services.cluster_factory import Cluster, build_cluster
from cloudpipe.services.cluster_repository import ClusterRepository

logger = logging.getLogger(__name__)


class ClusterManager:
    """
    Organisation scoped cluster lookups.

    Listings skip records that can't be resolved so one broken cluster does
    not hide the others. Single cluster lookups raise instead.
    """

    def __init__(
        self,
        clusters: ClusterRepository,
        factory: Callable[[ClusterRecord], Cluster] = build_cluster
    ):
        self.clusters = clusters
        self.factory = factory

    def get_clusters(self, organisation_id: int) -> List[Cluster]:
        """Returns the cluster handles of an organisation."""
        logger.debug(f"Fetching clusters of organisation {organisation_id}")
        records = self.clusters.find_by_organisation(organisation_id)
        return self._resolve_all(records)

    def get_all_clusters(self) -> List[Cluster]:
        """Returns the cluster handles of every organisation."""
        logger.debug("Fetching all clusters")
        return self._resolve_all(self.clusters.all())

    def get_cluster_by_id(self, organisation_id: int, cluster_id: int) -> Cluster:
        logger.debug(f"Getting cluster {cluster_id} of organisation {organisation_id}")
        record = self.clusters.find_one_by_id(organisation_id, cluster_id)
        return self._resolve(record)

    def get_cluster_by_name(self, organisation_id: int, name: str) -> Cluster:
        logger.debug(f"Getting cluster {name} of organisation {organisation_id}")
        record = self.clusters.find_one_by_name(organisation_id, name)
        return self._resolve(record)

    def get_clusters_by_secret_id(self, organisation_id: int, secret_id: str) -> List[Cluster]:
        logger.debug(f"Fetching clusters of organisation {organisation_id} using secret {secret_id}")
        records = self.clusters.find_by_secret(organisation_id, secret_id)
        return self._resolve_all(records)

    def _resolve(self, record: ClusterRecord) -> Cluster:
        try:
            return self.factory(record)
        except ResolutionFailedError:
            raise
        except Exception as e:
            raise ResolutionFailedError(
                "Could not get cluster from model",
                cluster=record.name,
                organisation_id=record.organisation_id
            ) from e

    def _resolve_all(self, records: Iterable[ClusterRecord]) -> List[Cluster]:
        clusters = []
        for record in records:
            try:
                clusters.append(self._resolve(record))
            except ResolutionFailedError as e:
                logger.error(
                    f"Converting cluster {record.name} of organisation "
                    f"{record.organisation_id} failed: {e} ({e.error_code})"
                )
        return clusters
