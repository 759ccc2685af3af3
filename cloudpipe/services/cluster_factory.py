"""
Turns persisted cluster records into provider specific cluster handles.

Handles are cheap, hold no connections and are rebuilt on every lookup.
"""
import json
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from cloudpipe.db.models.cluster import ClusterRecord
from cloudpipe.exceptions import ResolutionFailedError, UnsupportedProviderError


class Provider(Enum):
    AMAZON = "amazon"
    AZURE = "azure"
    GOOGLE = "google"
    ORACLE = "oracle"
    KUBERNETES = "kubernetes"
    DUMMY = "dummy"


class Cluster:
    """Provider independent view of a cluster."""

    provider: Provider
    distribution = "unknown"
    required_config: Tuple[str, ...] = ()
    location_key = "location"

    def __init__(self, record: ClusterRecord, config: Dict[str, Any]):
        missing = [key for key in self.required_config if not config.get(key)]
        if missing:
            raise ResolutionFailedError(
                f"Cluster config is missing {', '.join(missing)}",
                cluster=record.name,
                organisation_id=record.organisation_id
            )

        node_pools = config.get('node_pools') or {}
        if not isinstance(node_pools, dict) or not all(isinstance(pool, dict) for pool in node_pools.values()):
            raise ResolutionFailedError(
                "Cluster node pools must map pool names to pool configs",
                cluster=record.name,
                organisation_id=record.organisation_id
            )

        self.id = record.id
        self.name = record.name
        self.organisation_id = record.organisation_id
        self.secret_id = record.secret_id
        self.status = record.status
        self._config = config
        self._node_pools = node_pools

    @property
    def cloud(self) -> str:
        return self.provider.value

    def get_location(self) -> str:
        return self._config.get(self.location_key, 'unknown')

    def get_distribution(self) -> str:
        return self._config.get('distribution', self.distribution)

    def node_pools(self) -> Dict[str, Dict[str, Any]]:
        return {name: dict(pool) for name, pool in self._node_pools.items()}

    def get_credentials_ref(self) -> Optional[str]:
        return self.secret_id

    def get_status(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'cloud': self.cloud,
            'distribution': self.get_distribution(),
            'location': self.get_location(),
            'node_pools': {
                name: {'count': pool.get('count', 0), 'instance_type': pool.get('instance_type')}
                for name, pool in self.node_pools().items()
            },
        }

    def __repr__(self):
        return f'<{type(self).__name__} {self.organisation_id}/{self.name}>'


class AmazonCluster(Cluster):
    provider = Provider.AMAZON
    distribution = "eks"
    required_config = ('region',)
    location_key = 'region'


class AzureCluster(Cluster):
    provider = Provider.AZURE
    distribution = "aks"
    required_config = ('resource_group', 'location')


class GoogleCluster(Cluster):
    provider = Provider.GOOGLE
    distribution = "gke"
    required_config = ('project', 'zone')
    location_key = 'zone'


class OracleCluster(Cluster):
    provider = Provider.ORACLE
    distribution = "oke"
    required_config = ('region',)
    location_key = 'region'


class KubernetesCluster(Cluster):
    """A cluster imported through its kubeconfig secret."""
    provider = Provider.KUBERNETES

    def get_credentials_ref(self) -> Optional[str]:
        return self._config.get('kubeconfig_secret_id') or self.secret_id


class DummyCluster(Cluster):
    provider = Provider.DUMMY
    distribution = "dummy"

    def get_location(self) -> str:
        return 'dummy'


PROVIDERS = {
    Provider.AMAZON: AmazonCluster,
    Provider.AZURE: AzureCluster,
    Provider.GOOGLE: GoogleCluster,
    Provider.ORACLE: OracleCluster,
    Provider.KUBERNETES: KubernetesCluster,
    Provider.DUMMY: DummyCluster,
}


def build_cluster(record: ClusterRecord) -> Cluster:
    """Build the cluster handle for a record; raises ResolutionFailedError if it can't."""
    try:
        provider = Provider(record.cloud)
    except ValueError:
        raise UnsupportedProviderError(
            record.cloud,
            cluster=record.name,
            organisation_id=record.organisation_id
        ) from None

    try:
        config = json.loads(record.config or '{}')
    except ValueError as e:
        raise ResolutionFailedError(
            "Cluster config is not valid JSON",
            cluster=record.name,
            organisation_id=record.organisation_id
        ) from e

    if not isinstance(config, dict):
        raise ResolutionFailedError(
            "Cluster config must be a JSON object",
            cluster=record.name,
            organisation_id=record.organisation_id
        )

    return PROVIDERS[provider](record, config)
