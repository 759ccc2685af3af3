from cloudpipe.db.models.cluster import ClusterRecord
from cloudpipe.db.models.secret import Secret
from cloudpipe.db.models.spotguide import SpotguideRepo

__all__ = ['ClusterRecord', 'Secret', 'SpotguideRepo']
