from flask import Blueprint, request, jsonify
from cloudpipe.db import db
from cloudpipe.middleware.auth import requires_auth
from cloudpipe.services.cluster_factory import Cluster
from cloudpipe.services.cluster_manager import ClusterManager
from cloudpipe.services.cluster_repository import ClusterRepository

cluster_bp = Blueprint('cluster', __name__)


def _manager() -> ClusterManager:
    return ClusterManager(ClusterRepository(db.session))


def _cluster_json(cluster: Cluster) -> dict:
    data = cluster.get_status()
    data['secret_id'] = cluster.get_credentials_ref()
    return data


@cluster_bp.route('/', methods=['GET'])
@requires_auth
def list_clusters():
    """List the clusters of the organization, optionally only those using a secret"""
    organisation_id = request.user['organisation_id']
    secret_id = request.args.get('secret_id')

    if secret_id:
        clusters = _manager().get_clusters_by_secret_id(organisation_id, secret_id)
    else:
        clusters = _manager().get_clusters(organisation_id)

    return jsonify({'clusters': [_cluster_json(cluster) for cluster in clusters]}), 200


@cluster_bp.route('/<int:cluster_id>', methods=['GET'])
@requires_auth
def get_cluster(cluster_id):
    """Get a cluster by ID"""
    cluster = _manager().get_cluster_by_id(request.user['organisation_id'], cluster_id)
    return jsonify({'cluster': _cluster_json(cluster)}), 200


@cluster_bp.route('/name/<name>', methods=['GET'])
@requires_auth
def get_cluster_by_name(name):
    """Get a cluster by name"""
    cluster = _manager().get_cluster_by_name(request.user['organisation_id'], name)
    return jsonify({'cluster': _cluster_json(cluster)}), 200
