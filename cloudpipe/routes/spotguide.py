import logging
from flask import Blueprint, current_app, request, jsonify
from cloudpipe.db import db
from cloudpipe.db.models.spotguide import SpotguideRepo
from cloudpipe.exceptions import InvalidSpotguideError, ServiceException, ValidationError
from cloudpipe.middleware.auth import Role, requires_auth, requires_role
from cloudpipe.services.drone_client import DroneClient
from cloudpipe.services.github_client import GithubClient
from cloudpipe.services.launch_service import LaunchRequest, SpotguideLauncher
from cloudpipe.services.manifest import ManifestError
from cloudpipe.services.queue_service import QueueService, get_redis
from cloudpipe.services.secret_service import SecretStore
from cloudpipe.services.spotguide_service import SpotguideCatalog
from cloudpipe.utils.redis_lock import RedisLock

logger = logging.getLogger(__name__)

spotguide_bp = Blueprint('spotguide', __name__)


def _spotguide_json(repo: SpotguideRepo) -> dict:
    try:
        manifest = repo.spotguide
    except ManifestError as e:
        raise InvalidSpotguideError(repo.name) from e

    return {
        'name': repo.name,
        'createdAt': repo.created_at.isoformat() if repo.created_at else None,
        'updatedAt': repo.updated_at.isoformat() if repo.updated_at else None,
        'spotguide': manifest.to_dict()
    }


def _github_client(token: str) -> GithubClient:
    return GithubClient(
        token,
        base_url=current_app.config['GITHUB_API_URL'],
        timeout=current_app.config['HTTP_TIMEOUT']
    )


def _drone_client(token: str) -> DroneClient:
    return DroneClient(
        current_app.config['DRONE_URL'],
        token,
        timeout=current_app.config['HTTP_TIMEOUT']
    )


def _launch_lock(repo_fullname: str) -> RedisLock:
    return RedisLock(
        get_redis(current_app.config),
        f"spotguide-launch:{repo_fullname}",
        expire_seconds=300,
        timeout=1
    )


@spotguide_bp.route('/', methods=['GET'])
@requires_auth
def list_spotguides():
    """List the spotguide catalog"""
    items = []
    for repo in SpotguideCatalog(db.session).get_spotguides():
        try:
            items.append(_spotguide_json(repo))
        except InvalidSpotguideError as e:
            logger.error(f"Skipping spotguide {repo.name}: {e.__cause__}")
    return jsonify({'spotguides': items}), 200


@spotguide_bp.route('/<owner>/<name>', methods=['GET'])
@requires_auth
def get_spotguide(owner, name):
    """Get a spotguide by its repository name"""
    spotguide = SpotguideCatalog(db.session).get_spotguide(f"{owner}/{name}")
    return jsonify({'spotguide': _spotguide_json(spotguide)}), 200


@spotguide_bp.route('/', methods=['POST'])
@requires_auth
def launch_spotguide():
    """Launch a spotguide into a new GitHub repository"""
    launch_request = LaunchRequest.from_dict(request.get_json(silent=True))

    github_token = request.user.get('github_token')
    if not github_token:
        raise ValidationError("GitHub token not found for user", "GITHUB_TOKEN_MISSING")

    github = _github_client(github_token)
    launcher = SpotguideLauncher(
        SpotguideCatalog(db.session),
        SecretStore(db.session),
        github,
        _drone_client(request.token)
    )

    lock = _launch_lock(launch_request.repo_fullname)
    if not lock.acquire(timeout=lock.timeout):
        raise ServiceException(
            f"A launch of {launch_request.repo_fullname} is already in progress",
            'LAUNCH_IN_PROGRESS',
            409
        )

    try:
        result = launcher.launch(
            launch_request,
            request.user['organisation_id'],
            github_login=request.user.get('github_login')
        )
    finally:
        lock.release()

    return jsonify({
        'message': 'Spotguide launched successfully',
        'repository': result.repository,
        'stage': result.stage.value,
        'secret_ids': result.secret_ids,
        'commit_sha': result.commit_sha
    }), 201


@spotguide_bp.route('/', methods=['PUT'])
@requires_auth
@requires_role(Role.ADMIN)
def sync_spotguides():
    """Queue a sync of the spotguide catalog with GitHub"""
    queue_service = QueueService(get_redis(current_app.config))
    job_id = queue_service.enqueue_scrape()

    return jsonify({
        'message': 'Spotguide sync queued',
        'job_id': job_id,
        'status': queue_service.get_scrape_status()
    }), 202
