"""
Spotguide launch: secrets, then the GitHub repository, then Drone.

Steps run once, in order. A failing step stops the launch and whatever the
previous steps created is left in place for the operator to inspect.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from cloudpipe.db.models.spotguide import SpotguideRepo
from cloudpipe.exceptions import (
    CIEnableFailedError,
    ContentExtractionError,
    RepositoryCreationFailedError,
    SecretCreationFailedError,
    ServiceException,
    SpotguideNotFoundError,
    TemplateNotFoundError,
    UpstreamAPIError,
    ValidationError,
)
from cloudpipe.services.content_materializer import ContentMaterializer, TreeEntry
from cloudpipe.services.drone_client import DroneClient
from cloudpipe.services.github_client import GithubClient
from cloudpipe.services.secret_service import CreateSecretRequest, SecretStore
from cloudpipe.services.spotguide_service import SpotguideCatalog

logger = logging.getLogger(__name__)

REPOSITORY_DESCRIPTION = "Spotguide by BanzaiCloud"
INITIAL_README = b"# Say hello to Spotguides!"
INITIAL_COMMIT_MESSAGE = "initial import"
SPOTGUIDE_COMMIT_MESSAGE = "adding spotguide structure"


class LaunchStage(Enum):
    START = "start"
    SECRETS_CREATED = "secrets_created"
    REPOSITORY_CREATED = "repository_created"
    CI_ENABLED = "ci_enabled"


@dataclass(frozen=True)
class LaunchRequest:
    spotguide_name: str
    repo_organization: str
    repo_name: str
    secrets: Tuple[CreateSecretRequest, ...] = ()

    @property
    def repo_fullname(self) -> str:
        return f"{self.repo_organization}/{self.repo_name}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LaunchRequest':
        if not isinstance(data, dict):
            raise ValidationError("Request body must be an object", "INVALID_REQUEST")

        spotguide_name = data.get('spotguideName')
        repo_organization = data.get('repoOrganization')
        repo_name = data.get('repoName')

        if not all([spotguide_name, repo_organization, repo_name]):
            raise ValidationError("Missing required fields", "MISSING_REQUIRED_FIELDS")

        if not all(isinstance(value, str) for value in (spotguide_name, repo_organization, repo_name)):
            raise ValidationError("Spotguide and repository names must be strings", "INVALID_REQUEST")

        if '/' in repo_organization or '/' in repo_name:
            raise ValidationError("Repository organization and name must not contain '/'", "INVALID_REPOSITORY")

        secrets = data.get('secrets') or []
        if not isinstance(secrets, list):
            raise ValidationError("Secrets must be a list", "INVALID_SECRETS")

        return cls(
            spotguide_name=spotguide_name,
            repo_organization=repo_organization,
            repo_name=repo_name,
            secrets=tuple(CreateSecretRequest.from_dict(secret) for secret in secrets),
        )


@dataclass
class LaunchResult:
    repository: str
    stage: LaunchStage
    secret_ids: List[int] = field(default_factory=list)
    commit_sha: Optional[str] = None


class SpotguideLauncher:
    """
    Launches spotguides. Not safe to run twice at once for the same
    destination repository; callers serialize launches per destination.
    """

    def __init__(
        self,
        catalog: SpotguideCatalog,
        secrets: SecretStore,
        github: GithubClient,
        drone: DroneClient,
        materializer: Optional[ContentMaterializer] = None
    ):
        self.catalog = catalog
        self.secrets = secrets
        self.github = github
        self.drone = drone
        self.materializer = materializer or ContentMaterializer(github)

    def launch(self, request: LaunchRequest, organisation_id: int, github_login: Optional[str] = None) -> LaunchResult:
        stage = LaunchStage.START

        try:
            source = self.catalog.get_spotguide(request.spotguide_name)
        except SpotguideNotFoundError as e:
            raise TemplateNotFoundError(request.spotguide_name, stage) from e

        secret_ids = self._create_secrets(request, organisation_id, stage)
        stage = LaunchStage.SECRETS_CREATED

        commit_sha = self._create_repository(request, source, github_login, stage)
        stage = LaunchStage.REPOSITORY_CREATED

        self._enable_ci(request, stage)

        logger.info(f"Launched spotguide {source.name} as {request.repo_fullname}")
        return LaunchResult(
            repository=request.repo_fullname,
            stage=LaunchStage.CI_ENABLED,
            secret_ids=secret_ids,
            commit_sha=commit_sha
        )

    def _create_secrets(self, request: LaunchRequest, organisation_id: int, stage: LaunchStage) -> List[int]:
        repo_tag = f"repo:{request.repo_fullname}"
        secret_ids = []

        for secret_request in request.secrets:
            try:
                secret = self.secrets.store(organisation_id, secret_request.with_tag(repo_tag))
            except ServiceException as e:
                raise SecretCreationFailedError(
                    secret_request.name,
                    stage,
                    repository=request.repo_fullname
                ) from e
            secret_ids.append(secret.id)

        logger.info(f"Created {len(secret_ids)} secrets for spotguide: {request.repo_fullname}")
        return secret_ids

    def _create_repository(
        self,
        request: LaunchRequest,
        source: SpotguideRepo,
        github_login: Optional[str],
        stage: LaunchStage
    ) -> str:
        owner, name = request.repo_organization, request.repo_name
        step = "create repository"

        try:
            # A repository in the user's own account is created through /user/repos.
            repository = self.github.create_repository(
                owner,
                name,
                REPOSITORY_DESCRIPTION,
                user_owned=github_login is not None and github_login == owner
            )
            branch = repository.get('default_branch') or 'master'
            logger.info(f"Created spotguide repository: {request.repo_fullname}")

            # The git data API can't build a tree in a repository without commits.
            step = "initialize repository"
            seed = self.github.create_file(owner, name, 'README.md', INITIAL_README, INITIAL_COMMIT_MESSAGE)
            parent = seed['commit']

            step = "prepare spotguide content"
            entries = self.materializer.materialize(source.name, request)

            step = "create git tree"
            tree = self.github.create_tree(
                owner,
                name,
                [self._tree_item(owner, name, entry) for entry in entries],
                base_tree=parent['tree']['sha']
            )

            step = "create git commit"
            commit = self.github.create_commit(owner, name, SPOTGUIDE_COMMIT_MESSAGE, tree['sha'], [parent['sha']])

            step = "update git ref"
            ref = self.github.get_ref(owner, name, f'heads/{branch}')
            ref_name = ref['ref'][len('refs/'):] if ref['ref'].startswith('refs/') else ref['ref']
            self.github.update_ref(owner, name, ref_name, commit['sha'], force=False)

        except (UpstreamAPIError, ContentExtractionError, KeyError) as e:
            raise RepositoryCreationFailedError(
                f"Failed to {step} for spotguide repository {request.repo_fullname}",
                stage,
                repository=request.repo_fullname,
                step=step
            ) from e

        logger.info(f"Pushed spotguide content of {source.name} to {request.repo_fullname}")
        return commit['sha']

    def _tree_item(self, owner: str, name: str, entry: TreeEntry) -> Dict[str, str]:
        item = {'path': entry.path, 'mode': entry.mode, 'type': entry.type}
        try:
            item['content'] = entry.content.decode('utf-8')
        except UnicodeDecodeError:
            # binary files can't be sent inline
            item['sha'] = self.github.create_blob(owner, name, entry.content)
        return item

    def _enable_ci(self, request: LaunchRequest, stage: LaunchStage) -> None:
        try:
            self.drone.list_repos(sync=True, flush=True)
        except UpstreamAPIError as e:
            raise CIEnableFailedError(
                "Failed to sync Drone repositories",
                stage,
                repository=request.repo_fullname
            ) from e

        try:
            self.drone.activate_repo(request.repo_organization, request.repo_name)
        except UpstreamAPIError as e:
            raise CIEnableFailedError(
                f"Failed to enable Drone repository {request.repo_fullname}",
                stage,
                repository=request.repo_fullname
            ) from e

        logger.info(f"Enabled CI for spotguide repository: {request.repo_fullname}")
