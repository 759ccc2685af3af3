import pytest
import yaml

from cloudpipe.db.models.secret import Secret
from cloudpipe.db.models.spotguide import SpotguideRepo
from cloudpipe.exceptions import (
    CIEnableFailedError,
    RepositoryCreationFailedError,
    SecretCreationFailedError,
    TemplateNotFoundError,
    ValidationError,
)
from cloudpipe.services.content_materializer import EXECUTABLE_MODE
from cloudpipe.services.launch_service import LaunchRequest, LaunchStage, SpotguideLauncher
from cloudpipe.services.secret_service import CreateSecretRequest, SecretStore
from cloudpipe.services.spotguide_service import PIPELINE_YAML_PATH, SpotguideCatalog

TEMPLATE = 'org/template-a'

TEMPLATE_FILES = {
    'README.md': b'# Template A',
    'charts/app/Chart.yaml': b'name: app\nversion: 0.1.0\n',
    'scripts/deploy.sh': b'#!/bin/sh\nhelm upgrade --install app charts/app\n',
    PIPELINE_YAML_PATH: b"pipeline:\n  deploy:\n    image: banzaicloud/ci-pipeline-client:latest\n",
}


@pytest.fixture
def template(session, github):
    """A spotguide in the catalog with a released template archive"""
    session.add(SpotguideRepo(name=TEMPLATE, spotguide_raw=b"name: Template A\n"))
    session.commit()
    github.add_spotguide(TEMPLATE, TEMPLATE_FILES, executables={'scripts/deploy.sh'})
    return TEMPLATE


@pytest.fixture
def launcher(session, github, drone):
    return SpotguideLauncher(SpotguideCatalog(session), SecretStore(session), github, drone)


def create_request(*secret_names, spotguide_name=TEMPLATE):
    """Helper to create a launch of the template into acme/proj1"""
    return LaunchRequest(
        spotguide_name=spotguide_name,
        repo_organization='acme',
        repo_name='proj1',
        secrets=tuple(
            CreateSecretRequest(name=name, values={'value': 'hunter2'}) for name in secret_names
        )
    )


def stored_secrets(session):
    return session.query(Secret).order_by(Secret.id).all()


def test_launch_creates_secrets_repository_and_ci(session, github, drone, template, launcher):
    result = launcher.launch(create_request('DB_PASS'), organisation_id=1)

    assert result.repository == 'acme/proj1'
    assert result.stage == LaunchStage.CI_ENABLED

    secrets = stored_secrets(session)
    assert [secret.name for secret in secrets] == ['DB_PASS']
    assert secrets[0].tags == ['repo:acme/proj1']
    assert secrets[0].organisation_id == 1
    assert result.secret_ids == [secrets[0].id]

    files = github.head_files('acme/proj1')
    assert set(files) == set(TEMPLATE_FILES)
    assert files['README.md'] == TEMPLATE_FILES['README.md']
    assert files['charts/app/Chart.yaml'] == TEMPLATE_FILES['charts/app/Chart.yaml']
    pipeline = yaml.safe_load(files[PIPELINE_YAML_PATH])
    assert pipeline['pipeline']['deploy']['secrets'] == ['DB_PASS']

    assert drone.active == {'acme/proj1'}
    assert drone.calls[0] == ('list_repos', True, True)


def test_launch_commits_on_top_of_seed_commit(github, template, launcher):
    result = launcher.launch(create_request(), organisation_id=1)

    head = github.head_commit('acme/proj1')
    seed_sha = github.called('create_commit')[0][4][0]
    state = github.repositories['acme/proj1']

    assert result.commit_sha == state['head']
    assert head['message'] == 'adding spotguide structure'
    assert len(head['parents']) == 1
    assert state['commits'][head['parents'][0]]['message'] == 'initial import'
    assert seed_sha == head['parents'][0]
    # fast forward only
    assert github.called('update_ref') == [('update_ref', 'acme', 'proj1', 'heads/master', result.commit_sha, False)]


def test_launch_keeps_executable_mode(github, template, launcher):
    launcher.launch(create_request(), organisation_id=1)

    modes = github.repositories['acme/proj1']['modes']
    assert modes['scripts/deploy.sh'] == EXECUTABLE_MODE
    assert modes['README.md'] == '100644'


def test_launch_uploads_binary_files_as_blobs(github, session, launcher):
    session.add(SpotguideRepo(name=TEMPLATE, spotguide_raw=b"name: Template A\n"))
    session.commit()
    logo = b'\x89PNG\r\n\x1a\n\x00\xff\xfe'
    github.add_spotguide(TEMPLATE, {'logo.png': logo, 'README.md': b'# A'})

    launcher.launch(create_request(), organisation_id=1)

    assert len(github.called('create_blob')) == 1
    assert github.head_files('acme/proj1')['logo.png'] == logo


def test_launch_into_users_own_account(github, template, launcher):
    launcher.launch(create_request(), organisation_id=1, github_login='acme')
    assert github.called('create_repository') == [('create_repository', 'acme', 'proj1', True)]


def test_launch_into_organization(github, template, launcher):
    launcher.launch(create_request(), organisation_id=1, github_login='octocat')
    assert github.called('create_repository') == [('create_repository', 'acme', 'proj1', False)]


def test_launch_unknown_template(session, github, drone, launcher):
    with pytest.raises(TemplateNotFoundError) as excinfo:
        launcher.launch(create_request('DB_PASS', spotguide_name='org/missing'), organisation_id=1)

    assert excinfo.value.stage == LaunchStage.START
    assert excinfo.value.status_code == 404
    # nothing was created
    assert stored_secrets(session) == []
    assert github.calls == []
    assert drone.calls == []


def test_launch_stops_when_secret_exists(session, github, template, launcher):
    SecretStore(session).store(1, CreateSecretRequest(name='DB_PASS'))

    with pytest.raises(SecretCreationFailedError) as excinfo:
        launcher.launch(create_request('API_KEY', 'DB_PASS'), organisation_id=1)

    assert excinfo.value.stage == LaunchStage.START
    assert excinfo.value.context['secret'] == 'DB_PASS'
    assert isinstance(excinfo.value.__cause__, ValidationError)
    assert github.called('create_repository') == []
    # secrets created before the failure are kept
    assert [secret.name for secret in stored_secrets(session)] == ['DB_PASS', 'API_KEY']


def test_repository_failure_keeps_secrets(session, github, drone, template, launcher):
    github.fail_on.add('create_repository')

    with pytest.raises(RepositoryCreationFailedError) as excinfo:
        launcher.launch(create_request('DB_PASS'), organisation_id=1)

    assert excinfo.value.stage == LaunchStage.SECRETS_CREATED
    assert excinfo.value.context['step'] == 'create repository'
    assert [secret.name for secret in stored_secrets(session)] == ['DB_PASS']
    assert drone.calls == []


def test_missing_template_release_fails_repository_stage(session, github, drone, launcher):
    session.add(SpotguideRepo(name=TEMPLATE, spotguide_raw=b"name: Template A\n"))
    session.commit()

    with pytest.raises(RepositoryCreationFailedError) as excinfo:
        launcher.launch(create_request(), organisation_id=1)

    assert excinfo.value.context['step'] == 'prepare spotguide content'
    # the repository itself was created and is left behind
    assert 'acme/proj1' in github.repositories
    assert github.called('update_ref') == []


def test_ci_failure_after_repository(github, drone, template, launcher):
    drone.fail_on.add('activate_repo')

    with pytest.raises(CIEnableFailedError) as excinfo:
        launcher.launch(create_request(), organisation_id=1)

    assert excinfo.value.stage == LaunchStage.REPOSITORY_CREATED
    assert set(github.head_files('acme/proj1')) == set(TEMPLATE_FILES)


def test_launch_request_from_json():
    request = LaunchRequest.from_dict({
        'spotguideName': TEMPLATE,
        'repoOrganization': 'acme',
        'repoName': 'proj1',
        'secrets': [{'name': 'DB_PASS', 'values': {'password': 's3cr3t'}}]
    })

    assert request.repo_fullname == 'acme/proj1'
    assert request.secrets == (CreateSecretRequest(name='DB_PASS', values={'password': 's3cr3t'}),)


@pytest.mark.parametrize('data', [
    None,
    {'spotguideName': TEMPLATE, 'repoOrganization': 'acme'},
    {'spotguideName': TEMPLATE, 'repoOrganization': 'acme/x', 'repoName': 'proj1'},
    {'spotguideName': TEMPLATE, 'repoOrganization': 'acme', 'repoName': 'proj1', 'secrets': [{}]},
    {'spotguideName': TEMPLATE, 'repoOrganization': 42, 'repoName': 'proj1'},
    {'spotguideName': TEMPLATE, 'repoOrganization': 'acme', 'repoName': ['proj1']},
    {'spotguideName': 7, 'repoOrganization': 'acme', 'repoName': 'proj1'},
])
def test_launch_request_validation(data):
    with pytest.raises(ValidationError):
        LaunchRequest.from_dict(data)
