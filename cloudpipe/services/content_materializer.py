import io
import logging
import zipfile
import zlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Sequence

import yaml

from cloudpipe.exceptions import (
    ContentExtractionError,
    DownloadFailedError,
    SourceReleaseNotFoundError,
    UpstreamAPIError,
)
from cloudpipe.services.github_client import GithubClient
from cloudpipe.services.spotguide_service import PIPELINE_YAML_PATH

if TYPE_CHECKING:
    from cloudpipe.services.launch_service import LaunchRequest

logger = logging.getLogger(__name__)

SPOTGUIDE_RELEASE_TAG = "spotguide"

FILE_MODE = "100644"
EXECUTABLE_MODE = "100755"


@dataclass(frozen=True)
class TreeEntry:
    path: str
    content: bytes
    mode: str = FILE_MODE
    type: str = "blob"


def prepare_pipeline_yaml(content: bytes, secret_names: Sequence[str]) -> bytes:
    """
    Add the given secrets to every step of a pipeline descriptor.
    Secrets a step already lists are not repeated.
    """
    names = list(dict.fromkeys(secret_names))
    if not names:
        return content

    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ContentExtractionError(f"Failed to parse {PIPELINE_YAML_PATH}", path=PIPELINE_YAML_PATH) from e

    if not isinstance(document, dict) or 'pipeline' not in document:
        raise ContentExtractionError(f"{PIPELINE_YAML_PATH} has no pipeline section", path=PIPELINE_YAML_PATH)

    pipeline = document['pipeline']
    if isinstance(pipeline, dict):
        steps = list(pipeline.values())
    elif isinstance(pipeline, list):
        steps = pipeline
    else:
        raise ContentExtractionError(f"{PIPELINE_YAML_PATH} pipeline section is malformed", path=PIPELINE_YAML_PATH)

    for step in steps:
        if not isinstance(step, dict):
            raise ContentExtractionError(f"{PIPELINE_YAML_PATH} has a malformed step", path=PIPELINE_YAML_PATH)
        secrets = step.get('secrets') or []
        if not isinstance(secrets, list):
            raise ContentExtractionError(f"{PIPELINE_YAML_PATH} step secrets must be a list", path=PIPELINE_YAML_PATH)
        step['secrets'] = secrets + [name for name in names if name not in secrets]

    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False).encode('utf-8')


def extract_archive(data: bytes, secret_names: Sequence[str] = ()) -> List[TreeEntry]:
    """
    Turn a source archive into tree entries.
    The archive's wrapper folder is stripped, so `repo-abc123/a/b.txt`
    becomes `a/b.txt`.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ContentExtractionError("Failed to extract source spotguide repository release") from e

    entries = []
    seen = set()
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue

            parts = info.filename.split('/', 1)
            if len(parts) < 2 or not parts[1]:
                raise ContentExtractionError(
                    f"Archive member {info.filename} is outside of the archive root",
                    path=info.filename
                )
            path = parts[1]
            if any(segment in ('', '.', '..') for segment in path.split('/')):
                raise ContentExtractionError(f"Archive member {info.filename} has an invalid path", path=path)

            if path in seen:
                raise ContentExtractionError(f"Archive contains {path} more than once", path=path)
            seen.add(path)

            try:
                content = archive.read(info)
            except (zipfile.BadZipFile, zlib.error) as e:
                raise ContentExtractionError(f"Failed to extract {path}", path=path) from e

            if path == PIPELINE_YAML_PATH:
                content = prepare_pipeline_yaml(content, secret_names)

            executable = (info.external_attr >> 16) & 0o111
            entries.append(TreeEntry(
                path=path,
                content=content,
                mode=EXECUTABLE_MODE if executable else FILE_MODE
            ))

    return entries


class ContentMaterializer:
    """Produces the files of a new spotguide repository from the template's release archive."""

    def __init__(self, github: GithubClient):
        self.github = github

    def materialize(self, source_repo_name: str, request: 'LaunchRequest') -> List[TreeEntry]:
        owner, _, name = source_repo_name.partition('/')
        if not owner or not name:
            raise ContentExtractionError(f"Invalid spotguide repository name: {source_repo_name}")

        try:
            release = self.github.get_release_by_tag(owner, name, SPOTGUIDE_RELEASE_TAG)
        except UpstreamAPIError as e:
            if e.not_found:
                raise SourceReleaseNotFoundError(source_repo_name, SPOTGUIDE_RELEASE_TAG) from e
            raise

        url = release.get('zipball_url')
        if not url:
            raise DownloadFailedError(source_repo_name, url)

        logger.debug(f"Downloading {source_repo_name} release archive from {url}")
        try:
            data = self.github.download(url)
        except UpstreamAPIError as e:
            raise DownloadFailedError(source_repo_name, url) from e

        entries = extract_archive(data, [secret.name for secret in request.secrets])
        logger.info(f"Prepared {len(entries)} files from {source_repo_name}")
        return entries
