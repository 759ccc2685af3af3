"""Minimal GitHub REST v3 client covering what the spotguide flows need."""
import base64
import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from cloudpipe.exceptions import UpstreamAPIError

logger = logging.getLogger(__name__)

GITHUB_API_URL = 'https://api.github.com'
RAW_MEDIA_TYPE = 'application/vnd.github.raw'
# topics are only listed with this preview media type on older GitHub Enterprise versions
TOPICS_MEDIA_TYPE = 'application/vnd.github.mercy-preview+json'


class GithubClient:
    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/vnd.github+json'})
        if token:
            self.session.headers['Authorization'] = f'token {token}'

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = path if path.startswith('http') else f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise UpstreamAPIError(
                f"GitHub API returned {status} for {method} {path}",
                status=status,
                url=url
            ) from e
        except requests.exceptions.RequestException as e:
            raise UpstreamAPIError(f"GitHub request failed: {method} {path}", url=url) from e
        return response

    # Repositories

    def iter_organization_repository_pages(self, org: str, per_page: int = 100) -> Iterator[List[Dict[str, Any]]]:
        """
        Yields the repositories of an organisation page by page.
        Stops when the response carries no `next` link, so the page count is
        whatever GitHub reports.
        """
        url = f'/orgs/{org}/repos'
        params: Optional[Dict[str, Any]] = {'per_page': per_page, 'page': 1}
        while url:
            logger.debug(f"Listing repositories of {org}: {url}")
            response = self._request('GET', url, params=params, headers={'Accept': TOPICS_MEDIA_TYPE})
            yield response.json()

            next_page = response.links.get('next')
            if not next_page:
                return
            # the next link already carries the query string
            url, params = next_page['url'], None

    def iter_organization_repositories(self, org: str, per_page: int = 100) -> Iterator[Dict[str, Any]]:
        for page in self.iter_organization_repository_pages(org, per_page):
            yield from page

    def download_contents(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> bytes:
        params = {'ref': ref} if ref else None
        response = self._request(
            'GET',
            f'/repos/{owner}/{repo}/contents/{path}',
            params=params,
            headers={'Accept': RAW_MEDIA_TYPE}
        )
        return response.content

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Dict[str, Any]:
        return self._request('GET', f'/repos/{owner}/{repo}/releases/tags/{tag}').json()

    def download(self, url: str) -> bytes:
        return self._request('GET', url).content

    def create_repository(self, org: str, name: str, description: str = '', user_owned: bool = False) -> Dict[str, Any]:
        """Creates an empty repository under `org`, or under the authenticated user if `user_owned`."""
        path = '/user/repos' if user_owned else f'/orgs/{org}/repos'
        payload = {'name': name, 'description': description}
        return self._request('POST', path, json=payload).json()

    def create_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        message: str,
        branch: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = {
            'message': message,
            'content': base64.b64encode(content).decode('ascii'),
        }
        if branch:
            payload['branch'] = branch
        return self._request('PUT', f'/repos/{owner}/{repo}/contents/{path}', json=payload).json()

    # Git data

    def create_blob(self, owner: str, repo: str, content: bytes) -> str:
        payload = {'content': base64.b64encode(content).decode('ascii'), 'encoding': 'base64'}
        return self._request('POST', f'/repos/{owner}/{repo}/git/blobs', json=payload).json()['sha']

    def create_tree(
        self,
        owner: str,
        repo: str,
        entries: List[Dict[str, Any]],
        base_tree: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'tree': entries}
        if base_tree:
            payload['base_tree'] = base_tree
        return self._request('POST', f'/repos/{owner}/{repo}/git/trees', json=payload).json()

    def create_commit(self, owner: str, repo: str, message: str, tree_sha: str, parents: List[str]) -> Dict[str, Any]:
        payload = {'message': message, 'tree': tree_sha, 'parents': parents}
        return self._request('POST', f'/repos/{owner}/{repo}/git/commits', json=payload).json()

    def get_ref(self, owner: str, repo: str, ref: str) -> Dict[str, Any]:
        return self._request('GET', f'/repos/{owner}/{repo}/git/ref/{ref}').json()

    def update_ref(self, owner: str, repo: str, ref: str, sha: str, force: bool = False) -> Dict[str, Any]:
        payload = {'sha': sha, 'force': force}
        return self._request('PATCH', f'/repos/{owner}/{repo}/git/refs/{ref}', json=payload).json()
