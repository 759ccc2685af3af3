import logging
from typing import Any, Dict, List, Optional

import requests

from cloudpipe.exceptions import UpstreamAPIError

logger = logging.getLogger(__name__)


class DroneClient:
    """Talks to the Drone CI API on behalf of the calling user."""

    def __init__(self, base_url: str, token: str, timeout: float = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers['Authorization'] = f'Bearer {token}'

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise UpstreamAPIError(
                f"Drone API returned {status} for {method} {path}",
                status=status,
                url=url
            ) from e
        except requests.exceptions.RequestException as e:
            raise UpstreamAPIError(f"Drone request failed: {method} {path}", url=url) from e
        return response

    def list_repos(self, sync: bool = True, flush: bool = True) -> List[Dict[str, Any]]:
        """Lists the user's repositories, syncing Drone's view with the source host first."""
        params = {'all': str(sync).lower(), 'flush': str(flush).lower()}
        return self._request('GET', '/api/user/repos', params=params).json()

    def activate_repo(self, owner: str, name: str) -> Dict[str, Any]:
        logger.debug(f"Activating Drone repository {owner}/{name}")
        return self._request('POST', f'/api/repos/{owner}/{name}').json()
