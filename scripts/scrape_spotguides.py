#!/usr/bin/env python3
"""Sync the spotguide catalog with GitHub without going through the queue."""
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cloudpipe.app import create_app
from cloudpipe.db import db
from cloudpipe.exceptions import ServiceException
from cloudpipe.services.github_client import GithubClient
from cloudpipe.services.spotguide_service import SpotguideScraper


def main():
    if len(sys.argv) > 2:
        print("Usage: python scrape_spotguides.py [github_organization]")
        sys.exit(1)

    app = create_app()
    organization = sys.argv[1] if len(sys.argv) == 2 else app.config['SPOTGUIDE_GITHUB_ORGANIZATION']

    with app.app_context():
        github = GithubClient(
            app.config['GITHUB_TOKEN'],
            base_url=app.config['GITHUB_API_URL'],
            timeout=app.config['HTTP_TIMEOUT']
        )
        try:
            names = SpotguideScraper(github, db.session, organization=organization).scrape()
        except ServiceException as e:
            cause = f" ({e.__cause__})" if e.__cause__ else ""
            print(f"Error: {e}{cause}")
            sys.exit(1)

    print(f"Synced {len(names)} spotguides from {organization}:")
    for name in names:
        print(f"  {name}")


if __name__ == '__main__':
    main()
