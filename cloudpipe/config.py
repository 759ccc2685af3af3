import os
from dotenv import load_dotenv


load_dotenv()


class Config:
    """Settings loaded into `app.config`; every value can be overridden from the environment."""

    DATABASE_PATH = os.getenv('DATABASE_PATH', 'db.sqlite')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', f'sqlite:///{DATABASE_PATH}')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    REDIS_HOST = os.getenv('REDIS_HOST', 'localhost')
    REDIS_PORT = int(os.getenv('REDIS_PORT', 6379))

    # Token of the service account used to scrape the spotguide catalog.
    GITHUB_TOKEN = os.getenv('GITHUB_TOKEN', '')
    GITHUB_API_URL = os.getenv('GITHUB_API_URL', 'https://api.github.com')
    SPOTGUIDE_GITHUB_ORGANIZATION = os.getenv('SPOTGUIDE_GITHUB_ORGANIZATION', 'banzaicloud')

    DRONE_URL = os.getenv('DRONE_URL', 'http://localhost:8000')

    HTTP_TIMEOUT = float(os.getenv('HTTP_TIMEOUT', 30))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
