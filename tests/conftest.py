import json
import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')

import fakeredis
import jwt
import pytest

from cloudpipe.app import create_app
from cloudpipe.db import db
from cloudpipe.db.models.cluster import ClusterRecord, ClusterStatus

from fakes import FakeDrone, FakeGithub

JWT_SECRET = 'test-secret'


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'JWT_SECRET_KEY': JWT_SECRET,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def github():
    return FakeGithub()


@pytest.fixture
def drone():
    return FakeDrone()


@pytest.fixture
def redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture
def make_token():
    def _make_token(organisation_id=1, role='dev', **claims):
        payload = {'user_id': 1, 'organisation_id': organisation_id, 'role': role, **claims}
        return jwt.encode(payload, JWT_SECRET, algorithm='HS256')
    return _make_token


@pytest.fixture
def add_cluster(session):
    def _add_cluster(name, organisation_id=1, cloud='amazon', config=None, secret_id=None, **fields):
        if config is None:
            config = {'region': 'eu-west-1'}
        record = ClusterRecord(
            organisation_id=organisation_id,
            name=name,
            cloud=cloud,
            config=config if isinstance(config, str) else json.dumps(config),
            secret_id=secret_id,
            status=fields.pop('status', ClusterStatus.RUNNING.value),
            **fields
        )
        session.add(record)
        session.commit()
        return record
    return _add_cluster
