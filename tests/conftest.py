import datetime

import pytest

from app import create_app
from app.extensions import db
from app.models.user import User, ROLE_ADMIN, ROLE_USER
from app.models.tour import Tour
from app.models.equipment import Material
from config import TestingConfig

PASSWORD = 'secret123'
NOW = datetime.datetime(2030, 6, 1, 12, 0, 0)


def _make_app(tmp_path, database_uri):
    class LocalTestingConfig(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')
        SQLALCHEMY_DATABASE_URI = database_uri

    app = create_app(LocalTestingConfig)
    with app.app_context():
        db.create_all()
    return app


def _teardown(app):
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def app(tmp_path):
    app = _make_app(tmp_path, 'sqlite://')
    yield app
    _teardown(app)


@pytest.fixture
def file_app(tmp_path):
    """File-backed database, so separate sessions get separate connections."""
    app = _make_app(tmp_path, f"sqlite:///{tmp_path / 'alpine.db'}")
    yield app
    _teardown(app)


@pytest.fixture
def ctx(app):
    """App context for calling the services directly."""
    with app.app_context():
        yield


def make_user(name, email, role=ROLE_USER):
    user = User(name=name, email=email, role=role, birth_date=datetime.date(1990, 5, 17))
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


def make_tour(**overrides):
    values = dict(
        title='Sunrise on the Zugspitze',
        location='Garmisch-Partenkirchen',
        description='Early start, via ferrata to the summit and breakfast at the top.',
        start_date=NOW + datetime.timedelta(days=7),
        end_date=NOW + datetime.timedelta(days=7, hours=10),
        registration_deadline=NOW + datetime.timedelta(days=1),
        participant_limit=2,
        participant_count=0,
        duration='10h',
        elevation_gain=1200,
        fee=25.0,
    )
    values.update(overrides)
    tour = Tour(**values)
    db.session.add(tour)
    db.session.commit()
    return tour


def make_material(**overrides):
    values = dict(name='Climbing Rope', description='60m dynamic rope.', quantity_available=5, price=5.0)
    values.update(overrides)
    material = Material(**values)
    db.session.add(material)
    db.session.commit()
    return material


@pytest.fixture
def admin(ctx):
    return make_user('Hanna Admin', 'admin@example.com', role=ROLE_ADMIN)


@pytest.fixture
def alice(ctx):
    return make_user('Alice Huber', 'alice@example.com')


@pytest.fixture
def bob(ctx):
    return make_user('Bob Gruber', 'bob@example.com')


@pytest.fixture
def carol(ctx):
    return make_user('Carol Steiner', 'carol@example.com')


@pytest.fixture
def accounts(app):
    """Users created outside any long-lived context, for HTTP tests."""
    with app.app_context():
        return {
            'admin': make_user('Hanna Admin', 'admin@example.com', role=ROLE_ADMIN).id,
            'alice': make_user('Alice Huber', 'alice@example.com').id,
            'bob': make_user('Bob Gruber', 'bob@example.com').id,
            'carol': make_user('Carol Steiner', 'carol@example.com').id,
        }


@pytest.fixture
def login(app):
    def _login(email, password=PASSWORD):
        client = app.test_client()
        resp = client.post('/login', json={'email': email, 'password': password})
        assert resp.status_code == 200, resp.get_json()
        return client
    return _login
