import pytest

from config import TestingConfig
from models import db
from ping_pong_web import create_app
from repository import SQLAlchemyRepository


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def repository(app):
    return SQLAlchemyRepository(db.session)
