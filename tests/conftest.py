import pytest
from fastapi.testclient import TestClient

from csp_headers.main import create_app
from csp_headers.schemas.policy import HeaderPolicy


@pytest.fixture
def policy():
    return HeaderPolicy()


@pytest.fixture
def app(policy):
    return create_app(policy)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
