"""Pytest configuration and fixtures."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from controller.api.endpoints import get_controller
from controller.api.main import app
from controller.fee_controller import FeeController
from controller.protocol.memory import InMemoryProtocol
from tests.helpers import Deployment, make_deployment


@pytest.fixture
def deployment() -> Deployment:
    """Controller owning an in-memory factory with three pools that have accrued fees."""
    return make_deployment()


@pytest.fixture
def controller(deployment: Deployment) -> FeeController:
    return deployment.controller


@pytest.fixture
def protocol(deployment: Deployment) -> InMemoryProtocol:
    return deployment.protocol


@pytest.fixture
def pools(deployment: Deployment) -> list[str]:
    return deployment.pools


@pytest.fixture
def client(controller: FeeController) -> Iterator[TestClient]:
    """Test client for the API with the deployment's controller injected."""
    app.dependency_overrides[get_controller] = lambda: controller
    yield TestClient(app)
    app.dependency_overrides.clear()
