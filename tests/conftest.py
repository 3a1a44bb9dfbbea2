"""
Pytest configuration and fixtures for tenant onboarding tests.
"""
import os
import sys
from types import SimpleNamespace

import pytest
import fakeredis
from google.api_core.exceptions import AlreadyExists, NotFound

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['APP_ENV'] = 'testing'

from onboarding.app import create_app
from onboarding.registry import TenantRegistryClient
from provisioner.feed import ChangeFeedReader
from provisioner.reactor import ProvisioningReactor
from provisioner.stack_manager import StackManagerClient
from shared.config import TestingConfig


class FakeOperation:
    def __init__(self, value=None):
        self.value = value

    def result(self, timeout=None):
        return self.value


class FakeConfigClient:
    """Records Infrastructure Manager deployments in memory."""

    def __init__(self):
        self.deployments = {}
        self.create_calls = []
        self.delete_calls = []
        # Raised, in order, by the next create_deployment calls
        self.create_failures = []

    def create_deployment(self, parent=None, deployment=None, deployment_id=None, timeout=None):
        self.create_calls.append(deployment_id)
        if self.create_failures:
            raise self.create_failures.pop(0)
        name = f"{parent}/deployments/{deployment_id}"
        if name in self.deployments:
            raise AlreadyExists(f"Deployment {name} already exists")
        self.deployments[name] = deployment
        return FakeOperation(deployment)

    def delete_deployment(self, request=None, timeout=None):
        self.delete_calls.append(request.name)
        if request.name not in self.deployments:
            raise NotFound(f"Deployment {request.name} not found")
        del self.deployments[request.name]
        return FakeOperation()

    def get_deployment(self, name=None, timeout=None):
        if name not in self.deployments:
            raise NotFound(f"Deployment {name} not found")
        return SimpleNamespace(state=SimpleNamespace(name='ACTIVE'))


@pytest.fixture
def redis_client():
    """Fresh in-memory Redis per test."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def registry(redis_client):
    return TenantRegistryClient(redis_client, TestingConfig.TABLE_NAME)


@pytest.fixture
def app(registry):
    """Create application for testing."""
    return create_app('testing', registry=registry)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def config_client():
    return FakeConfigClient()


@pytest.fixture
def stack_manager(config_client):
    return StackManagerClient(
        project_id=TestingConfig.GCP_PROJECT_ID,
        region=TestingConfig.GCP_REGION,
        template_url=TestingConfig.TEMPLATE_URL,
        service_account=TestingConfig.STACK_SERVICE_ACCOUNT,
        client=config_client
    )


@pytest.fixture
def reactor(stack_manager):
    return ProvisioningReactor(stack_manager)


@pytest.fixture
def feed(registry):
    return ChangeFeedReader(
        registry.stream,
        group=TestingConfig.FEED_CONSUMER_GROUP,
        consumer=TestingConfig.FEED_CONSUMER_NAME,
        batch_size=10,
        block_ms=0,
        claim_idle_ms=60000
    )


@pytest.fixture
def tenant_image():
    """A registry record image as carried by change events."""
    return {
        'tenant_id': '5f0c7c1e-2d7e-4c43-9a59-1f5a3c2b7d10',
        'tenant_name': 'tenant-acme co',
        'description': 'demo'
    }
