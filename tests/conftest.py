# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from unittest.mock import Mock, MagicMock
from bson import ObjectId

from helpline.client.session import UserSession
from helpline.client.storage import MemoryStore, USER_KEY, ACCESS_TOKEN_KEY
from helpline.client.transport import AdoptionApiClient
from helpline.domain.envelopes import ListEnvelope
from helpline.models.entities import User
from helpline.models.enums import AuthProvider
from helpline.services.auth import AuthService, generate_dev_key_pair

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'


@pytest.fixture(scope="session")
def key_pair():
    """RSA key pair shared by every test, generation is slow."""
    return generate_dev_key_pair()


@pytest.fixture
def auth_service(key_pair):
    """JWT service with a low bcrypt cost."""
    private_key, public_key = key_pair
    return AuthService(private_key, public_key, bcrypt_rounds=4)


@pytest.fixture
def sample_user_data():
    """Stored session user."""
    return {
        "id": str(ObjectId()),
        "email": "sponsor@example.com",
        "name": "Sara Sponsor",
        "phone": "+92 300 1234567"
    }


@pytest.fixture
def store(sample_user_data):
    """Local store holding a signed-in user."""
    return MemoryStore({USER_KEY: sample_user_data, ACCESS_TOKEN_KEY: "access-token"})


@pytest.fixture
def session(store):
    return UserSession(store)


@pytest.fixture
def anonymous_session():
    """Session of a user without an email on file."""
    return UserSession(MemoryStore({USER_KEY: {"id": "u-1", "name": "No Email"}}))


@pytest.fixture
def transport():
    """Transport double; every my-adoptions call returns an empty list by default."""
    mock = Mock(spec=AdoptionApiClient)
    mock.my_adoptions.return_value = ListEnvelope(success=True, data=[], count=0)
    mock.list_cases.return_value = ListEnvelope(success=True, data=[], count=0)
    return mock


@pytest.fixture
def stored_user(auth_service):
    """Email account as the backend stores it."""
    return User(
        email="sponsor@example.com",
        name="Sara Sponsor",
        phone="+92 300 1234567",
        password_hash=auth_service.hash_password("secret123"),
        auth_provider=AuthProvider.EMAIL
    )


@pytest.fixture
def mock_services():
    """MongoDB and Redis doubles."""
    mongodb = MagicMock()
    mongodb.health_check.return_value = {"status": "healthy", "ping": True, "database": "helpline_test"}
    redis_service = MagicMock()
    redis_service.is_available.return_value = True
    redis_service.is_token_blocked.return_value = False
    redis_service.block_token.return_value = True
    return {"mongodb": mongodb, "redis": redis_service}


@pytest.fixture
def app(mock_services, auth_service):
    """Application wired to mocked services."""
    from helpline.app import create_app

    application = create_app(
        mongodb_service=mock_services["mongodb"],
        redis_service=mock_services["redis"],
        auth_service=auth_service,
        config_overrides={"ENVIRONMENT": "test", "OTEL_ENABLED": False, "TESTING": True}
    )
    return application


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def auth_headers(auth_service, stored_user):
    """Bearer header for the stored user."""
    tokens = auth_service.generate_tokens(stored_user)
    return {"Authorization": f"Bearer {tokens['access_token']}"}
