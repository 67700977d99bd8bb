# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the backend services with mocked MongoDB and Redis.
"""

import time
import pytest
from unittest.mock import Mock, MagicMock
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from helpline.middleware.error_handler import (
    AuthenticationException,
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from helpline.models.entities import User, UserContext
from helpline.models.enums import AuthProvider, Domain
from helpline.models.requests import (
    AdopterQuery,
    AdoptRequest,
    GoogleAuthRequest,
    LoginRequest,
    PasswordUpdateRequest,
    SignupRequest,
    UpdateUserRequest,
)
from helpline.services.adoptions import AdoptionService
from helpline.services.auth import TokenValidationError
from helpline.services.mongodb import id_query, serialize_document
from helpline.services.redis import RedisService
from helpline.services.users import UserService


@pytest.fixture
def mongodb():
    return MagicMock()


@pytest.fixture
def user_service(mongodb, auth_service):
    return UserService(mongodb, auth_service)


@pytest.fixture
def case_document():
    return {
        "_id": ObjectId(),
        "patientName": "Ahmed",
        "estimatedCost": 500000,
        "hospitalAddress": "Karachi",
        "status": "available"
    }


class TestMongoHelpers:

    def test_id_query_for_object_id(self):
        oid = ObjectId()
        query = id_query(str(oid))
        assert {"_id": oid} in query["$or"]
        assert {"id": str(oid)} in query["$or"]

    def test_id_query_for_numeric_id(self):
        assert {"id": 7} in id_query("7")["$or"]

    def test_serialize_document(self, case_document):
        document = serialize_document(dict(case_document, nested={"ref": case_document["_id"]}))
        assert document["_id"] == str(case_document["_id"])
        assert document["nested"]["ref"] == str(case_document["_id"])


class TestAuthService:

    def test_password_hashing(self, auth_service):
        hashed = auth_service.hash_password("secret123")
        assert auth_service.verify_password("secret123", hashed) is True
        assert auth_service.verify_password("wrong", hashed) is False
        assert auth_service.verify_password("secret123", None) is False
        assert auth_service.verify_password("secret123", "not-a-hash") is False

    def test_tokens(self, auth_service, stored_user):
        tokens = auth_service.generate_tokens(stored_user)

        payload = auth_service.validate_token(tokens["access_token"], "access")
        assert payload["sub"] == stored_user.id
        assert payload["email"] == stored_user.email
        assert auth_service.extract_token_id(tokens["access_token"]) == payload["jti"]

        with pytest.raises(TokenValidationError):
            auth_service.validate_token(tokens["refresh_token"], "access")

    def test_garbage_token(self, auth_service):
        with pytest.raises(TokenValidationError):
            auth_service.validate_token("garbage")
        with pytest.raises(TokenValidationError):
            auth_service.extract_token_id("garbage")


class TestRedisService:

    def test_block_token(self):
        client = Mock()
        client.setex.return_value = True
        client.exists.return_value = 1
        service = RedisService(client=client)

        assert service.block_token("jti-1", int(time.time()) + 60) is True
        key, ttl, value = client.setex.call_args.args
        assert key == "helpline:blocklist:jwt:jti-1"
        assert 0 < ttl <= 60
        assert service.is_token_blocked("jti-1") is True

    def test_expired_token_not_stored(self):
        client = Mock()
        service = RedisService(client=client)
        assert service.block_token("jti-1", int(time.time()) - 10) is True
        client.setex.assert_not_called()

    def test_unavailable(self):
        service = RedisService(client=Mock())
        service.client = None
        assert service.is_available() is False
        assert service.set("k", "v") is False
        assert service.get("k") is None
        assert service.is_token_blocked("jti") is False


class TestUserService:
    """Signup, login and Google sign-in."""

    def test_signup(self, user_service, mongodb):
        mongodb.users.find_one.return_value = None

        user = user_service.signup(SignupRequest(name="Ana", email="ana@example.com", password="secret123"))

        document = mongodb.users.insert_one.call_args.args[0]
        assert document["_id"] == ObjectId(user.id)
        assert document["email"] == "ana@example.com"
        assert document["passwordHash"] != "secret123"

    def test_signup_duplicate(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.return_value = stored_user.to_document()
        with pytest.raises(ConflictException):
            user_service.signup(SignupRequest(name="Ana", email=stored_user.email, password="secret123"))

    def test_signup_race_on_unique_index(self, user_service, mongodb):
        mongodb.users.find_one.return_value = None
        mongodb.users.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(ConflictException):
            user_service.signup(SignupRequest(name="Ana", email="ana@example.com", password="secret123"))

    def test_authenticate(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.return_value = stored_user.to_document()
        user = user_service.authenticate(LoginRequest(email=stored_user.email, password="secret123"))
        assert user.id == stored_user.id

    @pytest.mark.parametrize("password", ["wrong-password", "secret1234"])
    def test_authenticate_wrong_password(self, user_service, mongodb, stored_user, password):
        mongodb.users.find_one.return_value = stored_user.to_document()
        with pytest.raises(AuthenticationException) as exc_info:
            user_service.authenticate(LoginRequest(email=stored_user.email, password=password))
        assert exc_info.value.message == "Invalid email or password"

    def test_authenticate_unknown_email(self, user_service, mongodb):
        mongodb.users.find_one.return_value = None
        with pytest.raises(AuthenticationException):
            user_service.authenticate(LoginRequest(email="nobody@example.com", password="x"))

    def test_authenticate_google_account(self, user_service, mongodb):
        google_user = User(email="g@example.com", name="G", auth_provider=AuthProvider.GOOGLE)
        mongodb.users.find_one.return_value = google_user.to_document()
        with pytest.raises(AuthenticationException) as exc_info:
            user_service.authenticate(LoginRequest(email="g@example.com", password="x"))
        assert "Google" in exc_info.value.message

    def test_authenticate_inactive(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.return_value = dict(stored_user.to_document(), isActive=False)
        with pytest.raises(AuthorizationException):
            user_service.authenticate(LoginRequest(email=stored_user.email, password="secret123"))

    def test_google_login_creates_account(self, user_service, mongodb):
        mongodb.users.find_one.return_value = None

        user, created = user_service.google_login(
            GoogleAuthRequest.model_validate({"email": "g@example.com", "picture": "http://p", "googleId": "g-1"})
        )

        assert created is True
        assert user.name == "Google User"
        assert user.avatar == "http://p"
        assert user.auth_provider == AuthProvider.GOOGLE
        mongodb.users.insert_one.assert_called_once()

    def test_google_login_links_email_account(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.side_effect = [None, stored_user.to_document()]

        user, created = user_service.google_login(
            GoogleAuthRequest.model_validate({"email": stored_user.email, "name": "Sara", "googleId": "g-1"})
        )

        assert created is False
        assert user.id == stored_user.id
        assert user.google_id == "g-1"
        assert user.password_hash is None
        update = mongodb.users.update_one.call_args.args[1]
        assert update["$set"]["googleId"] == "g-1"
        assert update["$unset"] == {"passwordHash": ""}

    def test_get_user_not_found(self, user_service, mongodb):
        mongodb.users.find_one.return_value = None
        with pytest.raises(NotFoundException):
            user_service.get_user(str(ObjectId()))

    def test_update_user(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.return_value = stored_user.to_document()

        user = user_service.update_user(
            stored_user.id, UpdateUserRequest(name="Sara Khan", isActive=False)
        )

        assert user.name == "Sara Khan"
        assert user.is_active is False
        assert user.updated_at > stored_user.updated_at
        update = mongodb.users.update_one.call_args.args[1]
        assert update["$set"] == {"name": "Sara Khan", "isActive": False, "updatedAt": user.updated_at}

    def test_update_user_same_email_is_not_a_clash(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.return_value = stored_user.to_document()

        user_service.update_user(stored_user.id, UpdateUserRequest(email="SPONSOR@example.com"))

        mongodb.users.find_one.assert_called_once()
        mongodb.users.update_one.assert_called_once()

    def test_update_user_unique_index_race(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.side_effect = [stored_user.to_document(), None]
        mongodb.users.update_one.side_effect = DuplicateKeyError("dup")

        with pytest.raises(ConflictException):
            user_service.update_user(stored_user.id, UpdateUserRequest(email="new@example.com"))

    def test_update_password_google_account(self, user_service, mongodb):
        google_user = User(email="g@example.com", name="G", auth_provider=AuthProvider.GOOGLE, google_id="g-1")
        mongodb.users.find_one.return_value = google_user.to_document()

        with pytest.raises(AuthenticationException) as exc_info:
            user_service.update_password(
                google_user.id, PasswordUpdateRequest(currentPassword="anything", newPassword="secret123")
            )
        assert exc_info.value.message == "Current password is incorrect"
        mongodb.users.update_one.assert_not_called()

    def test_delete_user(self, user_service, mongodb, stored_user):
        mongodb.users.find_one.return_value = stored_user.to_document()

        assert user_service.delete_user(stored_user.id).id == stored_user.id
        mongodb.users.delete_one.assert_called_once_with({"_id": ObjectId(stored_user.id)})


class TestAdoptionService:
    """Case listing, adopt and unadopt."""

    @pytest.fixture
    def users(self, stored_user):
        users = Mock(spec=UserService)
        users.find_by_email.return_value = stored_user
        users.resolve.return_value = stored_user
        return users

    @pytest.fixture
    def service(self, mongodb, users):
        return AdoptionService(mongodb, users)

    def test_list_cases(self, service, mongodb, case_document):
        mongodb.cases.return_value.find.return_value.sort.return_value = [case_document]

        cases = service.list_cases(Domain.HEALTH)

        mongodb.cases.assert_called_with(Domain.HEALTH)
        assert cases[0]["_id"] == str(case_document["_id"])

    def test_get_case_not_found(self, service, mongodb):
        mongodb.cases.return_value.find_one.return_value = None
        with pytest.raises(NotFoundException):
            service.get_case(Domain.HEALTH, "missing")

    def test_adopt(self, service, mongodb, case_document, stored_user):
        cases = mongodb.cases.return_value
        cases.find_one.return_value = case_document
        cases.update_one.return_value = Mock(matched_count=1)

        record = service.adopt(
            Domain.HEALTH, str(case_document["_id"]), AdoptRequest(email=stored_user.email)
        )

        assert record["opportunityId"] == str(case_document["_id"])
        assert record["name"] == "Ahmed"
        assert record["location"] == "Karachi"
        assert record["amountNeeded"] == 500000
        assert record["sponsorEmail"] == stored_user.email
        assert record["userId"] == stored_user.id

        claim_filter, claim_update = cases.update_one.call_args.args
        assert claim_filter["adopted"] == {"$ne": True}
        assert claim_update["$set"]["adoptedBy"] == stored_user.id
        inserted = mongodb.sponsorships.insert_one.call_args.args[0]
        assert inserted["domain"] == "health"
        assert inserted["userId"] == stored_user.id

    def test_adopt_requires_email(self, service):
        with pytest.raises(ValidationException):
            service.adopt(Domain.HEALTH, "1", AdoptRequest())

    def test_adopt_unknown_user(self, service, users):
        users.find_by_email.return_value = None
        with pytest.raises(NotFoundException):
            service.adopt(Domain.HEALTH, "1", AdoptRequest(email="nobody@example.com"))

    def test_adopt_with_other_users_token(self, service, stored_user):
        acting = UserContext(user_id="someone-else", email="else@example.com")
        with pytest.raises(AuthorizationException):
            service.adopt(Domain.HEALTH, "1", AdoptRequest(email=stored_user.email), acting)

    def test_adopt_already_adopted(self, service, mongodb, case_document, stored_user):
        mongodb.cases.return_value.find_one.return_value = dict(case_document, adopted=True)
        with pytest.raises(ConflictException):
            service.adopt(Domain.HEALTH, str(case_document["_id"]), AdoptRequest(email=stored_user.email))
        mongodb.sponsorships.insert_one.assert_not_called()

    def test_adopt_lost_race(self, service, mongodb, case_document, stored_user):
        cases = mongodb.cases.return_value
        cases.find_one.return_value = case_document
        cases.update_one.return_value = Mock(matched_count=0)

        with pytest.raises(ConflictException) as exc_info:
            service.adopt(Domain.HEALTH, str(case_document["_id"]), AdoptRequest(email=stored_user.email))

        assert exc_info.value.message == "This item has already been adopted"
        mongodb.sponsorships.insert_one.assert_not_called()

    def test_adopt_duplicate_sponsorship_releases_case(self, service, mongodb, case_document, stored_user):
        cases = mongodb.cases.return_value
        cases.find_one.return_value = case_document
        cases.update_one.return_value = Mock(matched_count=1)
        mongodb.sponsorships.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(ConflictException):
            service.adopt(Domain.HEALTH, str(case_document["_id"]), AdoptRequest(email=stored_user.email))

        release_filter, release_update = cases.update_one.call_args.args
        assert release_filter == {"_id": case_document["_id"]}
        assert release_update["$set"]["adopted"] is False

    def test_adopt_failed_sponsorship_write_releases_case(self, service, mongodb, case_document, stored_user):
        cases = mongodb.cases.return_value
        cases.find_one.return_value = case_document
        cases.update_one.return_value = Mock(matched_count=1)
        mongodb.sponsorships.insert_one.side_effect = ServerSelectionTimeoutError("no primary")

        with pytest.raises(ServerSelectionTimeoutError):
            service.adopt(Domain.HEALTH, str(case_document["_id"]), AdoptRequest(email=stored_user.email))

        assert cases.update_one.call_count == 2
        release_filter, release_update = cases.update_one.call_args.args
        assert release_filter == {"_id": case_document["_id"]}
        assert release_update["$set"]["status"] == "available"
        assert "adoptedBy" in release_update["$unset"]

    def test_unadopt(self, service, mongodb, case_document, stored_user):
        cases = mongodb.cases.return_value
        cases.find_one.return_value = case_document
        mongodb.sponsorships.delete_one.return_value = Mock(deleted_count=1)

        service.unadopt(Domain.HEALTH, str(case_document["_id"]), AdopterQuery(email=stored_user.email))

        assert mongodb.sponsorships.delete_one.call_args.args[0] == {
            "opportunityId": str(case_document["_id"]),
            "domain": "health",
            "userId": stored_user.id
        }
        update = cases.update_one.call_args.args[1]
        assert update["$set"]["status"] == "available"
        assert "adoptedBy" in update["$unset"]

    def test_unadopt_without_sponsorship(self, service, mongodb, case_document, stored_user):
        mongodb.cases.return_value.find_one.return_value = case_document
        mongodb.sponsorships.delete_one.return_value = Mock(deleted_count=0)

        with pytest.raises(NotFoundException):
            service.unadopt(Domain.HEALTH, str(case_document["_id"]), AdopterQuery(email=stored_user.email))
        mongodb.cases.return_value.update_one.assert_not_called()

    def test_unadopt_requires_identity(self, service):
        with pytest.raises(ValidationException):
            service.unadopt(Domain.HEALTH, "1", AdopterQuery())

    def test_my_adoptions(self, service, mongodb, stored_user):
        sponsorship = {
            "_id": ObjectId(),
            "opportunityId": "c1",
            "domain": "welfare",
            "sponsorEmail": stored_user.email,
            "userId": stored_user.id,
            "name": "Clean water",
            "totalAmount": 75000.0,
        }
        mongodb.sponsorships.find.return_value.sort.return_value = [sponsorship]

        records = service.list_user_sponsorships(Domain.WELFARE, AdopterQuery(userId=stored_user.id))

        assert mongodb.sponsorships.find.call_args.args[0] == {"domain": "welfare", "userId": stored_user.id}
        assert records[0]["opportunityId"] == "c1"
        assert records[0]["id"] == str(sponsorship["_id"])

    def test_my_adoptions_unknown_user(self, service, users):
        users.resolve.return_value = None
        assert service.list_user_sponsorships(Domain.HEALTH, AdopterQuery(phone="123")) == []

    def test_my_adoptions_requires_identity(self, service):
        with pytest.raises(ValidationException) as exc_info:
            service.list_user_sponsorships(Domain.HEALTH, AdopterQuery())
        assert exc_info.value.message == "userId, email or phone is required"

    def test_release_user_sponsorships(self, service, mongodb, case_document, stored_user):
        mongodb.sponsorships.find.return_value = [
            {"opportunityId": str(case_document["_id"]), "domain": "health", "userId": stored_user.id},
            {"opportunityId": "gone", "domain": "welfare", "userId": stored_user.id},
        ]
        mongodb.cases.return_value.find_one.side_effect = [case_document, None]

        assert service.release_user_sponsorships(stored_user.id) == 2

        mongodb.cases.return_value.update_one.assert_called_once()
        assert mongodb.cases.return_value.update_one.call_args.args[0] == {"_id": case_document["_id"]}
        mongodb.sponsorships.delete_many.assert_called_once_with({"userId": stored_user.id})
