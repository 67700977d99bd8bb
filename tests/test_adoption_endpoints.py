# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the `/api/adopt-{domain}` endpoints.
"""

import pytest
from unittest.mock import Mock
from bson import ObjectId

from helpline.middleware.error_handler import ConflictException, NotFoundException
from helpline.models.enums import Domain


@pytest.fixture
def adoption_service(app):
    """Replace the adoption service with a mock."""
    service = Mock()
    app.adoption_service = service
    return service


class TestCaseListing:
    """List, detail and my-adoptions."""

    @pytest.mark.parametrize("segment", ["health", "higher-education", "school", "welfare"])
    def test_every_domain_is_mounted(self, client, mock_services, segment):
        mock_services["mongodb"].cases.return_value.find.return_value.sort.return_value = []

        response = client.get(f"/api/adopt-{segment}")

        assert response.status_code == 200
        assert response.get_json() == {"success": True, "data": [], "count": 0}

    def test_list_serializes_documents(self, client, mock_services):
        case_id = ObjectId()
        mock_services["mongodb"].cases.return_value.find.return_value.sort.return_value = [
            {"_id": case_id, "patientName": "Ahmed", "estimatedCost": 500000}
        ]

        response = client.get("/api/adopt-health")

        data = response.get_json()
        assert data["count"] == 1
        assert data["data"][0]["_id"] == str(case_id)
        mock_services["mongodb"].cases.assert_called_with(Domain.HEALTH)

    def test_get_case(self, client, mock_services):
        case_id = ObjectId()
        mock_services["mongodb"].cases.return_value.find_one.return_value = {
            "_id": case_id, "studentName": "Bilal"
        }

        response = client.get(f"/api/adopt-school/{case_id}")

        assert response.status_code == 200
        assert response.get_json()["data"]["studentName"] == "Bilal"

    def test_get_case_not_found(self, client, mock_services):
        mock_services["mongodb"].cases.return_value.find_one.return_value = None

        response = client.get("/api/adopt-welfare/missing")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "message": "Welfare Work case not found"}

    def test_my_adoptions_requires_identity(self, client):
        response = client.get("/api/adopt-health/my-adoptions")

        assert response.status_code == 400
        body = response.get_json()
        assert body["success"] is False
        assert body["message"] == "userId, email or phone is required"

    def test_my_adoptions(self, client, adoption_service):
        adoption_service.list_user_sponsorships.return_value = [{"opportunityId": "1", "domain": "health"}]

        response = client.get("/api/adopt-health/my-adoptions?email=Sponsor@Example.com")

        assert response.status_code == 200
        assert response.get_json()["count"] == 1
        domain, query = adoption_service.list_user_sponsorships.call_args.args
        assert domain == Domain.HEALTH
        assert query.email == "sponsor@example.com"


class TestAdopt:
    """POST /<id>/adopt with and without a bearer token."""

    def test_adopt_without_token(self, client, adoption_service):
        adoption_service.adopt.return_value = {"opportunityId": "42", "domain": "health"}

        response = client.post("/api/adopt-health/42/adopt", json={"email": "sponsor@example.com"})

        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        assert body["message"] == "Health case adopted successfully"
        assert body["data"]["opportunityId"] == "42"

        domain, case_id, adopt_request, acting = adoption_service.adopt.call_args.args
        assert domain == Domain.HEALTH
        assert case_id == "42"
        assert adopt_request.join_email == "sponsor@example.com"
        assert acting is None

    def test_adopt_with_token(self, client, adoption_service, auth_headers, stored_user):
        adoption_service.adopt.return_value = {"opportunityId": "42", "domain": "welfare"}

        response = client.post(
            "/api/adopt-welfare/42/adopt",
            json={"adopterEmail": "sponsor@example.com", "adopterName": "Sara"},
            headers=auth_headers
        )

        assert response.status_code == 201
        acting = adoption_service.adopt.call_args.args[3]
        assert acting.user_id == stored_user.id
        assert acting.email == "sponsor@example.com"

    def test_adopt_with_invalid_token(self, client, adoption_service):
        response = client.post(
            "/api/adopt-health/42/adopt",
            json={"email": "sponsor@example.com"},
            headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 401
        adoption_service.adopt.assert_not_called()

    def test_adopt_invalid_email(self, client, adoption_service):
        response = client.post("/api/adopt-health/42/adopt", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.get_json()["success"] is False
        adoption_service.adopt.assert_not_called()

    def test_adopt_conflict(self, client, adoption_service):
        adoption_service.adopt.side_effect = ConflictException("This item has already been adopted")

        response = client.post("/api/adopt-health/42/adopt", json={"email": "sponsor@example.com"})

        assert response.status_code == 409
        assert response.get_json() == {"success": False, "message": "This item has already been adopted"}


class TestUnadopt:

    def test_unadopt(self, client, adoption_service):
        response = client.delete("/api/adopt-higher-education/42/unadopt?email=sponsor@example.com")

        assert response.status_code == 200
        assert response.get_json() == {
            "success": True,
            "message": "Higher Education case unadopted successfully"
        }
        domain, case_id, query, acting = adoption_service.unadopt.call_args.args
        assert domain == Domain.HIGHER_EDUCATION
        assert case_id == "42"
        assert query.email == "sponsor@example.com"
        assert acting is None

    def test_unadopt_not_found(self, client, adoption_service):
        adoption_service.unadopt.side_effect = NotFoundException("No adoption found for this item")

        response = client.delete("/api/adopt-health/42/unadopt?userId=u-1")

        assert response.status_code == 404
        assert response.get_json()["message"] == "No adoption found for this item"


class TestApplication:

    def test_health_check(self, client):
        response = client.get("/api/healthz")

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert "mongodb" in body["dependencies"]

    def test_health_check_degraded_without_redis(self, client, mock_services):
        mock_services["redis"].is_available.return_value = False

        response = client.get("/api/healthz")

        assert response.status_code == 200
        assert response.get_json()["status"] == "degraded"

    def test_health_check_unhealthy_without_mongodb(self, client, mock_services):
        mock_services["mongodb"].health_check.return_value = {"status": "unhealthy", "error": "down"}

        response = client.get("/api/healthz")

        assert response.status_code == 503

    def test_unknown_route(self, client):
        response = client.get("/api/adopt-sports")

        assert response.status_code == 404
        assert response.get_json()["success"] is False
