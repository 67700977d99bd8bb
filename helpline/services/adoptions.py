# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Adoption case service backing the `/api/adopt-{domain}` endpoints.

A case is claimed atomically (the update only matches a case that is not
adopted yet) before its sponsorship document is written, so two sponsors
racing for the same case cannot both succeed.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..domain.normalization import normalize
from ..middleware.error_handler import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException
)
from ..models.base import utc_now
from ..models.entities import SponsorshipRecord, User, UserContext
from ..models.enums import CaseStatus, Domain
from ..models.requests import AdopterQuery, AdoptRequest
from .mongodb import MongoDBService, id_query, serialize_document
from .users import UserService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ADOPTER_FIELDS = ("adoptedBy", "adoptedAt", "adopterName", "adopterEmail", "adopterPhone")


class AdoptionService:
    """Adoption cases and the sponsorships attached to them."""

    def __init__(self, mongodb_service: MongoDBService, user_service: UserService):
        self.mongodb = mongodb_service
        self.users = user_service

    # Reads

    def list_cases(self, domain: Domain) -> List[Dict[str, Any]]:
        """All case documents of a domain, newest first."""
        with tracer.start_as_current_span("adoptions.list_cases") as span:
            span.set_attribute("adoption.domain", domain.value)
            documents = list(self.mongodb.cases(domain).find({}).sort("createdAt", DESCENDING))
            span.set_attribute("adoption.count", len(documents))
            return [serialize_document(document) for document in documents]

    def _find_case(self, domain: Domain, case_id: str) -> Dict[str, Any]:
        document = self.mongodb.cases(domain).find_one(id_query(case_id))
        if document is None:
            raise NotFoundException(f"{domain.display_title} case not found")
        return document

    def get_case(self, domain: Domain, case_id: str) -> Dict[str, Any]:
        """
        Raises:
            NotFoundException: If the case does not exist
        """
        return serialize_document(self._find_case(domain, case_id))

    def list_user_sponsorships(self, domain: Domain, query: AdopterQuery) -> List[Dict[str, Any]]:
        """
        Sponsorship records of one user in one domain.

        Raises:
            ValidationException: When no identity parameter was given
        """
        if not query.has_identity:
            raise ValidationException("userId, email or phone is required")

        user = self.users.resolve(query.user_id, query.email, query.phone)
        filters = {"domain": domain.value}
        if user is not None:
            filters["userId"] = user.id
        elif query.email:
            filters["sponsorEmail"] = query.email
        else:
            return []

        documents = self.mongodb.sponsorships.find(filters).sort("sponsoredAt", DESCENDING)
        return [self._sponsorship_view(document) for document in documents]

    @staticmethod
    def _sponsorship_view(document: Dict[str, Any]) -> Dict[str, Any]:
        view = SponsorshipRecord.model_validate(document).to_wire()
        view["id"] = str(document.get("_id", ""))
        if document.get("userId"):
            view["userId"] = document["userId"]
        return view

    # Writes

    def _check_acting_user(self, acting: Optional[UserContext], user: User) -> None:
        if acting is not None and acting.user_id != user.id and acting.email != user.email:
            raise AuthorizationException("You can only manage your own adoptions")

    def adopt(
        self,
        domain: Domain,
        case_id: str,
        request: AdoptRequest,
        acting: Optional[UserContext] = None
    ) -> Dict[str, Any]:
        """
        Register a sponsorship of a case.

        Args:
            domain: Domain of the case
            case_id: Case identifier
            request: Adopt request body
            acting: Authenticated caller, when a bearer token was sent

        Returns:
            The created sponsorship record (wire form)

        Raises:
            ValidationException: No email in the request
            NotFoundException: Unknown user or case
            AuthorizationException: Token belongs to another user
            ConflictException: Case already adopted
        """
        with tracer.start_as_current_span("adoptions.adopt") as span:
            span.set_attributes({"adoption.domain": domain.value, "adoption.case_id": case_id})

            email = request.join_email
            if not email:
                raise ValidationException("Email is required to adopt")

            user = self.users.find_by_email(email)
            if user is None:
                raise NotFoundException("User not found. Please sign up first.")
            self._check_acting_user(acting, user)

            case = self._find_case(domain, case_id)
            opportunity = normalize(case, domain)
            if opportunity.is_sponsored:
                span.set_status(Status(StatusCode.ERROR, "Already adopted"))
                raise ConflictException("This item has already been adopted")

            now = utc_now()
            claim = self.mongodb.cases(domain).update_one(
                {
                    "_id": case["_id"],
                    "adopted": {"$ne": True},
                    "status": {"$ne": CaseStatus.ADOPTED.value}
                },
                {"$set": {
                    "adopted": True,
                    "status": CaseStatus.ADOPTED.value,
                    "adoptedBy": user.id,
                    "adoptedAt": now,
                    "adopterName": request.adopter_name or user.name,
                    "adopterEmail": request.adopter_email or email,
                    "adopterPhone": request.adopter_phone or user.phone,
                    "updatedAt": now
                }}
            )
            if claim.matched_count == 0:
                span.set_status(Status(StatusCode.ERROR, "Already adopted"))
                raise ConflictException("This item has already been adopted")

            record = opportunity.to_record(sponsor_email=email, sponsor_id=user.id, sponsored_at=now)
            document = record.model_dump(by_alias=True)
            document.update({
                "_id": ObjectId(),
                "domain": domain.value,
                "userId": user.id,
                "adopterName": request.adopter_name or user.name,
                "adopterPhone": request.adopter_phone or user.phone
            })

            try:
                self.mongodb.sponsorships.insert_one(document)
            except DuplicateKeyError:
                self._release_case(domain, case["_id"])
                raise ConflictException("You have already adopted this item")
            except PyMongoError:
                logger.error(
                    "Sponsorship write failed, releasing case",
                    extra={"domain": domain.value, "case_id": case_id},
                    exc_info=True
                )
                self._release_case(domain, case["_id"])
                raise

            span.set_attribute("adoption.result", "adopted")

        logger.info(
            "Case adopted",
            extra={"domain": domain.value, "case_id": record.opportunity_id, "user_id": user.id}
        )
        return self._sponsorship_view(document)

    def unadopt(
        self,
        domain: Domain,
        case_id: str,
        query: AdopterQuery,
        acting: Optional[UserContext] = None
    ) -> None:
        """
        Remove a user's sponsorship of a case.

        Raises:
            ValidationException: No identity parameter
            NotFoundException: Unknown user, or no sponsorship of this case
            AuthorizationException: Token belongs to another user
        """
        with tracer.start_as_current_span("adoptions.unadopt") as span:
            span.set_attributes({"adoption.domain": domain.value, "adoption.case_id": case_id})

            if not query.has_identity:
                raise ValidationException("userId, email or phone is required")

            user = self.users.resolve(query.user_id, query.email, query.phone)
            if user is None:
                raise NotFoundException("User not found")
            self._check_acting_user(acting, user)

            case = self._find_case(domain, case_id)
            opportunity_id = normalize(case, domain).id

            result = self.mongodb.sponsorships.delete_one({
                "opportunityId": opportunity_id,
                "domain": domain.value,
                "userId": user.id
            })
            if result.deleted_count == 0:
                raise NotFoundException("No adoption found for this item")

            self._release_case(domain, case["_id"])
            span.set_attribute("adoption.result", "released")

        logger.info(
            "Case unadopted",
            extra={"domain": domain.value, "case_id": opportunity_id, "user_id": user.id}
        )

    def release_user_sponsorships(self, user_id: str) -> int:
        """
        Drop every sponsorship held by a user and return the cases to the pool.

        Returns:
            Number of sponsorships removed
        """
        with tracer.start_as_current_span("adoptions.release_user") as span:
            span.set_attribute("user.id", user_id)
            released = 0
            for document in self.mongodb.sponsorships.find({"userId": user_id}):
                domain = Domain(document["domain"])
                try:
                    case = self._find_case(domain, document["opportunityId"])
                except NotFoundException:
                    logger.warning(
                        "Sponsored case no longer exists",
                        extra={"domain": domain.value, "case_id": document["opportunityId"]}
                    )
                else:
                    self._release_case(domain, case["_id"])
                released += 1

            self.mongodb.sponsorships.delete_many({"userId": user_id})
            span.set_attribute("adoption.released", released)

        logger.info("User sponsorships released", extra={"user_id": user_id, "count": released})
        return released

    def _release_case(self, domain: Domain, case_key: Any) -> None:
        self.mongodb.cases(domain).update_one(
            {"_id": case_key},
            {
                "$set": {"adopted": False, "status": CaseStatus.AVAILABLE.value, "updatedAt": utc_now()},
                "$unset": {field: "" for field in ADOPTER_FIELDS}
            }
        )
