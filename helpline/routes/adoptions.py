# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Adoption endpoints, one `/api/adopt-{domain}` blueprint per domain.

Every domain exposes the same five operations over its own case collection:
list, detail, adopt, unadopt and the caller's own adoptions.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from pydantic import BaseModel, Field
import logging

from ..middleware.auth import optional_auth
from ..models.enums import Domain
from ..models.requests import AdopterQuery, AdoptRequest
from ..utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class CasePath(BaseModel):
    case_id: str = Field(..., description="Adoption case identifier")


def create_adoption_blueprint(domain: Domain) -> APIBlueprint:
    """
    Build the blueprint serving one domain.

    Args:
        domain: Domain whose cases the blueprint serves

    Returns:
        Blueprint mounted at `/api/adopt-{segment}`
    """
    tag = Tag(name=domain.display_title, description=f"{domain.display_title} adoption cases")
    bp = APIBlueprint(
        f"adopt_{domain.path_segment.replace('-', '_')}",
        __name__,
        url_prefix=f"/api/adopt-{domain.path_segment}",
        abp_tags=[tag]
    )

    @bp.get('')
    def list_cases():
        """List all cases of the domain."""
        cases = current_app.adoption_service.list_cases(domain)
        return jsonify({"success": True, "data": cases, "count": len(cases)})

    @bp.get('/my-adoptions')
    def list_my_adoptions():
        """List the sponsorships of the user given by `userId`, `email` or `phone`."""
        query = RequestParser.parse_query(AdopterQuery)
        records = current_app.adoption_service.list_user_sponsorships(domain, query)
        return jsonify({"success": True, "data": records, "count": len(records)})

    @bp.get('/<case_id>')
    def get_case(path: CasePath):
        """Get one case."""
        case = current_app.adoption_service.get_case(domain, path.case_id)
        return jsonify({"success": True, "data": case})

    @bp.post('/<case_id>/adopt')
    @optional_auth
    def adopt_case(path: CasePath):
        """
        Adopt a case.

        The sponsor is resolved from `email` (or `adopterEmail`) in the body.
        When a bearer token is sent it must belong to that sponsor.
        """
        adopt_request = RequestParser.parse_body(AdoptRequest)
        with tracer.start_as_current_span(
            "adoptions.route.adopt",
            attributes={"adoption.domain": domain.value, "adoption.case_id": path.case_id}
        ):
            record = current_app.adoption_service.adopt(
                domain, path.case_id, adopt_request, g.user_context
            )
        return jsonify({
            "success": True,
            "message": f"{domain.display_title} case adopted successfully",
            "data": record
        }), 201

    @bp.delete('/<case_id>/unadopt')
    @optional_auth
    def unadopt_case(path: CasePath):
        """Remove the caller's sponsorship of a case."""
        query = RequestParser.parse_query(AdopterQuery)
        current_app.adoption_service.unadopt(domain, path.case_id, query, g.user_context)
        return jsonify({
            "success": True,
            "message": f"{domain.display_title} case unadopted successfully"
        })

    return bp


def register_adoption_blueprints(app) -> None:
    """Register one adoption blueprint per domain."""
    for domain in Domain:
        app.register_api(create_adoption_blueprint(domain))
        logger.debug(f"Registered adoption endpoints for {domain.value}")
