# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting and validating request data.
"""

from flask import request
from pydantic import BaseModel, ValidationError
from typing import Dict, Any, Type, TypeVar
import logging

from ..middleware.error_handler import ValidationException

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestParser:
    """Utility for parsing request bodies and query strings into models."""

    @staticmethod
    def get_json_body() -> Dict[str, Any]:
        """
        Get the JSON object body of the request.

        Returns:
            The decoded body, or an empty dict when it is missing or not an object
        """
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}

    @staticmethod
    def get_query_params() -> Dict[str, str]:
        """Single-valued query parameters, blank values dropped."""
        return {key: value for key, value in request.args.items() if value.strip()}

    @staticmethod
    def parse(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
        """
        Validate data against a request model.

        Raises:
            ValidationException: With one entry per failing field
        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.info(
                f"{model.__name__} validation failed",
                extra={"path": request.path, "error_count": e.error_count()}
            )
            raise ValidationException.from_pydantic(e)

    @classmethod
    def parse_body(cls, model: Type[ModelT]) -> ModelT:
        return cls.parse(model, cls.get_json_body())

    @classmethod
    def parse_query(cls, model: Type[ModelT]) -> ModelT:
        return cls.parse(model, cls.get_query_params())
