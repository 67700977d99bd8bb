# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Helpline adoption platform.
"""

# Base models
from .base import BaseDocument, CamelModel, generate_object_id, normalize_email, utc_now

# Enumerations
from .enums import Domain, PartitionState, AuthProvider, CaseStatus

# Core entities
from .entities import (
    SponsorshipOpportunity,
    SponsorshipRecord,
    User,
    SessionUser,
    UserContext,
    AuthResult
)

# Request models
from .requests import (
    LoginRequest,
    SignupRequest,
    GoogleAuthRequest,
    UpdateUserRequest,
    PasswordUpdateRequest,
    AdoptRequest,
    AdopterQuery
)

__all__ = [
    # Base
    'BaseDocument',
    'CamelModel',
    'generate_object_id',
    'normalize_email',
    'utc_now',

    # Enums
    'Domain',
    'PartitionState',
    'AuthProvider',
    'CaseStatus',

    # Entities
    'SponsorshipOpportunity',
    'SponsorshipRecord',
    'User',
    'SessionUser',
    'UserContext',
    'AuthResult',

    # Requests
    'LoginRequest',
    'SignupRequest',
    'GoogleAuthRequest',
    'UpdateUserRequest',
    'PasswordUpdateRequest',
    'AdoptRequest',
    'AdopterQuery',
]
