# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and document helpers.
"""

import os
import logging
from datetime import datetime
from typing import List, Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    OperationFailure
)
from bson import ObjectId

from ..models.enums import Domain

logger = logging.getLogger(__name__)


USERS_COLLECTION = "users"
SPONSORSHIPS_COLLECTION = "sponsorships"


def id_query(doc_id: Any) -> Dict[str, Any]:
    """
    Query matching a document by identifier.

    Case documents created by older backends may carry a plain `id` next to,
    or instead of, an ObjectId `_id`.
    """
    doc_id = str(doc_id)
    if ObjectId.is_valid(doc_id):
        return {"$or": [{"_id": ObjectId(doc_id)}, {"_id": doc_id}, {"id": doc_id}]}
    clauses = [{"_id": doc_id}, {"id": doc_id}]
    if doc_id.isdigit():
        clauses.append({"id": int(doc_id)})
    return {"$or": clauses}


def serialize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Make a document JSON-ready: ObjectIds become strings, datetimes ISO 8601."""
    result = {}
    for key, value in document.items():
        if isinstance(value, ObjectId):
            result[key] = str(value)
        elif isinstance(value, datetime):
            result[key] = value.isoformat()
        elif isinstance(value, dict):
            result[key] = serialize_document(value)
        elif isinstance(value, list):
            result[key] = [
                serialize_document(item) if isinstance(item, dict)
                else str(item) if isinstance(item, ObjectId)
                else item
                for item in value
            ]
        else:
            result[key] = value
    return result


class MongoDBService:
    """MongoDB service with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/helpline_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'helpline_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client, connecting on first use."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        return self.database[collection_name]

    def cases(self, domain: Domain) -> Collection:
        """Collection holding one domain's adoption cases."""
        return self.get_collection(domain.collection_name)

    @property
    def users(self) -> Collection:
        return self.get_collection(USERS_COLLECTION)

    @property
    def sponsorships(self) -> Collection:
        return self.get_collection(SPONSORSHIPS_COLLECTION)

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except (ConnectionFailure, ServerSelectionTimeoutError, OperationFailure) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def create_indexes(self) -> None:
        """Create the indexes the adoption endpoints rely on."""
        try:
            self.users.create_index("email", unique=True)
            self.users.create_index("googleId", sparse=True)

            self.sponsorships.create_index(
                [("opportunityId", ASCENDING), ("domain", ASCENDING), ("userId", ASCENDING)],
                unique=True
            )
            self.sponsorships.create_index(
                [("domain", ASCENDING), ("userId", ASCENDING), ("sponsoredAt", DESCENDING)]
            )
            self.sponsorships.create_index([("sponsorEmail", ASCENDING), ("domain", ASCENDING)])

            for domain in Domain:
                cases = self.cases(domain)
                cases.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
                cases.create_index("adoptedBy", sparse=True)

            logger.info("MongoDB indexes created successfully")
        except OperationFailure as e:
            logger.error(f"Failed to create indexes: {e}")
            raise
