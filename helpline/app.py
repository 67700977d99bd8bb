# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Helpline API - Flask application entry point.

Builds the Flask application with OpenAPI 3.0 support, wires the MongoDB,
Redis and JWT services, and registers the adoption, auth and user endpoints.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from . import __version__
from .middleware.auth import AuthMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware
from .models.enums import Domain
from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .routes.adoptions import register_adoption_blueprints
from .routes.auth import auth_bp
from .routes.users import users_bp
from .services.adoptions import AdoptionService
from .services.auth import AuthService
from .services.mongodb import MongoDBService
from .services.redis import RedisService
from .services.users import UserService

info = Info(
    title="Helpline API",
    version=__version__,
    description="Adoption and sponsorship API for the Helpline mobile app"
)

tags = [
    Tag(name="Authentication", description="User authentication"),
    Tag(name="Users", description="User accounts"),
    Tag(name="Health", description="System health and status")
] + [
    Tag(name=domain.display_title, description=f"{domain.display_title} adoption cases")
    for domain in Domain
]


def load_config() -> Dict[str, Any]:
    """Application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/helpline_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'helpline_dev'),
        'REDIS_URL': os.getenv('REDIS_URL', 'redis://localhost:6379'),
        'JWT_PRIVATE_KEY': os.getenv('JWT_PRIVATE_KEY'),
        'JWT_PUBLIC_KEY': os.getenv('JWT_PUBLIC_KEY'),
        'JWT_ACCESS_TOKEN_EXPIRE_MINUTES': int(os.getenv('JWT_ACCESS_TOKEN_EXPIRE_MINUTES', str(60 * 24))),
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'GOOGLE_AUTH_ENABLED': os.getenv('GOOGLE_AUTH_ENABLED', 'true').lower() == 'true',
        'CREATE_INDEXES': os.getenv('CREATE_INDEXES', 'false').lower() == 'true',
        'PORT': int(os.getenv('PORT', '5001'))
    }


def create_app(
    mongodb_service: Optional[MongoDBService] = None,
    redis_service: Optional[RedisService] = None,
    auth_service: Optional[AuthService] = None,
    config_overrides: Optional[Dict[str, Any]] = None
) -> OpenAPI:
    """
    Create the Flask application.

    Args:
        mongodb_service: MongoDB service, built from the config when omitted
        redis_service: Redis service, built from the config when omitted
        auth_service: JWT service, built from the config when omitted
        config_overrides: Values replacing the environment configuration

    Returns:
        Configured application
    """
    app = OpenAPI(__name__, info=info, tags=tags)
    app.config.update(load_config())
    app.config.update(config_overrides or {})

    otel_installed = setup_observability(app.config['ENVIRONMENT'], app.config['OTEL_ENABLED'])
    add_observability_middleware(app, instrument=otel_installed)

    # Services
    mongodb_service = mongodb_service or MongoDBService(
        app.config['MONGODB_URI'],
        app.config['MONGODB_DATABASE']
    )
    redis_service = redis_service or RedisService(app.config['REDIS_URL'])
    auth_service = auth_service or AuthService(
        app.config['JWT_PRIVATE_KEY'],
        app.config['JWT_PUBLIC_KEY'],
        access_token_expire_minutes=app.config['JWT_ACCESS_TOKEN_EXPIRE_MINUTES']
    )
    user_service = UserService(mongodb_service, auth_service)

    if app.config['CREATE_INDEXES']:
        mongodb_service.create_indexes()

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.redis_service = redis_service
    app.auth_service = auth_service
    app.user_service = user_service
    app.adoption_service = AdoptionService(mongodb_service, user_service)
    app.auth_middleware = AuthMiddleware(auth_service, redis_service)

    ErrorHandlerMiddleware(app)

    # Register routes
    register_adoption_blueprints(app)
    app.register_api(auth_bp)
    app.register_api(users_bp)

    @app.route('/api/healthz')
    def health_check():
        """Health check with dependency status."""
        mongodb_health = app.mongodb_service.health_check()
        redis_available = app.redis_service.is_available()

        status = "healthy"
        if mongodb_health.get('status') != 'healthy':
            status = "unhealthy"
        elif not redis_available:
            status = "degraded"

        return jsonify({
            "success": status != "unhealthy",
            "status": status,
            "service": "helpline-api",
            "version": __version__,
            "environment": app.config['ENVIRONMENT'],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "dependencies": {
                "mongodb": mongodb_health,
                "redis": {"status": "healthy" if redis_available else "unavailable"}
            }
        }), 503 if status == "unhealthy" else 200

    return app


if __name__ == '__main__':
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=application.config['PORT'],
        debug=application.config['DEBUG']
    )
