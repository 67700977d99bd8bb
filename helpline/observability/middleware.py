# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Per-request tracing and access logging.
"""

import time
import logging
from typing import Optional
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)

ADOPTION_PREFIX = "/api/adopt-"


def adoption_segment(path: str) -> Optional[str]:
    """Domain segment of an `/api/adopt-{segment}` path, None for other paths."""
    if not path.startswith(ADOPTION_PREFIX):
        return None
    return path[len(ADOPTION_PREFIX):].split("/", 1)[0] or None


def add_observability_middleware(app: Flask, instrument: bool = True) -> None:
    """
    Log every request and tag its span with the adoption domain and caller.

    Args:
        app: Flask application
        instrument: Also install FlaskInstrumentor (needs a tracer provider)
    """
    if instrument:
        FlaskInstrumentor().instrument_app(app)

    @app.before_request
    def start_request_timer():
        g.start_time = time.monotonic()
        g.trace_id = None

        span = trace.get_current_span()
        if not span.is_recording():
            return
        g.trace_id = format(span.get_span_context().trace_id, "032x")
        segment = adoption_segment(request.path)
        if segment:
            span.set_attribute("adoption.segment", segment)

    @app.after_request
    def log_request(response):
        elapsed_ms = round((time.monotonic() - g.get('start_time', time.monotonic())) * 1000, 2)
        user_context = g.get('user_context')

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.duration_ms", elapsed_ms)
            if user_context is not None:
                span.set_attribute("user.id", user_context.user_id)

        logger.info(
            "HTTP request completed",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "adoption_segment": adoption_segment(request.path),
                "user_id": user_context.user_id if user_context is not None else None,
                "trace_id": g.get('trace_id')
            }
        )

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id
        return response
