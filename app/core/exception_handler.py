"""
DRF exception handler for domain errors.

Registered through REST_FRAMEWORK["EXCEPTION_HANDLER"]. Domain services raise
subclasses of BaseApplicationError; this handler renders them with their
to_dict() body and http_status, and defers everything else to DRF.
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def domain_exception_handler(exc, context):
    """Render BaseApplicationError subclasses, fall back to DRF otherwise."""
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        log_level = logging.WARNING if exc.http_status >= 500 else logging.INFO
        logger.log(
            log_level,
            f"Request failed with {exc.error_code}",
            extra={
                "error_code": exc.error_code,
                "http_status": exc.http_status,
                "view": view.__class__.__name__ if view else None,
            },
        )
        return Response(exc.to_dict(), status=exc.http_status)

    return exception_handler(exc, context)
