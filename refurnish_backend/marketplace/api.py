# marketplace/api.py

"""
API ERROR NORMALIZATION

Every BFF endpoint answers failures as:
    {"error": {"code": "...", "message": "...", "fields"?: {...}}}

Collaborator failures are translated here so no view leaks technical detail.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response

from marketplace.exceptions import NotAuthenticatedError, UpstreamError, UpstreamUnavailable


def error_response(*, code: str, message: str, http_status: int, fields: dict | None = None):
    payload = {"code": code, "message": message}
    if fields:
        payload["fields"] = fields
    return Response({"error": payload}, status=http_status)


def upstream_error_response(exc: UpstreamError):
    if isinstance(exc, UpstreamUnavailable):
        return error_response(
            code="SERVICE_UNAVAILABLE",
            message=exc.message,
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    # Upstream 4xx are the caller's problem (not found, bad input); pass the
    # status through. Anything else is a bad gateway from our side.
    code = exc.status_code or 0
    if code in (400, 404, 409, 422):
        return error_response(code="UPSTREAM_REJECTED", message=exc.message, http_status=code)
    if code in (401, 403):
        return error_response(code="NOT_AUTHORIZED", message=exc.message, http_status=code)
    return error_response(
        code="UPSTREAM_ERROR",
        message=exc.message,
        http_status=status.HTTP_502_BAD_GATEWAY,
    )


def not_authenticated_response(exc: NotAuthenticatedError):
    return error_response(
        code="NOT_AUTHENTICATED",
        message=str(exc),
        http_status=status.HTTP_401_UNAUTHORIZED,
    )
