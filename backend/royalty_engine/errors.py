from __future__ import annotations

from flask import jsonify


class RoyaltyEngineError(Exception):
    """Base class for domain errors surfaced to callers."""
    status_code = 500


class ValidationError(RoyaltyEngineError, ValueError):
    """400-level input problem (e.g., missing camp_id)."""
    status_code = 400


class NotFoundError(RoyaltyEngineError):
    """404-level: camp, tenant, or invoice absent (or outside caller's tenant)."""
    status_code = 404


class ConflictError(RoyaltyEngineError, ValueError):
    """409-level business rule conflict (e.g., duplicate outstanding invoice)."""
    status_code = 409


class UpstreamError(RoyaltyEngineError):
    """503-level: persistence or notification dependency failure."""
    status_code = 503


def error_response(exc: RoyaltyEngineError):
    """(json body, status) pair for a domain error raised in a route."""
    return jsonify({"error": str(exc)}), exc.status_code
