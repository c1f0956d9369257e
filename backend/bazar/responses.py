# Overview: JSON envelope helpers shared by all API routes.

"""
Every response uses the same envelope:

    {"success": bool, "message": str?, "data": any?, "errors": [str]?}

List endpoints add a "pagination" object produced by services.pagination.
"""

from __future__ import annotations

from flask import jsonify


def ok(data=None, *, message: str | None = None, status: int = 200, pagination: dict | None = None):
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    return jsonify(body), status


def created(data=None, *, message: str | None = None):
    return ok(data, message=message, status=201)


def fail(message: str, status: int = 400, *, errors: list[str] | None = None, **extra):
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return jsonify(body), status
