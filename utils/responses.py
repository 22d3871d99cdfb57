from __future__ import annotations

from flask import jsonify


def unauthorized(detail: str | None = None):
    payload = {"error": "Unauthorized"}
    if detail:
        payload["detail"] = detail
    return jsonify(payload), 401


def too_many_requests():
    return jsonify({"error": "Too Many Requests"}), 429


def server_error(detail: str | None = None):
    payload = {"error": "Internal Server Error"}
    if detail:
        payload["detail"] = detail
    return jsonify(payload), 500
