"""Auth routes.

Frontend authenticates with Supabase and calls the API with
Authorization: Bearer <supabase_access_token>. There are no local users:
the admin identity is whatever the validated token says.
"""

from flask import Blueprint, jsonify, g

from utils.supabase_jwt import auth_required

# Registered by app.py at /api/v1/auth
bp = Blueprint("auth", __name__)


@bp.get("/me")
@auth_required
def me():
    claims = g.user_claims or {}
    return jsonify({
        "user": {
            "id": g.user_id,
            "email": g.email,
            "name": (claims.get("user_metadata") or {}).get("name"),
        },
        "expiresAt": claims.get("exp"),
    }), 200
