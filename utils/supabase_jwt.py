"""Verificação do access token do Supabase Auth.

Aplicação de um único tenant: não há tabela de usuários local, a identidade
do admin é o próprio token (sub + email).
"""

from __future__ import annotations

import json
import time
from functools import wraps
from typing import Any, Dict, Optional

import httpx
import jwt as pyjwt
from cachetools import TTLCache
from flask import current_app, g, request

from utils.responses import too_many_requests, unauthorized, server_error


_jwks_cache: TTLCache[str, Dict[str, Any]] = TTLCache(maxsize=4, ttl=15 * 60)
_rate_cache: TTLCache[str, int] = TTLCache(maxsize=10000, ttl=60)

# Tolerância de relógio para nbf
_CLOCK_SKEW = 60


class JwtValidationError(Exception):
    pass


def _supabase_url() -> str:
    url = (current_app.config.get("SUPABASE_URL") or "").rstrip("/")
    if not url:
        raise RuntimeError("SUPABASE_URL missing in configuration")
    return url


def _fetch_jwks() -> Dict[str, Any]:
    url = f"{_supabase_url()}/auth/v1/keys"
    cached = _jwks_cache.get(url)
    if cached is not None:
        return cached
    with httpx.Client(timeout=5.0) as c:
        r = c.get(url)
        r.raise_for_status()
        data = r.json()
    if not isinstance(data, dict) or "keys" not in data:
        raise JwtValidationError("Invalid JWKS document")
    _jwks_cache[url] = data
    return data


def _select_key(jwks: Dict[str, Any], kid: str) -> Optional[Dict[str, Any]]:
    return next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)


def _public_key_from_jwk(jwk: Dict[str, Any]):
    return pyjwt.algorithms.RSAAlgorithm.from_jwk(json.dumps(jwk))


def _expected_iss() -> str:
    # SUPABASE_JWT_ISS sobrescreve o emissor padrão do projeto
    iss = current_app.config.get("SUPABASE_JWT_ISS")
    if iss:
        return iss.rstrip("/")
    return f"{_supabase_url()}/auth/v1"


def _signing_key(header: Dict[str, Any]):
    alg = (header.get("alg") or "").upper()
    if alg.startswith("RS"):
        kid = header.get("kid")
        if not kid:
            raise JwtValidationError("Missing kid in token header")
        jwk = _select_key(_fetch_jwks(), kid)
        if not jwk:
            raise JwtValidationError("Signing key not found")
        return _public_key_from_jwk(jwk), "RS256"
    if alg == "HS256":
        secret = current_app.config.get("SUPABASE_JWT_SECRET") or ""
        if not secret:
            raise JwtValidationError("HS256 token but SUPABASE_JWT_SECRET not configured")
        return secret, "HS256"
    raise JwtValidationError(f"Unsupported JWT alg: {alg}")


def _bearer(value: str) -> str:
    token = value.strip()
    if token.lower().startswith("bearer "):
        token = token.split(" ", 1)[1].strip()
    if not token:
        raise JwtValidationError("Empty token")
    return token


def verify_supabase_jwt(bearer_token: str) -> Dict[str, Any]:
    """Valida o token (RS256 via JWKS ou HS256 via segredo) e devolve as claims.

    O email vem da claim raiz ou, na falta dela, de user_metadata/app_metadata.
    Levanta JwtValidationError em qualquer falha.
    """
    token = _bearer(bearer_token)
    try:
        header = pyjwt.get_unverified_header(token)
    except pyjwt.PyJWTError as e:
        raise JwtValidationError(f"Invalid token header: {e}")

    issuer = _expected_iss()
    audience = current_app.config.get("SUPABASE_JWT_AUD") or None
    try:
        key, alg = _signing_key(header)
        claims = pyjwt.decode(
            token,
            key,
            algorithms=[alg],
            issuer=issuer,
            audience=audience,
            options={"require": ["sub", "exp", "iat"], "verify_signature": True},
        )
    except JwtValidationError:
        raise
    except Exception as e:
        current_app.logger.warning("JWT validation failed: %s", e)
        raise JwtValidationError("Invalid or expired token")

    now = int(time.time())
    if int(claims.get("exp", now - 1)) <= now:
        raise JwtValidationError("Token expired")
    if int(claims.get("nbf", now)) > now + _CLOCK_SKEW:
        raise JwtValidationError("Token not yet valid")

    claims["email"] = (
        claims.get("email")
        or (claims.get("user_metadata") or {}).get("email")
        or (claims.get("app_metadata") or {}).get("email")
    )
    return claims


def _rate_limit_exceeded(ip: str) -> bool:
    limit = int(current_app.config.get("RATE_LIMIT_PER_MINUTE") or 120)
    count = _rate_cache.get(ip, 0) + 1
    _rate_cache[ip] = count
    return count > limit


def auth_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        # janela de 60s por IP (cache em memória, por processo)
        ip = request.headers.get("X-Forwarded-For", request.remote_addr or "?")
        if _rate_limit_exceeded(ip):
            return too_many_requests()

        auth_header = request.headers.get("Authorization", "").strip()
        if not auth_header:
            return unauthorized("Missing Authorization header")

        try:
            claims = verify_supabase_jwt(auth_header)
        except JwtValidationError as e:
            return unauthorized(str(e))
        except Exception:  # pragma: no cover - unexpected
            current_app.logger.exception("JWT verification error")
            return server_error("JWT verification error")

        g.user_claims = claims
        g.user_id = claims.get("sub")
        g.email = claims.get("email")
        return fn(*args, **kwargs)

    return wrapper
