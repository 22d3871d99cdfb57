# config.py
import os
import socket
from urllib.parse import urlparse, parse_qsl, urlencode, urlunparse


def _normalize_database_url(uri: str) -> str:
    # Corrige URLs antigas 'postgres://'
    if uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql+psycopg2://", 1)

    # Força IPv4 quando o resolver devolver IPv6 não alcançável (comum em hosts serverless)
    # Implementado adicionando 'hostaddr=<ipv4>' na query string do DSN.
    try:
        parsed = urlparse(uri)
        host = parsed.hostname or ""
        if not (host.endswith("supabase.co") or host.endswith("supabase.com")):
            return uri
        q = dict(parse_qsl(parsed.query, keep_blank_values=True))
        if "sslmode" not in q:
            q["sslmode"] = "require"
        if "hostaddr" not in q:
            infos = socket.getaddrinfo(host, parsed.port or 5432, socket.AF_INET, socket.SOCK_STREAM)
            if infos:
                q["hostaddr"] = infos[0][4][0]
        return urlunparse((
            parsed.scheme,
            parsed.netloc,
            parsed.path,
            parsed.params,
            urlencode(q),
            parsed.fragment,
        ))
    except Exception:
        # Qualquer falha mantém a URI original
        return uri


class Config:
    # Supabase project URL (e.g., https://<ref>.supabase.co)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    # Optional audience to validate against (if configured in Supabase)
    SUPABASE_JWT_AUD = os.getenv("SUPABASE_JWT_AUD")
    # Optional issuer override (defaults to f"{SUPABASE_URL}/auth/v1")
    SUPABASE_JWT_ISS = os.getenv("SUPABASE_JWT_ISS")
    # HS256 projects sign access tokens with the project secret
    SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")

    # Requisições por minuto por IP nas rotas autenticadas
    RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))

    # DB
    # Prefer DATABASE_URL (Render/Supabase padrão), caindo para SQLALCHEMY_DATABASE_URI
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI")
    if not SQLALCHEMY_DATABASE_URI:
        raise RuntimeError("DATABASE_URL/SQLALCHEMY_DATABASE_URI não definida no ambiente/.env")
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(SQLALCHEMY_DATABASE_URI)

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.getenv("SQLALCHEMY_ECHO", "0") == "1"
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        # SQLite (testes) usa o pool padrão do Flask-SQLAlchemy
        SQLALCHEMY_ENGINE_OPTIONS = {}
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_pre_ping": True,
            "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "1800")),
            "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
        }

    # CORS
    # Permitir apenas origens conhecidas por padrão; pode sobrescrever via CORS_ORIGINS
    _cors_from_env = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    CORS_ORIGINS = _cors_from_env or [
        "http://localhost:8080",
        "http://localhost:5173",
    ]

    # Notificações de pagamento
    # Sem NOTIFY_WEBHOOK_URL as mensagens ficam na fila local (/notifications/outbox)
    NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL") or None
    REMINDER_LEAD_DAYS = int(os.getenv("REMINDER_LEAD_DAYS", "1"))
