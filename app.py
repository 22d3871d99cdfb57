# app.py
import os
from pathlib import Path
from dotenv import load_dotenv

# Carrega .env antes de importar config/extensões
ENV_PATH = Path(__file__).resolve().with_name(".env")
load_dotenv(dotenv_path=ENV_PATH)

import click
from flask import Flask, jsonify, request
from sqlalchemy import text

from config import Config
from extensions import db, init_cors
from notifications.service import init_notifications
from utils.errors import register_error_handlers


def create_app(notification_transport=None):
    app = Flask(__name__)
    app.config.from_object(Config)

    db.init_app(app)
    init_cors(app)
    register_error_handlers(app)
    # serviço de notificações criado aqui e injetado via app.extensions
    init_notifications(app, notification_transport)

    # Garantir resposta ao preflight (OPTIONS) globalmente
    @app.before_request
    def _handle_cors_preflight():
        if request.method == "OPTIONS":
            return "", 204

    # Blueprints
    from auth.routes import bp as auth_bp
    from clients.routes import bp as clients_bp
    from subscriptions.routes import bp as subscriptions_bp
    from payments.routes import bp as payments_bp
    from reports.routes import bp as reports_bp
    from notifications.routes import bp as notifications_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(clients_bp, url_prefix="/api/v1/clients")
    app.register_blueprint(subscriptions_bp, url_prefix="/api/v1/subscriptions")
    app.register_blueprint(payments_bp, url_prefix="/api/v1/payments")
    app.register_blueprint(reports_bp, url_prefix="/api/v1/reports")
    app.register_blueprint(notifications_bp, url_prefix="/api/v1/notifications")

    # Health
    @app.get("/api/v1/health")
    def health():
        # Verifica conectividade com o banco
        try:
            db.session.execute(text("SELECT 1"))
            db_ok = True
            detail = None
        except Exception as e:
            db_ok = False
            detail = str(e)

        payload = {
            "status": "ok" if db_ok else "error",
            "db": "ok" if db_ok else "error",
            "notifications": "on" if app.extensions["notifications"].enabled else "off",
        }
        if detail and not db_ok:
            payload["detail"] = detail

        return jsonify(payload), (200 if db_ok else 500)

    # migração única das credenciais legadas (infra_credentials -> por número)
    @app.cli.command("migrate_credentials")
    @click.option("--dry-run", is_flag=True, help="Mostra o que mudaria sem gravar.")
    def migrate_credentials_cmd(dry_run):
        from scripts.migrate_client_credentials import run as migrate_run
        migrate_run(dry_run=dry_run)

    return app


app = create_app()

if __name__ == "__main__":
    with app.app_context():
        # opcional: criar tabelas se não usa migrations
        try:
            db.create_all()
        except Exception as e:
            print("DB create_all skipped or failed:", e)

    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
