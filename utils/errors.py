# utils/errors.py
from typing import Dict, Optional

from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from extensions import db


class ValidationError(Exception):
    """Payload inválido; `fields` mapeia campo (camelCase) -> mensagem."""

    def __init__(self, fields: Dict[str, str], message: str = "Dados inválidos."):
        super().__init__(message)
        self.message = message
        self.fields = fields


class BillingError(Exception):
    """Transição de cobrança não permitida para o estado atual do registro."""


class NotFoundError(Exception):
    def __init__(self, resource: str = "Resource", detail: Optional[str] = None):
        super().__init__(detail or f"{resource} not found")
        self.resource = resource


def register_error_handlers(app):
    """Registra handlers globais de erro para retornar JSON padronizado."""

    @app.errorhandler(ValidationError)
    def validation_error(e: ValidationError):
        return jsonify({"error": e.message, "fields": e.fields}), 400

    @app.errorhandler(NotFoundError)
    def missing_resource(e: NotFoundError):
        return jsonify({"error": f"{e.resource} not found"}), 404

    @app.errorhandler(BillingError)
    def billing_conflict(e: BillingError):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(IntegrityError)
    def integrity_error(e: IntegrityError):
        db.session.rollback()
        return jsonify({"error": "Violação de integridade", "detail": str(e.orig)}), 400

    @app.errorhandler(SQLAlchemyError)
    def datastore_error(e: SQLAlchemyError):
        db.session.rollback()
        app.logger.warning("Datastore error: %s", e)
        return jsonify({"error": "Internal Server Error", "detail": str(e)}), 500

    @app.errorhandler(400)
    def bad_request(_):
        return jsonify({"error": "Dados inválidos."}), 400

    @app.errorhandler(401)
    def unauthorized(_):
        return jsonify({"error": "Unauthorized"}), 401

    @app.errorhandler(404)
    def not_found(_):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_):
        return jsonify({"error": "Method Not Allowed"}), 405

    @app.errorhandler(500)
    def internal(_):
        return jsonify({"error": "Internal Server Error"}), 500

    @app.errorhandler(Exception)
    def unhandled_exception(e):
        # se for HTTPException (ex.: abort(404)), deixa cair no handler já definido
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code

        # loga no console para debug (não expõe stack trace no cliente)
        app.logger.exception("Unhandled Exception: %s", e)

        return jsonify({"error": "Internal Server Error"}), 500
