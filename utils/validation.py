"""
Leitura de payloads JSON (camelCase) com erros por campo.

    f = FieldReader(request.get_json(silent=True) or {})
    name = f.text("fullName", required=True)
    day = f.integer("paymentDay", minimum=1, maximum=31)
    f.raise_if_errors()

Cada método devolve o valor convertido (ou None) e registra a mensagem do
primeiro problema encontrado no campo; `raise_if_errors` levanta
ValidationError com todas as mensagens de uma vez.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Dict, Iterable, Optional

from utils.errors import ValidationError

_MISSING = object()


def parse_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    # aceita 'YYYY-MM-DD' e ISO completo ('YYYY-MM-DDTHH:MM:SS...')
    return date.fromisoformat(str(value)[:10])


class FieldReader:
    def __init__(self, payload: Dict[str, Any], *, partial: bool = False):
        self.payload = payload if isinstance(payload, dict) else {}
        # partial=True (PUT): campos ausentes não são obrigatórios
        self.partial = partial
        self.errors: Dict[str, str] = {}

    def has(self, key: str) -> bool:
        return key in self.payload

    def _raw(self, key: str, required: bool):
        value = self.payload.get(key, _MISSING)
        if value is _MISSING or value is None or (isinstance(value, str) and not value.strip()):
            if required and not (self.partial and key not in self.payload):
                self.errors[key] = "Campo obrigatório"
            return _MISSING
        return value

    def text(self, key: str, *, required: bool = False, max_length: Optional[int] = None) -> Optional[str]:
        value = self._raw(key, required)
        if value is _MISSING:
            return None
        if not isinstance(value, str):
            self.errors[key] = "Deve ser texto"
            return None
        value = value.strip()
        if max_length and len(value) > max_length:
            self.errors[key] = f"Máximo de {max_length} caracteres"
            return None
        return value

    def choice(self, key: str, options: Iterable[str], *, required: bool = False, default=None) -> Optional[str]:
        value = self._raw(key, required)
        if value is _MISSING:
            return default
        options = tuple(options)
        if value not in options:
            self.errors[key] = f"Valor inválido: {value}. Opções: {', '.join(options)}"
            return None
        return value

    def number(self, key: str, *, required: bool = False, minimum: Optional[float] = None,
               maximum: Optional[float] = None) -> Optional[float]:
        value = self._raw(key, required)
        if value is _MISSING:
            return None
        if isinstance(value, bool):
            self.errors[key] = "Deve ser numérico"
            return None
        try:
            value = float(value)
        except (TypeError, ValueError):
            self.errors[key] = "Deve ser numérico"
            return None
        if minimum is not None and value < minimum:
            self.errors[key] = f"Deve ser maior ou igual a {minimum:g}"
            return None
        if maximum is not None and value > maximum:
            self.errors[key] = f"Deve ser menor ou igual a {maximum:g}"
            return None
        return value

    def integer(self, key: str, *, required: bool = False, minimum: Optional[int] = None,
                maximum: Optional[int] = None) -> Optional[int]:
        value = self.number(key, required=required, minimum=minimum, maximum=maximum)
        if value is None:
            return None
        if value != int(value):
            self.errors[key] = "Deve ser um número inteiro"
            return None
        return int(value)

    def boolean(self, key: str, *, default: Optional[bool] = None) -> Optional[bool]:
        value = self.payload.get(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            self.errors[key] = "Deve ser verdadeiro ou falso"
            return default
        return value

    def date(self, key: str, *, required: bool = False) -> Optional[date]:
        value = self._raw(key, required)
        if value is _MISSING:
            return None
        try:
            return parse_date(value)
        except (TypeError, ValueError):
            self.errors[key] = "Data inválida (use AAAA-MM-DD)"
            return None

    def json(self, key: str, expected: type) -> Any:
        value = self.payload.get(key)
        if value is None:
            return None
        if not isinstance(value, expected):
            self.errors[key] = "Formato inválido"
            return None
        return value

    def fail(self, key: str, message: str) -> None:
        self.errors.setdefault(key, message)

    def raise_if_errors(self) -> None:
        if self.errors:
            raise ValidationError(dict(self.errors))


def date_arg(args, key: str = "today", default: Optional[date] = None) -> date:
    """Data opcional na query string; sem valor usa `default` ou hoje."""
    raw = (args.get(key) or "").strip()
    if not raw:
        return default or date.today()
    try:
        return parse_date(raw)
    except ValueError:
        raise ValidationError({key: "Data inválida (use AAAA-MM-DD)"}) from None


def uuid_value(value, key: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError({key: "Identificador inválido"}) from None
