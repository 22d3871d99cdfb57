# utils/casing.py
"""
Helpers para conversão entre snake_case (Python/DB) e camelCase (JSON da API).
Uso típico:
 - sa_model_to_dict(row)      -> resposta HTTP
 - camel_to_snake(key)        -> campo recebido do front -> atributo
"""

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict

_first_cap_re = re.compile(r"(.)([A-Z][a-z]+)")
_all_cap_re = re.compile(r"([a-z0-9])([A-Z])")

def snake_to_camel(s: str) -> str:
    if not s:
        return s
    parts = s.split("_")
    return parts[0] + "".join(p.capitalize() or "_" for p in parts[1:])

def camel_to_snake(s: str) -> str:
    if not s:
        return s
    s = _first_cap_re.sub(r"\1_\2", s)
    return _all_cap_re.sub(r"\1_\2", s).lower()

def _json_value(val):
    if isinstance(val, Decimal):
        return float(val)
    if isinstance(val, uuid.UUID):
        return str(val)
    # datetime antes de date (datetime é subclasse de date)
    if isinstance(val, datetime):
        return val.isoformat()
    if isinstance(val, date):
        return val.isoformat()
    return val

def sa_model_to_dict(instance, *, camel: bool = True, include=None, exclude=None) -> Dict[str, Any]:
    """
    Converte uma instância SQLAlchemy em dict simples (apenas colunas).
    - camel=True: converte chaves de primeiro nível para camelCase.
      Colunas JSON são devolvidas como estão (já gravadas em camelCase).
    - include/exclude: coleções de nomes de colunas (snake_case) para filtrar.
    """
    if instance is None:
        return {}
    cols = getattr(instance, "__table__").columns
    raw = {}
    for c in cols:
        name = c.name
        if include and name not in include:
            continue
        if exclude and name in exclude:
            continue
        raw[name] = _json_value(getattr(instance, name))
    if not camel:
        return raw
    return {snake_to_camel(k): v for k, v in raw.items()}
