"""Credenciais de infraestrutura por número contratado.

Cada número tem um conjunto de credenciais (`NumberCredentials`) com no
máximo um pacote por provedor conhecido. Os provedores são uma união
fechada: cada um tem seus campos fixos e só eles podem ser gravados.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict
from typing import Any, ClassVar, Dict, List, Optional, Type

from utils.casing import camel_to_snake, snake_to_camel
from utils.errors import ValidationError


@dataclass
class ProviderCredentials:
    kind: ClassVar[str] = ""

    @classmethod
    def field_names(cls) -> List[str]:
        return [snake_to_camel(f.name) for f in fields(cls)]

    @classmethod
    def from_json(cls, data: Dict[str, Any], path: str) -> "ProviderCredentials":
        if not isinstance(data, dict):
            raise ValidationError({path: "Formato inválido"})
        bundle = cls()
        for key, value in data.items():
            bundle.set(key, value, path=path)
        return bundle

    def set(self, key: str, value: Any, path: Optional[str] = None) -> None:
        """Setter tipado: só aceita campos do provedor, sempre como texto."""
        path = path or self.kind
        attr = camel_to_snake(key)
        if attr not in {f.name for f in fields(self)}:
            raise ValidationError({
                f"{path}.{key}": f"Campo desconhecido para {self.kind}. Campos: {', '.join(self.field_names())}"
            })
        if value is not None and not isinstance(value, (str, int)):
            raise ValidationError({f"{path}.{key}": "Deve ser texto"})
        setattr(self, attr, "" if value is None else str(value))

    def to_json(self) -> Dict[str, str]:
        return {snake_to_camel(k): v for k, v in asdict(self).items()}


@dataclass
class N8nCredentials(ProviderCredentials):
    kind: ClassVar[str] = "n8n"
    admin_url: str = ""
    email: str = ""
    password: str = ""


@dataclass
class EvolutionCredentials(ProviderCredentials):
    kind: ClassVar[str] = "evolution"
    manager_url: str = ""
    api_key: str = ""


@dataclass
class ChatwootCredentials(ProviderCredentials):
    kind: ClassVar[str] = "chatwoot"
    admin_url: str = ""
    password: str = ""


@dataclass
class RedisCredentials(ProviderCredentials):
    kind: ClassVar[str] = "redis"
    host: str = ""
    port: str = ""
    user: str = ""
    password: str = ""


@dataclass
class PostgresCredentials(ProviderCredentials):
    kind: ClassVar[str] = "postgresql"
    host: str = ""
    port: str = ""
    user: str = ""
    database: str = ""
    password: str = ""


@dataclass
class SupabaseCredentials(ProviderCredentials):
    kind: ClassVar[str] = "supabase"
    project_url: str = ""
    anon_key: str = ""
    service_role_key: str = ""


@dataclass
class ChatgptCredentials(ProviderCredentials):
    kind: ClassVar[str] = "chatgpt"
    chat_link: str = ""
    description: str = ""


PROVIDERS: Dict[str, Type[ProviderCredentials]] = {
    cls.kind: cls
    for cls in (
        N8nCredentials,
        EvolutionCredentials,
        ChatwootCredentials,
        RedisCredentials,
        PostgresCredentials,
        SupabaseCredentials,
        ChatgptCredentials,
    )
}


@dataclass
class Agent:
    id: str
    name: str = ""
    description: str = ""
    prompt: str = ""
    is_active: bool = True
    priority: int = 1

    @classmethod
    def from_json(cls, data: Dict[str, Any], path: str) -> "Agent":
        if not isinstance(data, dict) or not data.get("id"):
            raise ValidationError({path: "Agente precisa de id"})
        try:
            priority = int(data.get("priority") or 1)
        except (TypeError, ValueError):
            raise ValidationError({f"{path}.priority": "Deve ser um número inteiro"}) from None
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            prompt=str(data.get("prompt") or ""),
            is_active=bool(data.get("isActive", True)),
            priority=priority,
        )

    def to_json(self) -> Dict[str, Any]:
        return {snake_to_camel(k): v for k, v in asdict(self).items()}


_SLOT_TEXT_FIELDS = ("phoneNumber", "instanceName", "displayName", "description", "notes")


@dataclass
class NumberCredentials:
    id: str
    phone_number: str = ""
    instance_name: str = ""
    display_name: str = ""
    description: str = ""
    notes: str = ""
    agents: List[Agent] = field(default_factory=list)
    providers: Dict[str, ProviderCredentials] = field(default_factory=dict)

    @classmethod
    def default(cls, position: int) -> "NumberCredentials":
        return cls(
            id=f"number-{position}",
            instance_name=f"instancia-{position}",
            display_name=f"Número {position}",
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any], index: int) -> "NumberCredentials":
        path = f"numberCredentials[{index}]"
        if not isinstance(data, dict):
            raise ValidationError({path: "Formato inválido"})
        slot = cls(id=str(data.get("id") or f"number-{index + 1}"))
        for key, value in data.items():
            if key == "id":
                continue
            if key in _SLOT_TEXT_FIELDS:
                setattr(slot, camel_to_snake(key), "" if value is None else str(value))
            elif key == "agents":
                if not isinstance(value, list):
                    raise ValidationError({f"{path}.agents": "Deve ser uma lista"})
                slot.agents = [Agent.from_json(a, f"{path}.agents[{i}]") for i, a in enumerate(value)]
            elif key in PROVIDERS:
                if value is not None:
                    slot.providers[key] = PROVIDERS[key].from_json(value, f"{path}.{key}")
            else:
                raise ValidationError({f"{path}.{key}": "Campo desconhecido"})
        return slot

    def set_provider_field(self, provider: str, key: str, value: Any) -> None:
        cls = PROVIDERS.get(provider)
        if cls is None:
            raise ValidationError({"provider": f"Provedor desconhecido: {provider}"})
        bundle = self.providers.get(provider)
        if bundle is None:
            bundle = self.providers[provider] = cls()
        bundle.set(key, value)

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        for key in _SLOT_TEXT_FIELDS:
            data[key] = getattr(self, camel_to_snake(key))
        data["agents"] = [a.to_json() for a in self.agents]
        for kind in PROVIDERS:
            if kind in self.providers:
                data[kind] = self.providers[kind].to_json()
        return data


def parse_credentials(payload) -> List[NumberCredentials]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValidationError({"numberCredentials": "Deve ser uma lista"})
    return [NumberCredentials.from_json(item, i) for i, item in enumerate(payload)]


def dump_credentials(slots: List[NumberCredentials]) -> List[Dict[str, Any]]:
    return [s.to_json() for s in slots]


def ensure_slots(slots: List[NumberCredentials], number_of_phones: int) -> List[NumberCredentials]:
    """Um conjunto por número: completa com padrões e corta os excedentes."""
    slots = list(slots[:number_of_phones])
    for position in range(len(slots) + 1, number_of_phones + 1):
        slots.append(NumberCredentials.default(position))
    return slots


def migrate_legacy_bundle(infra_credentials: Optional[Dict[str, Any]], number_of_phones: int) -> List[NumberCredentials]:
    """Converte o pacote único antigo (infra_credentials) em lista por número.

    O primeiro número herda os blocos de provedores conhecidos do pacote
    antigo (que chamava o evolution de `evolutionApi`); os demais recebem
    conjuntos vazios. `notes` do pacote vira a nota do primeiro número.
    """
    slots = ensure_slots([], max(1, number_of_phones or 1))
    legacy = dict(infra_credentials or {})
    if "evolutionApi" in legacy and "evolution" not in legacy:
        legacy["evolution"] = legacy.pop("evolutionApi")
    first = slots[0]
    for kind, cls in PROVIDERS.items():
        if isinstance(legacy.get(kind), dict):
            first.providers[kind] = cls.from_json(legacy[kind], f"infraCredentials.{kind}")
    if isinstance(legacy.get("notes"), str):
        first.notes = legacy["notes"]
    return slots
