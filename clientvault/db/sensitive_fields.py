# clientvault/db/sensitive_fields.py
"""
Registry of sensitive (encrypted) fields per record type

Declared statically; record types are table names.
"""

from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from clientvault.core.exceptions import ConfigurationError

SENSITIVE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "persons": ("date_of_birth", "email", "phone_primary", "address", "ssn"),
    "accounts": ("account_number",),
}

# field -> column holding its search digest
SEARCH_INDEXES: Dict[str, Dict[str, str]] = {
    "persons": {"email": "email_hash"},
    "accounts": {"account_number": "account_number_hash"},
}


class SensitiveFieldRegistry:
    """Read-only lookup of which fields of which record types are encrypted"""

    def __init__(
        self,
        fields: Mapping[str, Iterable[str]],
        search_indexes: Optional[Mapping[str, Mapping[str, str]]] = None,
    ):
        self._fields = MappingProxyType({
            record_type: tuple(dict.fromkeys(names))
            for record_type, names in fields.items()
        })

        indexes = {}
        for record_type, mapping in (search_indexes or {}).items():
            sensitive = self._fields.get(record_type, ())
            for field, digest_field in mapping.items():
                if field not in sensitive:
                    raise ConfigurationError(
                        f"Search index on {record_type}.{field} requires the field to be sensitive"
                    )
                if digest_field in sensitive:
                    raise ConfigurationError(
                        f"Digest column {record_type}.{digest_field} cannot itself be encrypted"
                    )
            indexes[record_type] = MappingProxyType(dict(mapping))
        self._search_indexes = MappingProxyType(indexes)

    @classmethod
    def default(cls) -> "SensitiveFieldRegistry":
        return cls(SENSITIVE_FIELDS, SEARCH_INDEXES)

    @staticmethod
    def record_type_of(record) -> str:
        model = type(record)
        return getattr(model, "__tablename__", None) or model.__name__

    def record_types(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    def get_sensitive_fields(self, record_type: str) -> Tuple[str, ...]:
        return self._fields.get(record_type, ())

    def is_sensitive(self, record_type: str, field: str) -> bool:
        return field in self.get_sensitive_fields(record_type)

    def get_search_indexes(self, record_type: str) -> Mapping[str, str]:
        return self._search_indexes.get(record_type, MappingProxyType({}))
