from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, Optional, Tuple

from hostcomp.errors import UnresolvedTypeError


@dataclass(frozen=True)
class HostType:
    name: str
    full_name: str
    base: Optional[str] = None
    methods: FrozenSet[str] = frozenset()
    fields: Tuple[Tuple[str, str], ...] = ()
    py_name: str = ""
    serializable: bool = False

    @property
    def emit_name(self) -> str:
        return self.py_name or self.name


@dataclass
class TypeRegistry:
    """Single-inheritance host type hierarchy used for static reasoning."""

    types: Dict[str, HostType] = field(default_factory=dict)
    aliases: Dict[str, str] = field(default_factory=dict)

    def register(self, host_type: HostType, *aliases: str) -> HostType:
        if host_type.full_name in self.types:
            raise ValueError(f"Host type '{host_type.full_name}' already declared.")
        if host_type.base is not None and host_type.base not in self.types:
            raise ValueError(
                f"Host type '{host_type.full_name}' extends unknown type '{host_type.base}'."
            )
        self.types[host_type.full_name] = host_type
        for alias in (host_type.name, *aliases):
            self.aliases.setdefault(alias, host_type.full_name)
        return host_type

    def register_component(
        self,
        name: str,
        *,
        base: str,
        methods: Iterable[str] = (),
        fields: Iterable[Tuple[str, str]] = (),
    ) -> HostType:
        base_type = self.ensure_type(base)
        if self.lookup(name) is not None:
            raise ValueError(f"Type name '{name}' is already declared.")
        return self.register(
            HostType(
                name=name,
                full_name=name,
                base=base_type.full_name,
                methods=frozenset(methods),
                fields=tuple(fields),
                py_name=name,
                serializable=True,
            )
        )

    def lookup(self, designator: str) -> Optional[HostType]:
        if designator in self.types:
            return self.types[designator]
        full_name = self.aliases.get(designator)
        if full_name is None:
            return None
        return self.types[full_name]

    def ensure_type(self, designator: str) -> HostType:
        host_type = self.lookup(designator)
        if host_type is None:
            raise UnresolvedTypeError(f"'{designator}' does not resolve to a type.")
        return host_type

    def ancestors(self, host_type: HostType) -> Iterator[HostType]:
        """Yield ``host_type`` and then each base up to the root."""
        current: Optional[HostType] = host_type
        while current is not None:
            yield current
            current = self.types.get(current.base) if current.base is not None else None

    def is_subtype_or_equal(self, sub: HostType, sup: HostType) -> bool:
        return any(t.full_name == sup.full_name for t in self.ancestors(sub))

    def is_strict_subtype(self, sub: HostType, sup: HostType) -> bool:
        return sub.full_name != sup.full_name and self.is_subtype_or_equal(sub, sup)

    def are_related(self, left: HostType, right: HostType) -> bool:
        # With single inheritance, unrelated classes never share an instance.
        return self.is_subtype_or_equal(left, right) or self.is_subtype_or_equal(
            right, left
        )

    def has_method(self, host_type: HostType, method: str) -> bool:
        return any(method in t.methods for t in self.ancestors(host_type))

    def field_type(self, host_type: HostType, field_name: str) -> Optional[HostType]:
        for t in self.ancestors(host_type):
            for name, type_name in t.fields:
                if name == field_name:
                    return self.lookup(type_name)
        return None
