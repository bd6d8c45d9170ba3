import threading
from typing import Iterable, List, Optional

from hostcomp.typesys import HostType, TypeRegistry


class InferenceLog:
    """Append-only record of the static types inferred for type dispatches.

    Decision logic never reads it; it exists for tooling and tests.
    """

    def __init__(self):
        self._entries: List[Optional[str]] = []
        self._lock = threading.Lock()

    def append(self, host_type: Optional[HostType]) -> None:
        entry = host_type.full_name if host_type is not None else None
        with self._lock:
            self._entries.append(entry)

    def snapshot(self) -> List[Optional[str]]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


INFERENCE_LOG = InferenceLog()


def most_specific(
    types: Iterable[Optional[HostType]], registry: TypeRegistry
) -> Optional[HostType]:
    """Reduce ``types`` to the most specific one, ignoring unknown entries.

    Single left-to-right pass: a candidate replaces the running champion only
    when it is a strict subtype of it. For mutually unrelated types this keeps
    the first one seen, so the reduction is not associative in general.
    """
    champion: Optional[HostType] = None
    for candidate in types:
        if candidate is None:
            continue
        if champion is None or registry.is_strict_subtype(candidate, champion):
            champion = candidate
    return champion
