import threading

from hostcomp.host_model import builtin_registry
from hostcomp.specialize.ranker import InferenceLog, most_specific


def test_most_specific_ignores_unknown_entries():
    registry = builtin_registry()
    assert most_specific([], registry) is None
    assert most_specific([None, None], registry) is None
    transform = registry.ensure_type("Transform")
    assert most_specific([None, transform, None], registry) == transform


def test_most_specific_prefers_strict_subtypes():
    registry = builtin_registry()
    component = registry.ensure_type("Component")
    mono = registry.ensure_type("MonoBehaviour")
    assert most_specific([component, mono], registry) == mono
    assert most_specific([mono, component], registry) == mono


def test_most_specific_keeps_first_of_unrelated_types():
    registry = builtin_registry()
    game_object = registry.ensure_type("GameObject")
    component = registry.ensure_type("Component")
    mono = registry.ensure_type("MonoBehaviour")

    assert most_specific([game_object, component], registry) == game_object
    assert most_specific([component, game_object], registry) == component
    # Grouping changes the answer for unrelated inputs.
    left_first = most_specific(
        [most_specific([component, game_object], registry), mono], registry
    )
    right_first = most_specific(
        [component, most_specific([game_object, mono], registry)], registry
    )
    assert left_first == mono
    assert right_first == component
    assert most_specific([component, mono, game_object], registry) == mono
    assert most_specific([game_object, mono, component], registry) == game_object


def test_inference_log_records_full_names_and_unknowns():
    registry = builtin_registry()
    log = InferenceLog()
    log.append(registry.ensure_type("Transform"))
    log.append(None)
    assert log.snapshot() == ["UnityEngine.Transform", None]
    assert len(log) == 2
    log.clear()
    assert log.snapshot() == []


def test_inference_log_accepts_concurrent_appends():
    registry = builtin_registry()
    log = InferenceLog()
    transform = registry.ensure_type("Transform")

    def worker():
        for _ in range(200):
            log.append(transform)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(log) == 800
