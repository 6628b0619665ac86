"""Unit tests for the ObservationRegistry public API."""

from unittest.mock import Mock

import pytest

from treewatch import (
    ContextNotFound,
    EngineConfig,
    InvalidContainer,
    ObservationRegistry,
    ObservedList,
    TreewatchError,
)
from tests.utils import delivered


@pytest.mark.unit
def test_create_accepts_dicts_and_lists(registry):
    assert registry.create({}).target == {}
    assert isinstance(registry.create([]), ObservedList)


@pytest.mark.unit
@pytest.mark.edge_case
@pytest.mark.parametrize("value", [None, 5, "text", (1,), {1}])
def test_create_rejects_non_containers(registry, value):
    with pytest.raises(InvalidContainer):
        registry.create(value)


@pytest.mark.unit
def test_errors_share_a_base_and_builtin_parents():
    assert issubclass(InvalidContainer, TreewatchError)
    assert issubclass(InvalidContainer, TypeError)
    assert issubclass(ContextNotFound, TreewatchError)
    assert issubclass(ContextNotFound, LookupError)


@pytest.mark.unit
def test_create_on_own_wrapper_observes_its_raw_container(registry):
    data = {"a": 1}
    first = registry.create(data)

    second = registry.create(first)

    assert second is not first
    assert second.target is data


@pytest.mark.unit
@pytest.mark.edge_case
def test_create_rejects_wrappers_from_another_registry(registry):
    foreign = ObservationRegistry().create({})

    with pytest.raises(InvalidContainer):
        registry.create(foreign)


@pytest.mark.unit
def test_create_wraps_nested_containers_up_front(registry):
    data = {"a": {"b": [{"c": 1}]}}
    registry.create(data)

    assert data["a"] in registry.arena
    assert data["a"]["b"] in registry.arena
    assert data["a"]["b"][0] in registry.arena


@pytest.mark.unit
@pytest.mark.edge_case
def test_create_handles_cyclic_trees(registry, observer):
    data = {"x": 1}
    data["self"] = data
    root = registry.create(data, observer=observer)

    root["self"]["x"] = 2

    assert data["x"] == 2
    observer.assert_called_once()


@pytest.mark.unit
@pytest.mark.edge_case
def test_reserved_names_as_real_keys_do_not_break_create(registry):
    data = {"__target__": {"inner": 1}}

    registry.create(data)

    assert data["__target__"] in registry.arena


@pytest.mark.unit
def test_observe_and_unobserve(registry):
    first, second = Mock(), Mock()
    root = registry.create({})
    registry.observe(root, first)
    registry.observe(root, second)

    root["a"] = 1
    registry.unobserve(root, first)
    root["b"] = 2

    assert first.call_count == 1
    assert second.call_count == 2


@pytest.mark.unit
@pytest.mark.edge_case
def test_observe_rejects_non_callables(registry):
    root = registry.create({})

    with pytest.raises(TypeError):
        registry.observe(root, "not callable")


@pytest.mark.unit
@pytest.mark.edge_case
@pytest.mark.parametrize(
    "operation", ["pause", "resume", "pause_changes", "resume_changes"]
)
def test_operations_on_unknown_roots_raise_context_not_found(registry, operation):
    with pytest.raises(ContextNotFound):
        getattr(registry, operation)({"not": "observed"})


@pytest.mark.unit
@pytest.mark.edge_case
def test_operations_on_nested_wrappers_raise_context_not_found(registry):
    """Only root wrappers identify a context"""
    root = registry.create({"child": {}})

    with pytest.raises(ContextNotFound):
        registry.observe(root["child"], Mock())


@pytest.mark.unit
@pytest.mark.edge_case
def test_remove_of_unknown_root_is_ignored(registry):
    registry.remove({"not": "observed"})

    assert registry.stats()["contexts"] == 0


@pytest.mark.unit
def test_remove_makes_wrappers_inert(registry, observer):
    data = {"a": 1, "child": {"x": 1}}
    root = registry.create(data, observer=observer)
    child = root["child"]

    registry.remove(root)
    root["a"] = 2
    child["x"] = 2
    del root["a"]

    observer.assert_not_called()
    assert data == {"a": 1, "child": {"x": 1}}
    assert not registry.is_observed(root)
    assert data["child"] not in registry.arena


@pytest.mark.unit
def test_operations_after_remove_raise(registry):
    root = registry.create({})
    registry.remove(root)

    with pytest.raises(ContextNotFound):
        registry.pause(root)


@pytest.mark.unit
def test_remove_keeps_other_contexts_on_shared_containers(registry, observer):
    data = {"a": 1}
    first = registry.create(data)
    second = registry.create(data, observer=observer)

    registry.remove(first)
    second["a"] = 2

    observer.assert_called_once()
    assert data in registry.arena


@pytest.mark.unit
def test_contexts_and_stats(registry):
    registry.create({"a": {}})
    registry.create([])

    stats = registry.stats()

    assert len(registry.contexts) == 2
    assert stats["contexts"] == 2
    assert stats["active"] == 3
    assert stats["entries"] == 3
    assert stats["scheduled_tasks"] == 0


@pytest.mark.unit
def test_batch_groups_calls_into_one_delivery(registry, observer):
    root = registry.create({"items": []}, observer=observer)

    with registry.batch():
        root["a"] = 1
        root["items"].append("x")
        with registry.batch():
            root["b"] = 2
        observer.assert_not_called()

    observer.assert_called_once()
    assert len(delivered(observer)) == 4


@pytest.mark.unit
@pytest.mark.edge_case
def test_batch_delivers_even_when_the_block_raises(registry, observer):
    root = registry.create({}, observer=observer)

    with pytest.raises(RuntimeError):
        with registry.batch():
            root["a"] = 1
            raise RuntimeError("abort")

    observer.assert_called_once()


@pytest.mark.unit
def test_custom_config_controls_default_delay(tasks, observer):
    registry = ObservationRegistry(
        config=EngineConfig(default_delay=1.0), task_queue=tasks
    )
    root = registry.create({}, delay=True, observer=observer)

    root["a"] = 1
    tasks.advance(0.5)
    observer.assert_not_called()

    tasks.advance(0.5)
    observer.assert_called_once()
