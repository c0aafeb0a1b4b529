"""Tests for Tracker: variable lifecycle, tree bookkeeping and change detection."""

import logging
from dataclasses import dataclass, field

import pytest

from changetracker import (
    AccessPathMismatch,
    InvalidAccess,
    InvalidArgument,
    PathSyntaxError,
    Priority,
    ReflectiveResolver,
    Tracker,
    is_object_ref,
)


@dataclass
class Address:
    city: str


@dataclass
class Person:
    name: str
    age: int = 0
    address: Address | None = None
    tags: list = field(default_factory=list)

    def get_name(self) -> str:
        return self.name


class TestCreateVariable:
    def test_root_with_value(self):
        t = Tracker()
        alice = Person("Alice", 30)
        root = t.create_variable(alice)
        assert root.id > 0
        assert root.parent_id == 0
        assert root.value is alice
        assert is_object_ref(root.value_json)
        assert t.lookup_object(alice) == root.value_json["obj"]

    def test_root_scalar(self):
        t = Tracker()
        v = t.create_variable(5)
        assert v.value == 5
        assert v.value_json == 5

    def test_sequential_unique_ids(self):
        t = Tracker()
        ids = [t.create_variable(i).id for i in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_child_with_path(self):
        t = Tracker()
        root = t.create_variable(Person("Alice", 30, Address("Paris"), ["a", "b"]))
        assert t.create_variable(parent_id=root.id, path="age").value == 30
        assert t.create_variable(parent_id=root.id, path="address.city").value == "Paris"
        assert t.create_variable(parent_id=root.id, path="tags.1").value == "b"

    def test_child_with_value_fails(self):
        t = Tracker()
        root = t.create_variable(Person("Alice"))
        with pytest.raises(InvalidArgument):
            t.create_variable(5, root.id, "age")

    def test_unknown_parent_fails(self):
        t = Tracker()
        with pytest.raises(InvalidArgument):
            t.create_variable(parent_id=99, path="age")

    def test_unresolvable_path_leaves_value_none(self):
        t = Tracker()
        root = t.create_variable(Person("Alice"))
        v = t.create_variable(parent_id=root.id, path="missing")
        assert v.value is None
        assert v.value_json is None

    def test_properties_copied(self):
        t = Tracker()
        props = {"label": "x"}
        v = t.create_variable(1, properties=props)
        props["label"] = "changed"
        assert v.get_property("label") == "x"

    def test_path_from_properties(self):
        t = Tracker()
        root = t.create_variable(Person("Alice"))
        v = t.create_variable(parent_id=root.id, properties={"path": "name"})
        assert v.value == "Alice"

    def test_path_argument_wins_over_property(self):
        t = Tracker()
        root = t.create_variable(Person("Alice", 3))
        v = t.create_variable(parent_id=root.id, path="age", properties={"path": "name"})
        assert v.value == 3
        assert v.get_property("path") == "age"

    def test_query_overrides_properties(self):
        t = Tracker()
        root = t.create_variable(Person("Alice", 3))
        v = t.create_variable(
            parent_id=root.id,
            path="age?label=query&priority=high",
            properties={"label": "map", "other": "kept"},
        )
        assert v.get_property("label") == "query"
        assert v.get_property("other") == "kept"
        assert v.get_property("path") == "age"
        assert v.value_priority is Priority.HIGH

    def test_priority_from_properties(self):
        t = Tracker()
        v = t.create_variable(1, properties={"priority": "low"})
        assert v.value_priority is Priority.LOW

    def test_invalid_access(self):
        t = Tracker()
        with pytest.raises(InvalidAccess):
            t.create_variable(1, path="?access=sometimes")

    def test_setter_not_terminal(self):
        t = Tracker()
        root = t.create_variable(Person("Alice"))
        with pytest.raises(PathSyntaxError):
            t.create_variable(parent_id=root.id, path="set_name(_).x?access=write")

    def test_read_write_getter_is_rejected(self):
        t = Tracker()
        root = t.create_variable(Person("Alice"))
        with pytest.raises(AccessPathMismatch):
            t.create_variable(parent_id=root.id, path="get_name()")
        with pytest.raises(AccessPathMismatch):
            t.create_variable(parent_id=root.id, path="get_name()?access=read-write")

    def test_failed_creation_leaves_no_trace(self):
        t = Tracker()
        root = t.create_variable(Person("Alice"))
        with pytest.raises(AccessPathMismatch):
            t.create_variable(parent_id=root.id, path="get_name()?access=write")
        assert root.child_ids == []
        assert len(t.variables()) == 1

    def test_failed_creation_does_not_consume_an_id(self):
        t = Tracker()
        first = t.create_variable(1)
        with pytest.raises(AccessPathMismatch):
            t.create_variable(parent_id=first.id, path="get_name()?access=write")
        with pytest.raises(InvalidAccess):
            t.create_variable(2, path="?access=sometimes")
        assert t.create_variable(3).id == first.id + 1

    def test_create_property(self):
        class Factory(ReflectiveResolver):
            def create_value(self, variable, type_tag, seed):
                return {"kind": type_tag}

        t = Tracker(resolver=Factory())
        v = t.create_variable(properties={"create": "Widget"})
        assert v.value == {"kind": "Widget"}
        assert v.get_property("type") == "Widget"
        assert is_object_ref(v.value_json)

    def test_inferred_type(self):
        class Typed(ReflectiveResolver):
            def get_type(self, variable, value):
                return type(value).__name__

        t = Tracker(resolver=Typed())
        root = t.create_variable(Person("Alice"))
        assert root.get_property("type") == "Person"
        scalar = t.create_variable(parent_id=root.id, path="name")
        assert scalar.get_property("type") == ""
        changes = t.get_changes()
        assert [(c.variable_id, c.properties_changed) for c in changes] == [(root.id, ["type"])]


class TestTree:
    def test_child_ids_and_roots(self):
        t = Tracker()
        r1 = t.create_variable(Person("Alice"))
        r2 = t.create_variable(Person("Bob"))
        c1 = t.create_variable(parent_id=r1.id, path="name")
        c2 = t.create_variable(parent_id=r1.id, path="age")
        assert r1.child_ids == [c1.id, c2.id]
        assert [v.id for v in t.root_variables()] == [r1.id, r2.id]
        assert [v.id for v in t.children(r1.id)] == [c1.id, c2.id]
        assert t.children(r2.id) == []
        assert c1.parent() is r1
        assert r1.parent() is None

    def test_lookups_of_unknown_ids(self):
        t = Tracker()
        assert t.get_variable(42) is None
        assert t.children(42) == []
        assert t.variables() == []
        assert t.root_variables() == []


class TestDestroyVariable:
    def test_destroy_child(self):
        t = Tracker()
        root = t.create_variable(Person("Alice"))
        child = t.create_variable(parent_id=root.id, path="age")
        child.set_property("label", "x")
        t.destroy_variable(child.id)
        assert t.get_variable(child.id) is None
        assert root.child_ids == []
        assert t.get_changes() == []

    def test_destroy_root(self):
        t = Tracker()
        alice = Person("Alice")
        root = t.create_variable(alice)
        t.destroy_variable(root.id)
        assert t.root_variables() == []
        assert t.lookup_object(alice) is None

    def test_destroy_unknown_is_noop(self):
        Tracker().destroy_variable(12345)

    def test_destroy_with_pending_value_change(self):
        t = Tracker()
        alice = Person("Alice", 1)
        root = t.create_variable(alice)
        age = t.create_variable(parent_id=root.id, path="age")
        alice.age = 2
        assert t.detect_changes()
        t.destroy_variable(age.id)
        assert t.get_changes() == []

    def test_children_survive_parent(self):
        t = Tracker()
        alice = Person("Alice")
        root = t.create_variable(alice)
        child = t.create_variable(parent_id=root.id, path="name")
        grandchild = t.create_variable(parent_id=child.id)
        assert grandchild.value == "Alice"
        t.destroy_variable(child.id)
        assert t.get_variable(grandchild.id) is grandchild
        alice.name = "Alicia"
        # no longer reachable from a root
        assert t.detect_changes() is False


class TestDetectChanges:
    def test_no_false_positives(self):
        t = Tracker()
        root = t.create_variable(Person("Alice", 30))
        t.create_variable(parent_id=root.id, path="age")
        t.create_variable(parent_id=root.id, path="get_name()?access=read")
        for _ in range(2):
            assert t.detect_changes() is False
            assert t.get_changes() == []

    def test_value_change(self):
        t = Tracker()
        alice = Person("Alice", 30)
        root = t.create_variable(alice)
        age = t.create_variable(parent_id=root.id, path="age")
        alice.age = 31
        assert t.detect_changes() is True
        changes = t.get_changes()
        assert len(changes) == 1
        assert changes[0].variable_id == age.id
        assert changes[0].value_changed is True
        assert changes[0].properties_changed == []
        assert age.value == 31
        assert t.get_changes() == []

    def test_detect_does_not_clear(self):
        t = Tracker()
        alice = Person("Alice", 30)
        root = t.create_variable(alice)
        t.create_variable(parent_id=root.id, path="age")
        alice.age = 31
        t.detect_changes()
        assert t.detect_changes() is False
        assert len(t.get_changes()) == 1

    def test_multi_level_and_multiple_roots(self):
        t = Tracker()
        alice = Person("Alice", address=Address("Paris"))
        bob = Person("Bob")
        r1 = t.create_variable(alice)
        r2 = t.create_variable(bob)
        addr = t.create_variable(parent_id=r1.id, path="address")
        city = t.create_variable(parent_id=addr.id, path="city")
        name = t.create_variable(parent_id=r2.id, path="name")
        alice.address.city = "Rome"
        bob.name = "Robert"
        assert t.detect_changes()
        assert {c.variable_id for c in t.get_changes()} == {city.id, name.id}

    def test_replaced_object_is_a_change(self):
        t = Tracker()
        alice = Person("Alice", address=Address("Paris"))
        root = t.create_variable(alice)
        addr = t.create_variable(parent_id=root.id, path="address")
        city = t.create_variable(parent_id=addr.id, path="city")
        alice.address = Address("Paris")
        assert t.detect_changes()
        # same city text, new object: only the reference changed
        assert [c.variable_id for c in t.get_changes()] == [addr.id]
        assert city.value == "Paris"

    def test_list_change(self):
        t = Tracker()
        alice = Person("Alice", tags=["a"])
        root = t.create_variable(alice)
        tags = t.create_variable(parent_id=root.id, path="tags")
        alice.tags.append("b")
        assert t.detect_changes()
        assert tags.value_json == ["a", "b"]

    def test_inactive_skips_subtree(self):
        t = Tracker()
        alice = Person("Alice", 1, Address("Paris"))
        root = t.create_variable(alice)
        addr = t.create_variable(parent_id=root.id, path="address")
        city = t.create_variable(parent_id=addr.id, path="city")
        addr.set_active(False)
        alice.address.city = "Rome"
        assert t.detect_changes() is False
        addr.set_active(True)
        assert t.detect_changes() is True
        assert [c.variable_id for c in t.get_changes()] == [city.id]

    def test_non_readable_is_skipped_but_children_checked(self):
        t = Tracker()
        alice = Person("Alice", 1, Address("Paris"))
        root = t.create_variable(alice)
        addr = t.create_variable(parent_id=root.id, path="address?access=write")
        city = t.create_variable(parent_id=addr.id, path="city")
        alice.address.city = "Rome"
        assert t.detect_changes()
        assert [c.variable_id for c in t.get_changes()] == [city.id]

    def test_navigation_error_is_no_change(self, caplog):
        t = Tracker()
        data = {"inner": {"x": 1}}
        root = t.create_variable(data)
        inner = t.create_variable(parent_id=root.id, path="inner")
        x = t.create_variable(parent_id=inner.id, path="x")
        del data["inner"]
        with caplog.at_level(logging.DEBUG, logger="changetracker.tracker"):
            assert t.detect_changes() is False
        assert "treated as unchanged" in caplog.text
        assert inner.value == {"x": 1}
        assert x.value == 1

    def test_change_all(self):
        t = Tracker()
        v = t.create_variable(1, properties={"label": "x", "hint": "y"})
        t.get_changes()
        t.change_all(v.id)
        changes = t.get_changes()
        assert len(changes) == 1
        assert changes[0].value_changed
        assert sorted(changes[0].properties_changed) == ["hint", "label"]
        t.change_all(999)  # unknown id is ignored


class TestGetChanges:
    def test_property_priority_suffix(self):
        t = Tracker()
        v = t.create_variable(1)
        v.set_property("x:high", "1")
        t.detect_changes()
        changes = t.get_changes()
        assert len(changes) == 1
        assert changes[0].priority is Priority.HIGH
        assert changes[0].properties_changed == ["x"]
        assert changes[0].value_changed is False

    def test_ordering_across_variables(self):
        t = Tracker()
        low = t.create_variable(1)
        medium = t.create_variable(2)
        high = t.create_variable(3)
        low.set_property("a:low", "1")
        medium.set_property("b:medium", "1")
        high.set_property("c:high", "1")
        changes = t.get_changes()
        assert [c.priority for c in changes] == [Priority.HIGH, Priority.MEDIUM, Priority.LOW]
        assert [c.variable_id for c in changes] == [high.id, medium.id, low.id]

    def test_value_merges_with_same_priority_properties(self):
        t = Tracker()
        alice = Person("Alice", 1)
        root = t.create_variable(alice)
        age = t.create_variable(parent_id=root.id, path="age?priority=high")
        age.set_property("label:high", "Age")
        age.set_property("hint:low", "years")
        alice.age = 2
        t.detect_changes()
        changes = t.get_changes()
        assert len(changes) == 2
        high, low = changes
        assert (high.priority, high.value_changed, high.properties_changed) == (
            Priority.HIGH, True, ["label"],
        )
        assert (low.priority, low.value_changed, low.properties_changed) == (
            Priority.LOW, False, ["hint"],
        )

    def test_value_separate_from_other_priorities(self):
        t = Tracker()
        alice = Person("Alice", 1)
        root = t.create_variable(alice)
        age = t.create_variable(parent_id=root.id, path="age")
        age.set_property("label:high", "Age")
        alice.age = 2
        t.detect_changes()
        changes = t.get_changes()
        assert [(c.priority, c.value_changed, c.properties_changed) for c in changes] == [
            (Priority.HIGH, False, ["label"]),
            (Priority.MEDIUM, True, []),
        ]

    def test_last_priority_wins(self):
        t = Tracker()
        v = t.create_variable(1)
        v.set_property("label:high", "x")
        v.set_property("label:low", "y")
        assert v.properties == {"label": "y"}
        assert v.get_property_priority("label") is Priority.LOW
        changes = t.get_changes()
        assert len(changes) == 1
        assert changes[0].priority is Priority.LOW
        assert changes[0].properties_changed == ["label"]

    def test_cleared_after_get(self):
        t = Tracker()
        v = t.create_variable(1)
        v.set_property("x", "1")
        assert len(t.get_changes()) == 1
        assert t.get_changes() == []


class Holder:
    def __init__(self, tags):
        self.tags = tags


class TestObjectRelease:
    def test_replaced_dicts_do_not_accumulate(self):
        t = Tracker()
        h = Holder({"n": -1})
        root = t.create_variable(h)
        tags = t.create_variable(parent_id=root.id, path="tags")
        for i in range(200):
            h.tags = {"n": i}
            assert t.detect_changes()
            t.get_changes()
        assert tags.value == {"n": 199}
        assert len(t._registry) == 2  # the holder and the current dict

    def test_replaced_value_is_unregistered(self):
        t = Tracker()
        old = {"n": 0}
        h = Holder(old)
        root = t.create_variable(h)
        t.create_variable(parent_id=root.id, path="tags")
        assert t.lookup_object(old) is not None
        h.tags = {"n": 1}
        t.detect_changes()
        assert t.lookup_object(old) is None

    def test_object_shared_with_another_variable_stays(self):
        t = Tracker()
        shared = {"n": 0}
        data = {"a": shared, "b": shared}
        root = t.create_variable(data)
        t.create_variable(parent_id=root.id, path="a")
        b = t.create_variable(parent_id=root.id, path="b")
        obj_id = t.lookup_object(shared)
        data["a"] = {"n": 1}
        assert t.detect_changes()
        assert t.lookup_object(shared) == obj_id
        assert b.value_json == {"obj": obj_id}

    def test_sequence_elements_are_released(self):
        t = Tracker()
        first = {"n": 0}
        data = {"items": [first]}
        root = t.create_variable(data)
        t.create_variable(parent_id=root.id, path="items")
        assert t.lookup_object(first) is not None
        data["items"] = [{"n": 1}]
        t.detect_changes()
        assert t.lookup_object(first) is None

    def test_set_releases_previous_value(self):
        t = Tracker()
        old = {"n": 0}
        h = Holder(old)
        root = t.create_variable(h)
        tags = t.create_variable(parent_id=root.id, path="tags")
        tags.set({"n": 1})
        assert h.tags == {"n": 1}
        assert t.lookup_object(old) is None
        assert len(t._registry) == 2

    def test_destroy_keeps_objects_other_variables_hold(self):
        t = Tracker()
        shared = Person("Alice")
        data = {"a": shared, "b": shared}
        root = t.create_variable(data)
        a = t.create_variable(parent_id=root.id, path="a")
        t.create_variable(parent_id=root.id, path="b")
        obj_id = t.lookup_object(shared)
        t.destroy_variable(a.id)
        assert t.lookup_object(shared) == obj_id
