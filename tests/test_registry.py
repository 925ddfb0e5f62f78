from __future__ import annotations

import asyncio

from fakes import FakeAction, FakeFetch, FakeMessenger


def test_should_not_add_same_script_twice_for_same_tab() -> None:
    from cdinjector.registry import ScriptRegistry

    registry = ScriptRegistry()
    assert len(registry.script_names_for_tab(1)) == 0
    assert registry.register_script("foo", 1) is True
    assert len(registry.script_names_for_tab(1)) == 1
    assert registry.register_script("foo", 1) is False
    assert len(registry.script_names_for_tab(1)) == 1


def test_unknown_tab_is_empty_and_not_created() -> None:
    from cdinjector.registry import ScriptRegistry

    registry = ScriptRegistry()
    assert registry.script_names_for_tab(99) == frozenset()
    assert registry.tab_ids() == []
    assert len(registry) == 0


def test_tabs_are_independent_and_forgettable() -> None:
    from cdinjector.registry import ScriptRegistry

    registry = ScriptRegistry()
    registry.register_script("a.js", 1)
    registry.register_script("b.js", 2)
    registry.register_script("c.js", 2)

    assert registry.script_names_for_tab(1) == {"a.js"}
    assert registry.script_names_for_tab(2) == {"b.js", "c.js"}

    registry.forget_tab(2)
    registry.forget_tab(404)
    assert registry.script_names_for_tab(2) == frozenset()
    assert registry.tab_ids() == [1]


def test_snapshot_does_not_change_after_registration() -> None:
    from cdinjector.registry import ScriptRegistry

    registry = ScriptRegistry()
    registry.register_script("a.js", 1)
    snapshot = registry.script_names_for_tab(1)
    registry.register_script("b.js", 1)
    assert snapshot == {"a.js"}


def test_update_interface_for_given_tab() -> None:
    from cdinjector.injector import CDInjector

    action = FakeAction()
    injector = CDInjector(FakeFetch(), FakeMessenger(), action)

    # non-existing tab id, should report zero scripts
    asyncio.run(injector.update_interface(1))
    assert action.counts == [(1, 0)]
    assert len(action.titles) == 1
    assert "no active scripts" in action.titles[0][1]

    action.counts.clear()
    action.titles.clear()

    injector.register_script("foo", 1)
    injector.register_script("bar", 1)
    asyncio.run(injector.update_interface(1))
    assert action.counts == [(1, 2)]
    assert action.titles == [(1, "CD Injector\nbar\nfoo")]


def test_update_interface_survives_failing_action() -> None:
    from cdinjector.injector import CDInjector

    class _BrokenAction:
        async def set_count(self, tab_id, count):  # noqa: ANN001,ANN202
            raise RuntimeError("badge api gone")

        async def set_title(self, tab_id, title):  # noqa: ANN001,ANN202
            raise RuntimeError("title api gone")

    injector = CDInjector(FakeFetch(), FakeMessenger(), _BrokenAction())
    asyncio.run(injector.update_interface(7))
