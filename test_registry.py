"""Tests for action registration and validation."""

from datetime import timedelta

import pytest

from action_runtime.models import ActionDefinition, ActionInterval, interval_milliseconds
from action_runtime.registry import ActionRegistry, ActionValidationError, coerce_definition


def noop(ctx):
    pass


def make(name="job", **kwargs):
    return ActionDefinition(name=name, description=f"{name} action", execute=noop, **kwargs)


class TestIntervalMilliseconds:

    @pytest.mark.parametrize("unit,expected", [
        ("seconds", 1000),
        ("minutes", 60000),
        ("hours", 3600000),
        ("days", 86400000),
    ])
    def test_units(self, unit, expected):
        assert interval_milliseconds(make(interval=ActionInterval(every=1, unit=unit))) == expected

    def test_every_multiplies(self):
        assert interval_milliseconds(make(interval=ActionInterval(every=5, unit="seconds"))) == 5000

    def test_unit_defaults_to_minutes(self):
        assert interval_milliseconds(make(interval=ActionInterval(every=2))) == 120000
        definition = coerce_definition({"name": "x", "description": "x", "execute": noop,
                                        "interval": {"every": 3}})
        assert interval_milliseconds(definition) == 180000

    def test_no_interval_counts_as_one_minute(self):
        assert interval_milliseconds(make()) == 60000


class TestValidation:

    @pytest.mark.parametrize("raw,fragment", [
        ({"description": "d", "execute": noop}, "'name' is required"),
        ({"name": 123, "description": "d", "execute": noop}, "'name' must be a string"),
        ({"name": "  ", "description": "d", "execute": noop}, "'name' cannot be empty"),
        ({"name": "a", "execute": noop}, "'description' is required"),
        ({"name": "a", "description": "d"}, "'execute' is required"),
        ({"name": "a", "description": "d", "execute": "not callable"}, "'execute' must be callable"),
        ({"name": "a", "description": "d", "execute": noop, "onRun": 5}, "'on_run' must be callable"),
        ({"name": "a", "description": "d", "execute": noop,
          "interval": {"every": 0, "unit": "seconds"}}, "positive integer"),
        ({"name": "a", "description": "d", "execute": noop,
          "interval": {"every": -1}}, "positive integer"),
        ({"name": "a", "description": "d", "execute": noop,
          "interval": {"every": 1.5}}, "positive integer"),
        ({"name": "a", "description": "d", "execute": noop,
          "interval": {"every": True}}, "positive integer"),
        ({"name": "a", "description": "d", "execute": noop,
          "interval": {"unit": "seconds"}}, "'interval.every' is required"),
        ({"name": "a", "description": "d", "execute": noop,
          "interval": {"every": 1, "unit": "weeks"}}, "'interval.unit' must be one of"),
        ({"name": "a", "description": "d", "execute": noop, "interval": 10}, "'interval' must be"),
    ])
    def test_rejects_malformed_definition(self, raw, fragment):
        registry = ActionRegistry()
        with pytest.raises(ActionValidationError) as excinfo:
            registry.register([raw])
        assert any(fragment in error for error in excinfo.value.errors)
        assert len(registry) == 0

    def test_rejects_non_mapping(self):
        with pytest.raises(ActionValidationError, match="expected a mapping"):
            ActionRegistry().register(["not an action"])

    def test_collects_every_error_in_batch(self):
        with pytest.raises(ActionValidationError) as excinfo:
            ActionRegistry().register([
                {"name": "a", "execute": noop},
                {"name": "b", "description": "d", "execute": None},
            ])
        assert len(excinfo.value.errors) == 2

    def test_invalid_member_rejects_whole_batch(self):
        registry = ActionRegistry()
        with pytest.raises(ActionValidationError):
            registry.register([make("good"), {"name": "bad"}])
        assert "good" not in registry

    def test_accepts_camel_case_hooks(self):
        hook = lambda ctx: None  # noqa: E731
        definition = coerce_definition({
            "name": "a", "description": "d", "execute": noop,
            "onRun": hook, "onComplete": hook, "onError": hook,
            "interval": {"every": 2, "unit": "hours"},
        })
        assert definition.on_run is hook
        assert definition.on_complete is hook
        assert definition.on_error is hook
        assert definition.interval == ActionInterval(every=2, unit="hours")

    def test_interval_mapping_on_definition_is_converted(self):
        registry = ActionRegistry()
        (entry,) = registry.register([make(interval={"every": 2, "unit": "seconds"})])
        assert entry.definition.interval == ActionInterval(every=2, unit="seconds")
        assert interval_milliseconds(entry.definition) == 2000

    def test_interval_mapping_on_definition_is_validated(self):
        with pytest.raises(ActionValidationError, match="positive integer"):
            ActionRegistry().register([make(interval={"every": 0})])

    def test_accepts_snake_case_hooks(self):
        hook = lambda ctx: None  # noqa: E731
        definition = coerce_definition({"name": "a", "description": "d", "execute": noop,
                                        "on_complete": hook})
        assert definition.on_complete is hook


class TestDuplicates:

    def test_duplicate_in_same_batch_registers_neither(self):
        registry = ActionRegistry()
        with pytest.raises(ActionValidationError, match="Duplicate action name: twin"):
            registry.register([make("twin"), make("twin")])
        assert "twin" not in registry
        assert len(registry) == 0

    def test_duplicate_of_existing_registers_nothing_from_batch(self):
        registry = ActionRegistry()
        registry.register([make("first")])
        with pytest.raises(ActionValidationError, match="Duplicate action name: first"):
            registry.register([make("second"), make("first")])
        assert registry.names() == ["first"]


class TestEntries:

    def test_initial_state(self, clock):
        registry = ActionRegistry(clock=clock)
        (entry,) = registry.register([make(interval=ActionInterval(every=10, unit="seconds"))])
        assert entry.next_due_at == clock() + timedelta(seconds=10)
        assert entry.running is False
        assert entry.has_fired is False

    def test_unscheduled_entry_gets_due_time_but_is_never_due(self, clock):
        registry = ActionRegistry(clock=clock)
        (entry,) = registry.register([make()])
        assert entry.next_due_at == clock() + timedelta(minutes=1)
        assert registry.claim_due(clock() + timedelta(days=365)) == []
        assert entry.running is False

    def test_claim_due_respects_due_times(self, clock):
        registry = ActionRegistry(clock=clock)
        fast, slow = registry.register([
            make("fast", interval=ActionInterval(every=1, unit="seconds")),
            make("slow", interval=ActionInterval(every=1, unit="hours")),
        ])
        assert registry.claim_due(clock()) == []
        assert registry.claim_due(clock() + timedelta(seconds=1)) == [fast]
        registry.complete(fast, clock())
        assert set(registry.claim_due(clock() + timedelta(hours=2))) == {fast, slow}

    def test_running_entry_is_not_due(self, clock):
        registry = ActionRegistry(clock=clock)
        (entry,) = registry.register([make(interval=ActionInterval(every=1, unit="seconds"))])
        assert entry.acquire()
        assert registry.claim_due(clock() + timedelta(minutes=5)) == []
        registry.complete(entry, clock())
        assert entry.running is False

    def test_claim_due_takes_guards(self, clock):
        registry = ActionRegistry(clock=clock)
        due, held = registry.register([
            make("due", interval=ActionInterval(every=1, unit="seconds")),
            make("held", interval=ActionInterval(every=1, unit="seconds")),
        ])
        assert held.acquire()
        later = clock() + timedelta(seconds=5)
        assert registry.claim_due(later) == [due]
        assert due.running is True
        assert registry.claim_due(later) == []
        registry.complete(due, later)
        held.release()
        assert due.next_due_at == later + timedelta(seconds=1)

    def test_guard_is_exclusive(self):
        (entry,) = ActionRegistry().register([make()])
        assert entry.acquire() is True
        assert entry.acquire() is False
        entry.release()
        assert entry.acquire() is True

    def test_get(self):
        registry = ActionRegistry()
        registry.register([make("a")])
        assert registry.get("a").name == "a"
        assert registry.get("missing") is None
