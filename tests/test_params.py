"""Tests for placeholder generation and parameter binding."""

import threading
from datetime import date
from decimal import Decimal

from recordkit import DEFAULT_COUNTER, ParameterBinder, PlaceholderCounter


class TestPlaceholderCounter:
    """Tests for the shared counter."""

    def test_monotonic(self):
        """Each call returns the next integer."""
        counter = PlaceholderCounter()
        assert [counter.next() for _ in range(3)] == [1, 2, 3]
        assert counter.value == 3

    def test_reset(self):
        """Reset restarts numbering."""
        counter = PlaceholderCounter(start=10)
        assert counter.next() == 11
        counter.reset()
        assert counter.next() == 1

    def test_unique_across_threads(self):
        """Concurrent callers never receive the same number."""
        counter = PlaceholderCounter()
        seen: list[int] = []
        lock = threading.Lock()

        def draw():
            values = [counter.next() for _ in range(500)]
            with lock:
                seen.extend(values)

        threads = [threading.Thread(target=draw) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(seen) == 4000
        assert len(set(seen)) == 4000


class TestParameterBinder:
    """Tests for the binding policy."""

    def test_string_is_bound(self):
        """Strings become placeholders."""
        binder = ParameterBinder(PlaceholderCounter())
        assert binder.bind("Alice") == ":ph1"
        assert binder.params == {":ph1": "Alice"}

    def test_numbers_are_inlined(self):
        """Integers and floats are written into the SQL as-is."""
        binder = ParameterBinder(PlaceholderCounter())
        assert binder.bind(5) == 5
        assert binder.bind(1.5) == 1.5
        assert binder.params == {}

    def test_bool_is_inlined_as_int(self):
        """Booleans become 1/0."""
        binder = ParameterBinder(PlaceholderCounter())
        assert binder.bind(True) == 1
        assert binder.bind(False) == 0
        assert binder.params == {}

    def test_none_passes_through(self):
        """None is left for the expression to render as NULL."""
        binder = ParameterBinder(PlaceholderCounter())
        assert binder.bind(None) is None
        assert binder.params == {}

    def test_list_elements_are_all_bound(self):
        """Every list element gets its own placeholder, numbers included."""
        binder = ParameterBinder(PlaceholderCounter())
        assert binder.bind([1, "two", 3]) == [":ph1", ":ph2", ":ph3"]
        assert binder.params == {":ph1": 1, ":ph2": "two", ":ph3": 3}

    def test_other_scalars_are_bound(self):
        """Dates, decimals and bytes go through the driver."""
        binder = ParameterBinder(PlaceholderCounter())
        tokens = [binder.bind(date(2024, 1, 1)), binder.bind(Decimal("1.10")), binder.bind(b"\x00")]
        assert tokens == [":ph1", ":ph2", ":ph3"]

    def test_custom_prefix(self):
        """The token prefix is configurable."""
        binder = ParameterBinder(PlaceholderCounter(), prefix=":p")
        assert binder.bind("x") == ":p1"

    def test_binders_share_the_default_counter(self):
        """Two binders never hand out the same token."""
        first = ParameterBinder()
        second = ParameterBinder()
        tokens = {first.bind("a"), second.bind("b"), first.bind("c")}
        assert tokens == {":ph1", ":ph2", ":ph3"}
        assert DEFAULT_COUNTER.value == 3

    def test_clear(self):
        """Clearing drops the params but not the counter position."""
        binder = ParameterBinder(PlaceholderCounter())
        binder.bind("a")
        binder.clear()
        assert binder.params == {}
        assert binder.bind("b") == ":ph2"
