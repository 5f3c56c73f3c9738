# =============================================================================
# test_growstring.py - Growable Buffer Unit Tests
# =============================================================================
# Tests for GrowString, the character accumulator of the inline backend.
#
# Test coverage includes:
#   - Initial capacity and the 2n+1 append growth policy
#   - write and concat resizing capacity to exactly the new length
#   - NUL termination of the stored contents
#   - Capacity limits raising OutOfMemoryError
#   - Use after free
# =============================================================================

import pytest

from stutter.errors import OutOfMemoryError
from stutter.growstring import GrowString


# =============================================================================
# Construction and Append Tests
# =============================================================================

class TestAppend:
    """Test creation and single-character appends."""

    def test_new_buffer_is_empty(self):
        gs = GrowString()
        assert gs.size == 0
        assert gs.capacity == 10
        assert gs.view() == ""
        assert len(gs) == 0

    def test_append_accumulates(self):
        gs = GrowString()
        for letter in "hello":
            gs.append(letter)
        assert gs.view() == "hello"
        assert gs.size == 5
        assert gs.capacity == 10

    def test_capacity_unchanged_until_full(self):
        gs = GrowString().extend("x" * 10)
        assert gs.capacity == 10

    def test_growth_is_twice_plus_one(self):
        """The eleventh character grows capacity from 10 to 21."""
        gs = GrowString().extend("x" * 11)
        assert gs.capacity == 21
        gs.extend("y" * 11)
        assert gs.capacity == 43
        assert gs.view() == "x" * 11 + "y" * 11

    def test_append_requires_single_character(self):
        gs = GrowString()
        with pytest.raises(ValueError):
            gs.append("ab")
        with pytest.raises(ValueError):
            gs.append("")

    def test_append_returns_buffer(self):
        gs = GrowString()
        assert gs.append("a").append("b") is gs
        assert str(gs) == "ab"


# =============================================================================
# Write and Concat Tests
# =============================================================================

class TestWriteAndConcat:
    """Test whole-content replacement and in-place concatenation."""

    def test_write_sets_exact_capacity(self):
        gs = GrowString().write("hello")
        assert gs.view() == "hello"
        assert gs.size == 5
        assert gs.capacity == 5

    def test_write_replaces_contents(self):
        gs = GrowString.from_text("a longer text")
        gs.write("ab")
        assert gs.view() == "ab"
        assert gs.capacity == 2

    def test_write_empty_then_append(self):
        gs = GrowString().write("")
        assert gs.capacity == 0
        gs.append("a")
        assert gs.capacity == 1
        assert gs.view() == "a"

    def test_concat_order_and_capacity(self):
        first = GrowString.from_text("ab")
        second = GrowString.from_text("cde")
        first.concat(second)
        assert first.view() == "abcde"
        assert first.size == 5
        assert first.capacity == 5

    def test_concat_leaves_other_unchanged(self):
        first = GrowString.from_text("ab")
        second = GrowString.from_text("cde")
        first.concat(second)
        assert second.view() == "cde"

    def test_concat_empty_buffer(self):
        first = GrowString.from_text("ab")
        first.concat(GrowString())
        assert first.view() == "ab"
        assert first.capacity == 2

    def test_concat_with_itself_doubles(self):
        gs = GrowString.from_text("ab")
        gs.concat(gs)
        assert gs.view() == "abab"


# =============================================================================
# Termination Tests
# =============================================================================

class TestTermination:
    """The stored contents always end in a NUL terminator."""

    def test_empty_buffer_is_terminated(self):
        assert GrowString().terminated() == "\0"

    def test_terminated_after_append(self):
        gs = GrowString().extend("abc")
        assert gs.terminated() == "abc\0"

    def test_terminated_after_write_and_concat(self):
        gs = GrowString().write("ab")
        assert gs.terminated() == "ab\0"
        gs.concat(GrowString.from_text("cd"))
        assert gs.terminated() == "abcd\0"

    def test_terminated_after_growth(self):
        gs = GrowString().extend("0123456789AB")
        assert gs.terminated() == "0123456789AB\0"


# =============================================================================
# Allocation Failure Tests
# =============================================================================

class TestAllocationLimits:
    """Test that exceeding max_capacity raises OutOfMemoryError."""

    def test_append_beyond_limit(self):
        gs = GrowString(max_capacity=10).extend("x" * 10)
        with pytest.raises(OutOfMemoryError):
            gs.append("y")

    def test_failed_append_leaves_buffer_unchanged(self):
        gs = GrowString(max_capacity=10).extend("x" * 10)
        with pytest.raises(OutOfMemoryError):
            gs.append("y")
        assert gs.view() == "x" * 10
        assert gs.capacity == 10

    def test_write_beyond_limit(self):
        gs = GrowString(max_capacity=12)
        with pytest.raises(OutOfMemoryError) as exc_info:
            gs.write("x" * 13)
        assert exc_info.value.requested == 13
        assert exc_info.value.limit == 12

    def test_concat_beyond_limit(self):
        first = GrowString(max_capacity=10).write("x" * 6)
        second = GrowString.from_text("y" * 6)
        with pytest.raises(OutOfMemoryError):
            first.concat(second)
        assert first.view() == "x" * 6

    def test_limit_below_initial_capacity(self):
        with pytest.raises(OutOfMemoryError):
            GrowString(max_capacity=5)


# =============================================================================
# Free Tests
# =============================================================================

class TestFree:
    """Test releasing the storage."""

    def test_free_twice_is_safe(self):
        gs = GrowString.from_text("abc")
        gs.free()
        gs.free()
        assert gs.is_freed
        assert gs.size == 0

    def test_use_after_free_raises(self):
        gs = GrowString.from_text("abc")
        gs.free()
        with pytest.raises(ValueError):
            gs.view()
        with pytest.raises(ValueError):
            gs.append("a")

    def test_repr_after_free(self):
        gs = GrowString()
        gs.free()
        assert repr(gs) == "GrowString(<freed>)"
