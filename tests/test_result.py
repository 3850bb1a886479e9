"""
Unit tests for the Ok/Err outcome types.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sumilang.result import Err, Ok


class TestResultType:
    """Tests for Ok and Err result types."""

    def test_ok_is_ok(self):
        """Ok.is_ok() should return True."""
        result = Ok("form")
        assert result.is_ok() is True
        assert result.is_err() is False

    def test_err_is_err(self):
        """Err.is_err() should return True."""
        result = Err("Read error: unexpected )")
        assert result.is_err() is True
        assert result.is_ok() is False

    def test_ok_unwrap(self):
        assert Ok(42).unwrap() == 42

    def test_ok_unwrap_none(self):
        """Ok can carry nil."""
        assert Ok(None).unwrap() is None

    def test_err_unwrap_raises(self):
        """Err.unwrap() should raise RuntimeError naming the error."""
        with pytest.raises(RuntimeError, match="Called unwrap.*bad token"):
            Err("bad token").unwrap()

    def test_err_str(self):
        """Err prints as its message."""
        assert str(Err("Read error: EOF while reading")) == "Read error: EOF while reading"
        assert repr(Ok(1)) == "Ok(1)"
