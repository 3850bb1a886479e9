# ==========================================
# TAGGED OUTCOMES: Ok / Err
# ==========================================

class Result:
    """Base class for tagged outcomes (Ok or Err)."""

    def is_ok(self) -> bool:
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self):
        """Get value or raise error."""
        if isinstance(self, Ok):
            return self.value
        else:
            raise RuntimeError(f"Called unwrap() on Err: {self.error}")


class Ok(Result):
    """Success case, carrying a value."""

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f"Ok({self.value!r})"


class Err(Result):
    """Failure case, carrying a message."""

    def __init__(self, error):
        self.error = error

    def __repr__(self):
        return f"Err({self.error!r})"

    def __str__(self):
        return str(self.error)
