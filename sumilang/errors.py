"""
Error types for the Sumi compiler and session engine.
"""


class SumiCompileError(Exception):
    """Custom exception for Sumi compilation errors with line numbers and hints."""
    def __init__(self, message, line_number=None, column=None, context=None, suggestion=None):
        self.message = message
        self.line_number = line_number
        self.column = column
        self.context = context  # The offending line
        self.suggestion = suggestion  # How to fix it
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with context and suggestion."""
        lines = [self._title()]
        if self.line_number:
            lines.append(f" at line {self.line_number}")
            if self.column:
                lines.append(f", column {self.column}")
        lines.append(f": {self.message}")

        if self.context:
            lines.append(f"\n   > {self.context}")

        if self.suggestion:
            lines.append(f"\n   hint: {self.suggestion}")

        return "".join(lines)

    def _title(self):
        return "Compile error"


class SumiReadError(SumiCompileError):
    """Raised when the reader cannot produce a form from its input."""

    def _title(self):
        return "Read error"


class ResourceNotFound(Exception):
    """A file or namespace could not be located on the source paths."""


class HostError(Exception):
    """A hard failure of an execution host (lost worker, connection refused...).

    Distinct from ordinary program errors, which hosts report as a status.
    """


class SumiConfigError(Exception):
    """Configuration file could not be read or validated."""


def get_line_context(source_code, line_number):
    """Extract the line of code from source by line number (1-based)."""
    if not source_code or line_number is None:
        return None
    source_lines = source_code.split('\n')
    if 0 < line_number <= len(source_lines):
        return source_lines[line_number - 1].strip()
    return None
