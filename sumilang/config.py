# ==========================================
# CONFIGURATION
# ==========================================
import json
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from sumilang.errors import SumiConfigError

CONFIG_FILE = "sumi.json"
USER_CONFIG = os.path.join("~", ".sumi", CONFIG_FILE)


class ReplOptions(BaseModel):
    """Session options, from ``sumi.json`` and the command line."""
    analyze_path: Optional[str] = None
    verbose: bool = False
    warn_on_undeclared: bool = False
    # symbol -> handler(host, session, *args); only settable from Python
    special_fns: Dict[Any, Any] = Field(default_factory=dict, exclude=True)
    source_paths: List[str] = Field(default_factory=lambda: ["src", "."])
    output_dir: str = ".repl"
    host: str = "inprocess"
    host_url: str = "http://127.0.0.1:9630"
    python: Optional[str] = None
    timeout: Optional[float] = None


def load_config(path=None, **overrides):
    """Load options from ``path``, or from ``sumi.json`` / ``~/.sumi/sumi.json``.

    Keyword overrides (typically command-line flags) win over file values;
    overrides that are ``None`` are ignored.

    Raises:
        SumiConfigError: If the file is unreadable, not JSON or has invalid values
    """
    if path is not None:
        if not os.path.exists(path):
            raise SumiConfigError(f"Config file not found: {path}")
        paths = [path]
    else:
        paths = [CONFIG_FILE, os.path.expanduser(USER_CONFIG)]

    data = {}
    for p in paths:
        if os.path.exists(p):
            try:
                with open(p, "r") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise SumiConfigError(f"Could not read {p}: {e}") from e
            if not isinstance(data, dict):
                raise SumiConfigError(f"{p} must contain a JSON object")
            break

    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ReplOptions(**data)
    except ValidationError as e:
        raise SumiConfigError(f"Invalid configuration: {e}") from e
