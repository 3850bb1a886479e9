import sys, math, itertools, functools
from typing import Any

CORE_NS_NAME = "sumi.core"
