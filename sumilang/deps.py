"""
Namespace dependency graph for Sumi sources.

Resolves ``(ns ...)`` requirements to ``.sumi`` files on the source paths,
compiles each namespace to a Python module under the output directory and
returns descriptors in load order (dependencies first). Takes the place of
inlining imports: every namespace stays a separate loadable unit so a host
can keep track of which ones it already ran.
"""
import os
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

from pydantic import BaseModel, Field

from sumilang.errors import ResourceNotFound, SumiCompileError
from sumilang.forms import is_ns_form
from sumilang.log import debug_log
from sumilang.reader import read_all
from sumilang.runtime import CORE_NS

SOURCE_EXT = ".sumi"
LIB_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "lib")


class DependencyDescriptor(BaseModel):
    """One loadable unit: what it provides, what it needs and where its code lives."""
    provides: List[str]
    requires: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    type: str = "source"  # "core" | "source" | "seed"
    source: Optional[str] = None  # path of the .sumi file, for source units


def core_descriptor():
    """The platform namespace, installed by every host at setup."""
    return DependencyDescriptor(provides=[CORE_NS], url="sumi:core", type="core")


def seed_descriptor(requires):
    """Synthetic entry point asking for the closure of ``requires``."""
    return DependencyDescriptor(provides=[], requires=list(requires), type="seed")


def ns_to_path(ns):
    """``my.app-core`` -> ``my/app_core.sumi``"""
    parts = ns.replace("-", "_").split(".")
    return os.path.join(*parts) + SOURCE_EXT


def search_paths(source_paths):
    return list(source_paths or []) + [LIB_DIR]


def find_source(ns, source_paths):
    """Locate the source file declaring namespace ``ns``.

    Raises:
        ResourceNotFound: If no source path holds the file
    """
    rel = ns_to_path(ns)
    for base in search_paths(source_paths):
        candidate = os.path.join(base, rel)
        if os.path.isfile(candidate):
            return os.path.abspath(candidate)
    raise ResourceNotFound(f"No such namespace: {ns}, could not locate {rel} on source paths")


def find_resource(path, source_paths):
    """Resolve a ``load-file`` argument: an absolute path, or a path relative
    to the working directory or to one of the source paths."""
    if os.path.isabs(path):
        if os.path.isfile(path):
            return path
        raise ResourceNotFound(f"Can't find {path}")
    if os.path.isfile(path):
        return os.path.abspath(path)
    for base in search_paths(source_paths):
        candidate = os.path.join(base, path)
        if os.path.isfile(candidate):
            return os.path.abspath(candidate)
    raise ResourceNotFound(f"Can't find {path} on source paths")


def output_path(ns, output_dir):
    return os.path.join(output_dir, ns_to_path(ns)[:-len(SOURCE_EXT)] + ".py")


def _is_stale(source, target):
    return not os.path.exists(target) or os.path.getmtime(source) > os.path.getmtime(target)


def compile_namespace(analyzer, opts, ns, visit=None):
    """Analyze and compile namespace ``ns``, returning its descriptor.

    ``visit`` is called with each required namespace after the ``ns`` header
    has been read but before the body is analyzed, so the body resolves
    against already-analyzed dependencies.
    """
    # Imported here to avoid a circular import (compiler builds on this module)
    from sumilang.compiler import compile_forms

    source = find_source(ns, opts.source_paths)
    with open(source, 'r') as f:
        forms = read_all(f.read())

    if not forms or not is_ns_form(forms[0]):
        raise SumiCompileError(f"{source} does not start with an ns declaration for {ns}")
    header = analyzer.analyze(analyzer.empty_env(), forms[0])
    if header["name"] != ns:
        raise SumiCompileError(
            f"Namespace {header['name']} found in {source}, expected {ns}",
            line_number=header["line"],
            suggestion=f"Rename the file or declare (ns {ns})",
        )
    requires = analyzer.get_namespace(ns).dependencies()
    for dep in requires:
        if visit is not None:
            visit(dep)

    code = compile_forms(analyzer, forms, source_name=source)
    target = output_path(ns, opts.output_dir)
    if _is_stale(source, target):
        debug_log(f"Compiling {ns} -> {target}")
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, 'w') as f:
            f.write(code)
    return DependencyDescriptor(
        provides=[ns],
        requires=requires,
        url=Path(os.path.abspath(target)).as_uri(),
        source=source,
    )


def add_dependencies(analyzer, opts, *inputs):
    """Every descriptor needed by ``inputs``, in a valid load order.

    The result starts with the ``sumi.core`` descriptor, continues with each
    required namespace after its own requirements (depth-first, post-order)
    and ends with ``inputs`` themselves.

    Raises:
        SumiCompileError: On a dependency cycle
        ResourceNotFound: If a required namespace has no source file
    """
    ordered = [core_descriptor()]
    done = {CORE_NS}
    provided_by_inputs = {p for d in inputs for p in d.provides}
    path = []

    def visit(ns):
        if ns in done:
            return
        if ns in path:
            cycle = " -> ".join(path[path.index(ns):] + [ns])
            raise SumiCompileError(f"Circular dependency detected: {cycle}")
        path.append(ns)
        desc = compile_namespace(analyzer, opts, ns, visit=visit)
        path.pop()
        done.add(ns)
        ordered.append(desc)

    for desc in inputs:
        for ns in desc.requires:
            if ns not in provided_by_inputs:
                visit(ns)
    ordered.extend(inputs)
    return ordered


def read_url(url):
    """Text of a ``file://`` resource named by a descriptor url."""
    parsed = urlparse(url)
    if parsed.scheme != "file":
        raise ResourceNotFound(f"Unsupported resource url: {url}")
    path = url2pathname(parsed.path)
    if not os.path.isfile(path):
        raise ResourceNotFound(f"Can't find {path}")
    with open(path, 'r') as f:
        return f.read()
