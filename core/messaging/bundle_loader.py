"""Load a class by name from a user supplied code bundle.

A bundle is one of:

* a single ``.py`` source file,
* a directory that acts as an import root,
* a zip-format archive (``.zip``, ``.whl``, ``.egg``, ``.pyz``, ``.jar``)
  containing Python sources, imported through :mod:`zipimport`.

The bundle is only on the import path while the ``load_class`` block is
active. Modules imported from it are evicted from :data:`sys.modules` on exit
so a later load of another bundle cannot observe stale code. Anything that
needs the class's module globals (for example resolving postponed
annotations) must therefore run inside the block.
"""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import os
import sys
import zipfile
from contextlib import contextmanager
from pathlib import Path
from types import ModuleType
from typing import Iterator

from core.utils.logging import get_logger

__all__ = [
    "BundleLoadError",
    "BundleNotFoundError",
    "ClassNotFoundInBundleError",
    "bundle_on_path",
    "load_class",
]

_logger = get_logger(__name__)


class BundleLoadError(RuntimeError):
    """Raised when a bundle cannot be imported."""


class BundleNotFoundError(BundleLoadError, FileNotFoundError):
    """Raised when the bundle path does not exist."""


class ClassNotFoundInBundleError(BundleLoadError, LookupError):
    """Raised when the requested class is not present in the bundle."""


def _is_under(path: str, root: str) -> bool:
    if not path:
        return False
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def _module_is_from(module: ModuleType, root: str) -> bool:
    if _is_under(getattr(module, "__file__", None) or "", root):
        return True
    search = getattr(module, "__path__", None) or []
    return any(_is_under(str(entry), root) for entry in search)


@contextmanager
def bundle_on_path(root: Path) -> Iterator[str]:
    """Temporarily expose ``root`` as an import root."""

    entry = str(root)
    before = set(sys.modules)
    sys.path.insert(0, entry)
    importlib.invalidate_caches()
    try:
        yield entry
    finally:
        if entry in sys.path:
            sys.path.remove(entry)
        sys.path_importer_cache.pop(entry, None)
        for name in set(sys.modules) - before:
            module = sys.modules.get(name)
            if module is not None and _module_is_from(module, entry):
                del sys.modules[name]


def _resolve_attribute(module: ModuleType, attr_path: str, class_name: str) -> type:
    target: object = module
    for part in attr_path.split("."):
        if not hasattr(target, part):
            raise ClassNotFoundInBundleError(f"Class '{class_name}' not found in bundle")
        target = getattr(target, part)
    if not inspect.isclass(target):
        raise ClassNotFoundInBundleError(f"'{class_name}' does not reference a class")
    return target


def _exec_source_file(bundle: Path, class_name: str) -> type:
    stem = bundle.stem
    module_name, _, attr_path = class_name.rpartition(".")
    if module_name and module_name != stem:
        raise ClassNotFoundInBundleError(
            f"Class '{class_name}' not found in bundle {bundle}: module '{module_name}' "
            f"does not match '{stem}'"
        )
    spec = importlib.util.spec_from_file_location(stem, bundle)
    if spec is None or spec.loader is None:
        raise BundleLoadError(f"Bundle {bundle} is not a loadable Python module")
    module = importlib.util.module_from_spec(spec)
    sys.modules[stem] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise BundleLoadError(f"Failed to import bundle {bundle}: {exc}") from exc
    return _resolve_attribute(module, attr_path, class_name)


def _import_from_root(bundle: Path, entry: str, class_name: str) -> type:
    module_name, _, attr_path = class_name.rpartition(".")
    if not module_name:
        raise ClassNotFoundInBundleError(
            f"Class name '{class_name}' must be fully qualified (package.module.ClassName)"
        )
    # Walk back so nested classes (pkg.mod.Outer.Inner) resolve as well.
    candidate, remainder = module_name, attr_path
    while True:
        try:
            module = importlib.import_module(candidate)
        except ModuleNotFoundError as exc:
            missing = exc.name or ""
            if not missing or not (missing == candidate or candidate.startswith(missing + ".")):
                raise BundleLoadError(
                    f"Failed to import '{candidate}' from bundle {bundle}: {exc}"
                ) from exc
            head, _, tail = candidate.rpartition(".")
            if not head:
                raise ClassNotFoundInBundleError(
                    f"Class '{class_name}' not found in bundle {bundle}"
                ) from exc
            candidate, remainder = head, f"{tail}.{remainder}"
            continue
        except Exception as exc:
            raise BundleLoadError(
                f"Failed to import '{candidate}' from bundle {bundle}: {exc}"
            ) from exc
        if not _module_is_from(module, entry):
            raise ClassNotFoundInBundleError(
                f"Module '{candidate}' resolved outside of bundle {bundle}"
            )
        return _resolve_attribute(module, remainder, class_name)


@contextmanager
def load_class(bundle_path: str | Path, class_name: str) -> Iterator[type]:
    """Yield the class ``class_name`` defined inside the bundle at ``bundle_path``."""

    if not class_name or not class_name.strip():
        raise ClassNotFoundInBundleError("Class name must not be empty")
    class_name = class_name.strip()
    bundle = Path(bundle_path).expanduser().resolve()
    if not bundle.exists():
        raise BundleNotFoundError(f"Bundle not found: {bundle_path}")

    _logger.debug("Loading class from bundle", bundle=str(bundle), class_name=class_name)
    if bundle.is_file() and bundle.suffix == ".py":
        shadowed = sys.modules.get(bundle.stem)
        try:
            with bundle_on_path(bundle.parent):
                yield _exec_source_file(bundle, class_name)
        finally:
            if shadowed is not None:
                sys.modules[bundle.stem] = shadowed
            else:
                sys.modules.pop(bundle.stem, None)
        return
    if bundle.is_dir() or zipfile.is_zipfile(bundle):
        with bundle_on_path(bundle) as entry:
            yield _import_from_root(bundle, entry, class_name)
        return
    raise BundleLoadError(
        f"Bundle {bundle_path} is not a loadable module "
        "(expected a .py file, a directory or a zip archive)"
    )
