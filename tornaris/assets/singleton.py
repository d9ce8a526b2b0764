from __future__ import annotations

from pathlib import Path

from tornaris.assets.registry import Catalog, load_catalog

_CATALOG: Catalog | None = None


def init_catalog(*, project_root: Path) -> Catalog:
    """Load `<project_root>/assets` into the process-wide catalog.

    Only the first call reads the CSVs; later calls hand back the same catalog
    whatever root they pass.
    """

    global _CATALOG
    if _CATALOG is None:
        _CATALOG = load_catalog(root=project_root)
    return _CATALOG


def reset_catalog_for_tests() -> None:
    # Lets a test run point the loader at its own box of cards.
    global _CATALOG
    _CATALOG = None


def get_catalog() -> Catalog:
    catalog = _CATALOG
    if catalog is None:
        raise RuntimeError("No catalog loaded; call init_catalog() during startup")
    return catalog
