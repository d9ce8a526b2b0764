from __future__ import annotations

from pathlib import Path

from tornaris.assets.registry import Catalog
from tornaris.assets.singleton import init_catalog


def init_catalog_for_app() -> Catalog:
    # project root is two levels up from this file: tornaris/assets/startup.py
    project_root = Path(__file__).resolve().parents[2]
    return init_catalog(project_root=project_root)
