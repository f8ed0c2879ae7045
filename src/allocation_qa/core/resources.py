"""importlib.resources helpers for files shipped inside the package.

Works both in development (editable install) and in a packaged wheel.
"""

from __future__ import annotations

from pathlib import Path


def _resources_dir() -> Path:
    """Return the Path to allocation_qa/resources/ inside the package."""
    import importlib.resources as _ir

    ref = _ir.files("allocation_qa.resources")
    # hatchling ships resources as data files so this is always a real directory
    return Path(str(ref))


def get_default_config_path() -> Path:
    """Return the absolute Path to ``default_config.yml``."""
    return _resources_dir() / "default_config.yml"
