from __future__ import annotations

import importlib


def test_root_package_exposes_metadata():
    pkg = importlib.import_module("multishoot")
    assert pkg.__version__ == "0.1.0"


def test_public_names_resolve():
    pkg = importlib.import_module("multishoot")
    missing = [name for name in pkg.__all__ if not hasattr(pkg, name)]
    assert missing == []
