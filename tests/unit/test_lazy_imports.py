"""
Unit tests for the nostrkit package's lazy top-level imports.

Tests:
- Every name in __all__ resolves to its subpackage object
- Unknown attributes raise AttributeError
- __version__ and __dir__
"""

import importlib

import pytest

import nostrkit


class TestLazyImports:
    """nostrkit.__getattr__ lazy loading."""

    @pytest.mark.parametrize("name", nostrkit.__all__)
    def test_resolves(self, name):
        module_path, attr_name = nostrkit._LAZY_IMPORTS[name]
        expected = getattr(importlib.import_module(module_path), attr_name)
        assert getattr(nostrkit, name) is expected

    def test_all_matches_lazy_table(self):
        assert set(nostrkit.__all__) == set(nostrkit._LAZY_IMPORTS)

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError, match="no attribute"):
            nostrkit.DoesNotExist  # noqa: B018

    def test_dir(self):
        assert dir(nostrkit) == sorted(nostrkit.__all__)

    def test_version(self):
        assert isinstance(nostrkit.__version__, str)
