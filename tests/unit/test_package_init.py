"""Tests for tilth package-level lazy imports."""
from __future__ import annotations

import pytest


class TestPackageGetattr:
    """Tests for tilth.__getattr__ lazy loading."""

    def test_service_lazy_import(self):
        import tilth
        service_cls = tilth.ExpertiseService
        assert service_cls.__name__ == "ExpertiseService"

    def test_unknown_attribute_raises(self):
        import tilth
        with pytest.raises(AttributeError, match="has no attribute"):
            _ = tilth.NonexistentThing

    def test_version(self):
        import tilth
        assert tilth.__version__.count(".") == 2
