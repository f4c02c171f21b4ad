"""Tests for mew package exports and metadata."""

import mew


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(mew.__version__, str)
        assert "0.1.0" in mew.__version__

    def test_free_threading_declaration(self) -> None:
        assert mew._Py_mod_gil == 0

    def test_all_exports_resolvable(self) -> None:
        for name in mew.__all__:
            getattr(mew, name)

    def test_lazy_exports_are_the_real_objects(self) -> None:
        from mew.app import check, serve
        from mew.config import ServerConfig

        assert mew.serve is serve
        assert mew.check is check
        assert mew.ServerConfig is ServerConfig

    def test_invalid_attribute_raises(self) -> None:
        import pytest

        with pytest.raises(AttributeError, match="no attribute"):
            mew.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
