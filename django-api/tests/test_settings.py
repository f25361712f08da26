"""Tests for environment-driven project settings."""

import importlib

from boxoffice import settings as project_settings


class TestDebugFlag:
    def test_debug_is_off_unless_enabled(self, monkeypatch):
        """Given no DJANGO_DEBUG, DEBUG is False; DJANGO_DEBUG=True turns it on."""
        monkeypatch.delenv("DJANGO_DEBUG", raising=False)
        assert importlib.reload(project_settings).DEBUG is False

        monkeypatch.setenv("DJANGO_DEBUG", "True")
        assert importlib.reload(project_settings).DEBUG is True
