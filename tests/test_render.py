"""
Tests for valuestack.render module.
"""

from __future__ import annotations

import json

import pytest
import yaml

from valuestack.config.resolver import resolve
from valuestack.exceptions import ConfigError
from valuestack.render import render


@pytest.fixture
def resolved():
    return resolve(
        {"replicas": 3, "image": {"tag": "1.4.2", "pullPolicy": "IfNotPresent"},
         "args": ["--port", 8080], "debug": False},
        "prod",
    )


class TestRender:
    """Tests for each output format."""

    def test_yaml_keeps_merge_order(self, resolved):
        """Test that YAML output parses back and keeps key order."""
        text = render(resolved, "yaml")

        assert yaml.safe_load(text) == resolved.to_dict()
        assert text.index("replicas") < text.index("image")

    def test_json_sorted(self, resolved):
        """Test that JSON output is sorted and complete."""
        text = render(resolved, "json")

        assert json.loads(text) == resolved.to_dict()
        assert text.index('"args"') < text.index('"replicas"')

    def test_flat(self, resolved):
        """Test one sorted line per leaf, strings unquoted."""
        lines = render(resolved, "flat").splitlines()

        assert lines == [
            "args[0]=--port",
            "args[1]=8080",
            "debug=false",
            "image.pullPolicy=IfNotPresent",
            "image.tag=1.4.2",
            "replicas=3",
        ]

    def test_unknown_format(self, resolved):
        """Test that unsupported formats raise ConfigError."""
        with pytest.raises(ConfigError):
            render(resolved, "toml")

    def test_json_mixed_key_types(self):
        """Test that int and str keys in one mapping render as JSON."""
        resolved = resolve({"nodePorts": {80: 30080, "https": 30443}}, "dev")

        assert json.loads(render(resolved, "json")) == {
            "nodePorts": {"80": 30080, "https": 30443}
        }
