"""
Pytest configuration and shared fixtures for valuestack tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from valuestack.logging import SilentLogger, set_global_logger


@pytest.fixture(autouse=True)
def reset_global_logger():
    """Keep the global logger silent between tests (the CLI replaces it)."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("charts/orders/values.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        return path

    return _create


@pytest.fixture
def sample_shared_values() -> dict[str, Any]:
    """Shared platform defaults used by every chart."""
    return {
        "registry": "registry.example.com",
        "domain": "example.internal",
        "imagePullSecrets": ["regcred"],
        "resources": {"limits": {"cpu": "500m", "memory": "256Mi"}},
    }


@pytest.fixture
def sample_chart_values() -> dict[str, Any]:
    """Base values.yaml of the orders chart."""
    return {
        "replicaCount": 2,
        "image": {
            "registry": '${shared.registry | "docker.io"}',
            "repository": "${image.registry}/platform/orders",
            "tag": None,
            "pullPolicy": "IfNotPresent",
        },
        "imagePullSecrets": "${shared.imagePullSecrets}",
        "service": {"type": "ClusterIP", "port": 8080},
        "ingress": {
            "enabled": False,
            "host": "orders.${environment}.${shared.domain}",
        },
        "resources": "${shared.resources}",
        "env": {"LOG_LEVEL": "info"},
    }


@pytest.fixture
def platform_tree(
    tmp_test_dir: Path,
    create_yaml_file,
    sample_shared_values,
    sample_chart_values,
) -> Path:
    """
    Build a small platform repository and return the orders chart dir.

    Layout:
        shared/values.yaml
        shared/values-prod.yaml
        charts/orders/Chart.yaml
        charts/orders/values.yaml
        charts/orders/values-dev.yaml
        charts/orders/values-prod.yaml
    """
    create_yaml_file("shared/values.yaml", sample_shared_values)
    create_yaml_file(
        "shared/values-prod.yaml",
        {"resources": {"limits": {"cpu": "2", "memory": "1Gi"}}},
    )
    create_yaml_file(
        "charts/orders/Chart.yaml",
        {"apiVersion": "v2", "name": "orders", "version": "0.3.1", "appVersion": "1.4.2"},
    )
    create_yaml_file("charts/orders/values.yaml", sample_chart_values)
    create_yaml_file(
        "charts/orders/values-dev.yaml",
        {"env": {"LOG_LEVEL": "debug"}, "image": {"tag": "latest"}},
    )
    create_yaml_file(
        "charts/orders/values-prod.yaml",
        {"replicaCount": 5, "ingress": {"enabled": True}},
    )
    return tmp_test_dir / "charts" / "orders"
