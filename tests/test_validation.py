"""
Tests for valuestack.validation module.

Tests chart validation including:
- Valid charts across all discovered environments
- Structural problems (missing files, bad YAML, non-mapping roots)
- Merge and reference errors collected per environment
- Warnings and verbose output
"""

from __future__ import annotations

from valuestack.logging import DefaultLogger, get_global_logger, set_global_logger
from valuestack.validation import validate_chart


class TestValidateChart:
    """Tests for validate_chart."""

    def test_valid_chart(self, platform_tree):
        """Test that the sample platform validates cleanly."""
        result = validate_chart(platform_tree)

        assert result.status == "valid"
        assert result.errors == []
        assert result.environments == ["dev", "prod"]

    def test_selected_environments(self, platform_tree):
        """Test that only the requested environments are checked."""
        result = validate_chart(platform_tree, ["prod"])

        assert result.environments == ["prod"]
        assert result.status == "valid"

    def test_missing_chart_dir(self, tmp_test_dir):
        """Test that a missing directory is reported, not raised."""
        result = validate_chart(tmp_test_dir / "missing")

        assert result.status == "invalid"
        assert "not found" in result.errors[0]

    def test_missing_values_file(self, tmp_test_dir):
        """Test that a chart without values.yaml is invalid."""
        (tmp_test_dir / "chart").mkdir()

        result = validate_chart(tmp_test_dir / "chart")

        assert result.status == "invalid"
        assert "values.yaml" in result.errors[0]

    def test_yml_base_file(self, create_yaml_file, tmp_test_dir):
        """Test that values.yml is accepted as the base file."""
        create_yaml_file("chart/values.yml", {"replicas": 1})
        create_yaml_file("chart/values-dev.yaml", {"replicas": 2})

        result = validate_chart(tmp_test_dir / "chart")

        assert result.status == "valid"
        assert result.environments == ["dev"]

    def test_invalid_yaml(self, tmp_test_dir):
        """Test that a broken base file is reported."""
        chart = tmp_test_dir / "chart"
        chart.mkdir()
        (chart / "values.yaml").write_text("invalid: yaml: syntax: error:")

        result = validate_chart(chart)

        assert result.status == "invalid"
        assert "Error parsing YAML" in result.errors[0]

    def test_errors_collected_per_environment(self, platform_tree, create_yaml_file):
        """Test that every failing environment is reported."""
        create_yaml_file("charts/orders/values-broken.yaml", {"service": "ClusterIP"})
        create_yaml_file(
            "charts/orders/values-unset.yaml", {"extra": "${shared.doesNotExist}"}
        )

        result = validate_chart(platform_tree)

        assert result.status == "invalid"
        assert len(result.errors) == 2
        assert any(err.startswith("broken:") and "service" in err for err in result.errors)
        assert any(err.startswith("unset:") and "doesNotExist" in err for err in result.errors)

    def test_no_overlays_warns(self, create_yaml_file, tmp_test_dir):
        """Test that a chart without overlays validates its base with a warning."""
        create_yaml_file("chart/values.yaml", {"replicas": 1})

        result = validate_chart(tmp_test_dir / "chart")

        assert result.status == "valid"
        assert any("No environment overlays" in w for w in result.warnings)

    def test_missing_chart_overlay_becomes_warning(self, platform_tree, create_yaml_file):
        """Test that a shared-only environment is a warning for the chart."""
        create_yaml_file("shared/values-staging.yaml", {"domain": "staging.internal"})

        result = validate_chart(platform_tree)

        assert result.status == "valid"
        assert any(w.startswith("staging:") for w in result.warnings)

    def test_global_logger_restored(self, platform_tree):
        """Test that validation puts the caller's logger back."""
        logger = DefaultLogger()
        set_global_logger(logger)

        validate_chart(platform_tree)

        assert get_global_logger() is logger

    def test_verbose_mode(self, platform_tree, capsys):
        """Test that verbose mode prints progress."""
        result = validate_chart(platform_tree, verbose=True)
        captured = capsys.readouterr()

        assert result.status == "valid"
        assert "Validating chart" in captured.out
        assert "[OK] prod" in captured.out
        assert "Chart is valid" in captured.out
