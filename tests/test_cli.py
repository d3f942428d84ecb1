"""
Tests for valuestack.cli module.

Tests the command handlers end to end through main(argv), including
exit codes and output formatting.
"""

from __future__ import annotations

import json

import pytest
import yaml

from valuestack.cli import main


def run_cli(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestResolveCommand:
    """Tests for 'valuestack resolve'."""

    def test_resolve_to_stdout(self, platform_tree, capsys):
        """Test that stdout holds only the rendered YAML."""
        code = run_cli(["resolve", str(platform_tree), "-e", "prod"])
        captured = capsys.readouterr()

        assert code == 0
        data = yaml.safe_load(captured.out)
        assert data["replicaCount"] == 5
        assert data["image"]["tag"] == "1.4.2"

    def test_resolve_json_with_set(self, platform_tree, capsys):
        """Test JSON output with a --set override."""
        code = run_cli(
            [
                "resolve",
                str(platform_tree),
                "-e",
                "dev",
                "--format",
                "json",
                "--set",
                "image.tag=2.0.0",
            ]
        )
        captured = capsys.readouterr()

        assert code == 0
        assert json.loads(captured.out)["image"]["tag"] == "2.0.0"

    def test_resolve_to_file(self, platform_tree, tmp_test_dir, capsys):
        """Test writing to --output prints a summary."""
        out = tmp_test_dir / "out" / "prod.yaml"

        code = run_cli(["resolve", str(platform_tree), "-e", "prod", "-o", str(out)])
        captured = capsys.readouterr()

        assert code == 0
        assert yaml.safe_load(out.read_text())["ingress"]["enabled"] is True
        assert "RESOLVE RESULTS" in captured.out
        assert "Fingerprint:" in captured.out

    def test_unwritable_output(self, platform_tree, tmp_test_dir, capsys):
        """Test that a failed write reports an error and exits 1."""
        blocker = tmp_test_dir / "blocker"
        blocker.write_text("not a directory")

        code = run_cli(
            ["resolve", str(platform_tree), "-e", "prod", "-o", str(blocker / "out.yaml")]
        )
        captured = capsys.readouterr()

        assert code == 1
        assert "Error:" in captured.err
        assert "RESOLVE RESULTS" not in captured.out

    def test_resolve_error_exit_code(self, platform_tree, capsys):
        """Test that a resolution error returns 1 with a message."""
        code = run_cli(
            ["resolve", str(platform_tree), "-e", "prod", "--require", "missing.key"]
        )
        captured = capsys.readouterr()

        assert code == 1
        assert "Error:" in captured.err
        assert "missing.key" in captured.err

    def test_lenient_flag(self, platform_tree, create_yaml_file, capsys):
        """Test that --lenient lets a mismatched overlay replace."""
        create_yaml_file("charts/orders/values-broken.yaml", {"service": "ClusterIP"})

        assert run_cli(["resolve", str(platform_tree), "-e", "broken"]) == 1
        capsys.readouterr()

        code = run_cli(["resolve", str(platform_tree), "-e", "broken", "--lenient"])
        captured = capsys.readouterr()

        assert code == 0
        assert yaml.safe_load(captured.out)["service"] == "ClusterIP"


class TestValidateCommand:
    """Tests for 'valuestack validate'."""

    def test_valid(self, platform_tree, capsys):
        """Test a valid chart exits 0."""
        code = run_cli(["validate", str(platform_tree)])
        captured = capsys.readouterr()

        assert code == 0
        assert "[SUCCESS] Chart is valid!" in captured.out

    def test_invalid(self, platform_tree, create_yaml_file, capsys):
        """Test an invalid chart exits 1 and lists errors."""
        create_yaml_file("charts/orders/values-unset.yaml", {"x": "${nope}"})

        code = run_cli(["validate", str(platform_tree)])
        captured = capsys.readouterr()

        assert code == 1
        assert "[X] unset:" in captured.out


class TestDiffCommand:
    """Tests for 'valuestack diff'."""

    def test_diff_output(self, platform_tree, capsys):
        """Test that changes are listed."""
        code = run_cli(["diff", str(platform_tree), "dev", "prod"])
        captured = capsys.readouterr()

        assert code == 0
        assert "~ replicaCount: 2 -> 5" in captured.out

    def test_diff_exit_code(self, platform_tree, capsys):
        """Test --exit-code with and without differences."""
        assert run_cli(["diff", str(platform_tree), "dev", "prod", "--exit-code"]) == 1
        assert run_cli(["diff", str(platform_tree), "prod", "prod", "--exit-code"]) == 0
        assert "(no differences)" in capsys.readouterr().out


class TestEnvsCommand:
    """Tests for 'valuestack envs'."""

    def test_lists_environments(self, platform_tree, capsys):
        """Test one environment per line."""
        code = run_cli(["envs", str(platform_tree)])

        assert code == 0
        assert capsys.readouterr().out.split() == ["dev", "prod"]

    def test_missing_chart(self, tmp_test_dir, capsys):
        """Test that a missing chart exits 1."""
        assert run_cli(["envs", str(tmp_test_dir / "missing")]) == 1
