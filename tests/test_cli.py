"""Tests for the etcd-operator CLI."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import yaml
from click.testing import CliRunner

from etcd_operator import __version__
from etcd_operator.cli.main import build_controller, cli
from etcd_operator.config import OperatorConfig
from etcd_operator.controller import ErrorPolicy
from etcd_operator.errors import WatchConnectionError
from etcd_operator.platform import InMemoryPlatform, K8sPlatform


def runner() -> CliRunner:
    return CliRunner()


# --- plan command ---


class TestPlanCommand:
    def test_text_output(self):
        result = runner().invoke(cli, ["plan", "test", "3"])
        assert result.exit_code == 0
        assert "test-0000" in result.output
        assert "test-0002" in result.output
        assert (
            "initial-cluster: test-0000=http://test-0000:2380,"
            "test-0001=http://test-0001:2380,test-0002=http://test-0002:2380"
        ) in result.output

    def test_json_output(self):
        result = runner().invoke(cli, ["plan", "test", "2", "--json-output"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["cluster_name"] == "test"
        assert [m["name"] for m in data["members"]] == ["test-0000", "test-0001"]
        assert data["initial_cluster"].count("=http://") == 2

    def test_manifests(self):
        result = runner().invoke(cli, ["plan", "test", "2", "--manifests", "--image", "etcd:x"])
        assert result.exit_code == 0
        docs = list(yaml.safe_load_all(result.output))
        assert [d["kind"] for d in docs] == ["Service", "Pod", "Service", "Pod"]
        assert docs[1]["spec"]["containers"][0]["image"] == "etcd:x"

    def test_invalid_size(self):
        result = runner().invoke(cli, ["plan", "test", "0"])
        assert result.exit_code == 1

    def test_invalid_name(self):
        result = runner().invoke(cli, ["plan", "Bad_Name", "3"])
        assert result.exit_code == 1


# --- run command ---


class TestRunCommand:
    @patch("etcd_operator.cli.main.Controller.run")
    def test_run_clean_stop(self, mock_run: MagicMock, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner().invoke(cli, ["run", "--dry-run"])
        assert result.exit_code == 0
        mock_run.assert_called_once()

    @patch("etcd_operator.cli.main.Controller.run")
    def test_run_fatal_error_exits_1(self, mock_run: MagicMock, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        mock_run.side_effect = WatchConnectionError("Invalid status code: 404")
        result = runner().invoke(cli, ["run", "--master", "http://m:8080"])
        assert result.exit_code == 1

    def test_run_missing_config(self, tmp_path: Path):
        result = runner().invoke(cli, ["run", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1

    def test_run_bad_config(self, tmp_path: Path):
        path = tmp_path / "etcd-operator.yaml"
        path.write_text("on_error: sometimes\n", encoding="utf-8")
        result = runner().invoke(cli, ["run", "--config", str(path)])
        assert result.exit_code == 1

    def test_invalid_choice(self):
        result = runner().invoke(cli, ["run", "--on-error", "retry"])
        assert result.exit_code == 2

    @patch("etcd_operator.cli.main.build_controller")
    def test_flags_override_config(
        self, mock_build: MagicMock, tmp_path: Path,
    ):
        path = tmp_path / "etcd-operator.yaml"
        path.write_text("namespace: etcd\non_error: abort\n", encoding="utf-8")
        result = runner().invoke(cli, [
            "run", "--config", str(path), "--on-error", "continue",
            "--master", "http://m:8080",
        ])
        assert result.exit_code == 0
        cfg = mock_build.call_args[0][0]
        assert cfg.namespace == "etcd"
        assert cfg.on_error is ErrorPolicy.CONTINUE
        assert cfg.master == "http://m:8080"
        mock_build.return_value.run.assert_called_once()


# --- build_controller ---


class TestBuildController:
    def test_uses_given_platform(self):
        platform = InMemoryPlatform()
        controller = build_controller(OperatorConfig(), platform)
        assert controller._provisioner._platform is platform
        assert controller._decommissioner._platform is platform

    def test_default_platform_is_k8s(self):
        controller = build_controller(OperatorConfig(master="http://m:8080"))
        platform = controller._provisioner._platform
        assert isinstance(platform, K8sPlatform)
        assert platform.master == "http://m:8080"

    def test_stream_url(self):
        cfg = OperatorConfig(master="http://m:8080", namespace="etcd", group="example.com")
        controller = build_controller(cfg, InMemoryPlatform())
        assert controller._stream.url == (
            "http://m:8080/apis/example.com/v1/namespaces/etcd/etcdclusters?watch=true"
        )


class TestVersion:
    def test_version(self):
        result = runner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
