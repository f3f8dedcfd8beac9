"""
Tests for command-line parsing, settings and the entry point
"""
import logging
from unittest.mock import Mock, patch

import pytest

from KFC.main import build_parser, build_settings, main, resolve_namespace
from KFC.preferences import DEFAULT_NAMESPACE_KEY, JsonPreferenceStore
from KFC.settings import Settings, setup_logging


class DictPreferences:
    def __init__(self, **values):
        self.values = dict(values)

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("KFC_NAMESPACE", "KFC_TAIL_LINES", "KFC_MAX_RETRY", "KFC_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("KFC_CONFIG_DIR", str(tmp_path / ".kfctl"))


@pytest.fixture
def no_file_logging():
    with patch("KFC.main.setup_logging") as mock_setup:
        yield mock_setup


class TestSettings:
    """Test environment defaults"""

    def test_defaults(self, tmp_path):
        settings = Settings()
        assert settings.namespace == "default"
        assert settings.tail_lines == 100
        assert settings.max_retry == 10
        assert settings.timeout_s == 10
        assert settings.log_dir == tmp_path / ".kfctl" / "app_log"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("KFC_NAMESPACE", "staging")
        monkeypatch.setenv("KFC_TAIL_LINES", "50")
        monkeypatch.setenv("KFC_MAX_RETRY", "not-a-number")

        settings = Settings()
        assert settings.namespace == "staging"
        assert settings.tail_lines == 50
        assert settings.max_retry == 10

    def test_setup_logging_is_idempotent(self, tmp_path):
        root = logging.getLogger()
        before = list(root.handlers)
        try:
            first = setup_logging(tmp_path / "logs")
            second = setup_logging(tmp_path / "logs")
            assert first == second == tmp_path / "logs" / "kfc.log"
            assert len(root.handlers) == len(before) + 1
        finally:
            for handler in root.handlers[len(before):]:
                root.removeHandler(handler)
                handler.close()


class TestArguments:
    """Test flag parsing into Settings"""

    def test_resolve_namespace_precedence(self, monkeypatch):
        prefs = DictPreferences(**{DEFAULT_NAMESPACE_KEY: "saved"})
        assert resolve_namespace("flag", prefs) == "flag"
        assert resolve_namespace(None, prefs) == "saved"
        monkeypatch.setenv("KFC_NAMESPACE", "env")
        assert resolve_namespace(None, prefs) == "env"
        assert resolve_namespace(None, DictPreferences()) == "env"

    def test_build_settings(self):
        args = build_parser().parse_args(["api", "-n", "prod", "--tail", "20", "-g", "ERROR", "-A", "2", "-i"])
        settings = build_settings(args, DictPreferences())

        assert settings.deployment == "api"
        assert settings.namespace == "prod"
        assert settings.tail_lines == 20
        assert settings.max_retry == 10
        assert settings.grep_pattern == "ERROR"
        assert settings.grep_after == 2
        assert settings.grep_ignore_case

    def test_context_lines_out_of_range(self, no_file_logging):
        with pytest.raises(SystemExit) as exc_info:
            main(["api", "-C", "25"], preferences=DictPreferences(), client=Mock())
        assert exc_info.value.code == 2


class TestMain:
    """Test entry point flows"""

    def test_set_default_namespace(self, no_file_logging):
        prefs = DictPreferences()
        assert main(["--set-default-namespace", "staging"], preferences=prefs) == 0
        assert prefs.values[DEFAULT_NAMESPACE_KEY] == "staging"

    def test_init_error_detector(self, tmp_path, no_file_logging, capsys):
        assert main(["--init-error-detector"], preferences=DictPreferences()) == 0
        assert (tmp_path / ".kfctl" / "errorDetector.json").exists()

        assert main(["--init-error-detector"], preferences=DictPreferences()) == 1
        assert "already exists" in capsys.readouterr().out

    def test_no_deployment_lists_deployments(self, no_file_logging, capsys):
        client = Mock()
        client.list_deployments.return_value = ["api", "worker"]

        assert main([], preferences=DictPreferences(), client=client) == 2

        err = capsys.readouterr().err
        assert "  api" in err
        assert "  worker" in err
        client.list_deployments.assert_called_once_with("default", None, 10)

    @patch("KFC.main.run_app", return_value=0)
    def test_runs_viewer(self, mock_run_app, no_file_logging):
        client = Mock()

        assert main(["api", "-n", "prod", "-g", "ERROR", "-C", "2"], preferences=DictPreferences(),
                    client=client) == 0

        settings, passed_client, detector = mock_run_app.call_args.args
        assert settings.deployment == "api"
        assert settings.namespace == "prod"
        assert settings.grep_context == 2
        assert passed_client is client
        assert callable(detector)

    @patch("KFC.main.run_app", side_effect=KeyboardInterrupt)
    def test_keyboard_interrupt(self, mock_run_app, no_file_logging):
        assert main(["api"], preferences=DictPreferences(), client=Mock()) == 130


class TestPreferences:
    def test_json_store_round_trip(self, tmp_path):
        store = JsonPreferenceStore(tmp_path / "prefs.json")
        assert store.get(DEFAULT_NAMESPACE_KEY) is None

        store.set(DEFAULT_NAMESPACE_KEY, "prod")
        assert JsonPreferenceStore(tmp_path / "prefs.json").get(DEFAULT_NAMESPACE_KEY) == "prod"

    def test_unreadable_file_is_empty(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{broken", encoding="utf-8")
        assert JsonPreferenceStore(path).get(DEFAULT_NAMESPACE_KEY) is None
