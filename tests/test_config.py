"""
tests/test_config.py

EngineConfig resolution: defaults, YAML file, environment overrides.
"""

import pytest

from vestledger.config import ConfigError, EngineConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ("VESTLEDGER_NAMESPACE", "VESTLEDGER_JOURNAL", "VESTLEDGER_KEY", "VESTLEDGER_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def write_yaml(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config == EngineConfig()
        assert config.namespace == "vestledger"
        assert config.journal_path == ".vestledger/journal.jsonl"
        assert config.max_id_length == 30
        assert config.log_level == "WARNING"

    def test_yaml_file(self, tmp_path):
        path = write_yaml(tmp_path / "custom.yaml", (
            "namespace: mainnet\n"
            "journal_path: /var/lib/vl/journal.jsonl\n"
            "max_id_length: 12\n"
        ))
        config = load_config(path)
        assert config.namespace == "mainnet"
        assert config.journal_path == "/var/lib/vl/journal.jsonl"
        assert config.max_id_length == 12
        assert config.key_path == ".vestledger/signer.pem"

    def test_default_file_picked_up(self, tmp_path):
        write_yaml(tmp_path / "vestledger.yaml", "namespace: devnet\n")
        assert load_config().namespace == "devnet"

    def test_empty_file(self, tmp_path):
        path = write_yaml(tmp_path / "empty.yaml", "")
        assert load_config(path) == EngineConfig()

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = write_yaml(tmp_path / "c.yaml", "namespace: mainnet\nlog_level: INFO\n")
        monkeypatch.setenv("VESTLEDGER_NAMESPACE", "devnet")
        monkeypatch.setenv("VESTLEDGER_LOG_LEVEL", "DEBUG")
        config = load_config(path)
        assert config.namespace == "devnet"
        assert config.log_level == "DEBUG"

    def test_env_paths(self, monkeypatch):
        monkeypatch.setenv("VESTLEDGER_JOURNAL", "/tmp/j.jsonl")
        monkeypatch.setenv("VESTLEDGER_KEY", "/tmp/k.pem")
        config = load_config()
        assert config.journal_path == "/tmp/j.jsonl"
        assert config.key_path == "/tmp/k.pem"


class TestConfigErrors:

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_unknown_key(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", "namespace: x\nretries: 3\n")
        with pytest.raises(ConfigError, match="retries"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", "- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_wrong_type(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", "max_id_length: thirty\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_positive_id_length(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", "max_id_length: 0\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_empty_namespace(self, monkeypatch, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", "namespace: ''\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_unknown_log_level(self, monkeypatch):
        monkeypatch.setenv("VESTLEDGER_LOG_LEVEL", "LOUD")
        with pytest.raises(ConfigError):
            load_config()

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)
