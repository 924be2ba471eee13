"""Tests for configuration loading."""

import pytest

from glance_core.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("GITHUB_TOKEN", "OPENAI_API_KEY", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(var, raising=False)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["model"] == "openai"
    assert config["lookup"] == "gh"
    assert config["store"] == "file"
    assert config["store_path"] is None
    assert config["workers"] == 4


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".glance.yml"
    cfg.write_text("model: anthropic\nworkers: 2\nstore: sqlite\n")
    config = load_config(config_path=str(cfg))
    assert config["model"] == "anthropic"
    assert config["workers"] == 2
    assert config["store"] == "sqlite"


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".glance.yml"
    cfg.write_text("model: anthropic\n")
    config = load_config(config_path=str(cfg), cli_overrides={"model": "openai"})
    assert config["model"] == "openai"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".glance.yml"
    cfg.write_text("lookup: api\n")
    config = load_config(config_path=str(cfg), cli_overrides={"lookup": None})
    assert config["lookup"] == "api"


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".glance.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["model"] == "openai"


def test_non_mapping_config_rejected(tmp_path):
    cfg = tmp_path / ".glance.yml"
    cfg.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(config_path=str(cfg))


def test_workers_must_be_integer(tmp_path):
    cfg = tmp_path / ".glance.yml"
    cfg.write_text("workers: lots\n")
    with pytest.raises(ValueError):
        load_config(config_path=str(cfg))


def test_workers_floor_is_one(tmp_path):
    config = load_config(config_path=str(tmp_path / "none.yml"), cli_overrides={"workers": 0})
    assert config["workers"] == 1


def test_env_vars_loaded(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ant-key")
    monkeypatch.setenv("OPENAI_API_KEY", "oai-key")
    config = load_config(config_path="nonexistent.yml")
    assert config["github_token"] == "gh-token"
    assert config["anthropic_api_key"] == "ant-key"
    assert config["openai_api_key"] == "oai-key"


def test_git_config_fallback_for_api_keys():
    git_values = {"glance.openai.key": "from-git"}
    config = load_config(config_path="nonexistent.yml", git_config=git_values.get)
    assert config["openai_api_key"] == "from-git"
    assert config["anthropic_api_key"] is None


def test_env_var_beats_git_config(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    config = load_config(config_path="nonexistent.yml", git_config={"glance.openai.key": "from-git"}.get)
    assert config["openai_api_key"] == "from-env"


def test_configs_do_not_share_state(tmp_path):
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["model"] = "anthropic"
    assert config_b["model"] == "openai"
