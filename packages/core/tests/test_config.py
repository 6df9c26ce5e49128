"""Tests for configuration loading."""

import pytest

from p4lens_core.config import load_config, load_instructions


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("OPENAI_API_KEY", "OPENAI_BASE_URL", "ANTHROPIC_API_KEY", "P4CLIENT", "P4USER", "P4PORT"):
        monkeypatch.delenv(var, raising=False)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["provider"] == "openai"
    assert config["concurrency"] == 3
    assert config["max_chunk_chars"] == 12000
    assert config["summary"] is True
    assert config["instructions"] is None
    assert config["exclude"] == []
    assert config["output_dir"] == "reviews"


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".p4lens.yml"
    cfg.write_text("provider: anthropic\nconcurrency: 6\nmax_chunk_chars: 8000\n")
    config = load_config(config_path=str(cfg))
    assert config["provider"] == "anthropic"
    assert config["concurrency"] == 6
    assert config["max_chunk_chars"] == 8000


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".p4lens.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["provider"] == "openai"


def test_exclude_patterns_loaded(tmp_path):
    cfg = tmp_path / ".p4lens.yml"
    cfg.write_text("exclude:\n  - //depot/third_party/\n  - '*.min.js'\n")
    config = load_config(config_path=str(cfg))
    assert "//depot/third_party/" in config["exclude"]
    assert "*.min.js" in config["exclude"]


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".p4lens.yml"
    cfg.write_text("provider: anthropic\n")
    config = load_config(config_path=str(cfg), cli_overrides={"provider": "openai"})
    assert config["provider"] == "openai"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".p4lens.yml"
    cfg.write_text("provider: anthropic\n")
    config = load_config(config_path=str(cfg), cli_overrides={"provider": None})
    assert config["provider"] == "anthropic"


def test_env_vars_loaded(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "oai-key")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://llm.local/v1")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ant-key")
    config = load_config(config_path="nonexistent.yml")
    assert config["openai_api_key"] == "oai-key"
    assert config["openai_base_url"] == "http://llm.local/v1"
    assert config["anthropic_api_key"] == "ant-key"


def test_p4_connection_from_env(monkeypatch):
    monkeypatch.setenv("P4PORT", "ssl:perforce:1666")
    monkeypatch.setenv("P4USER", "alice")
    config = load_config(config_path="nonexistent.yml")
    assert config["p4_port"] == "ssl:perforce:1666"
    assert config["p4_user"] == "alice"
    assert config["p4_client"] is None


def test_p4_connection_file_wins_over_env(tmp_path, monkeypatch):
    monkeypatch.setenv("P4CLIENT", "env-ws")
    cfg = tmp_path / ".p4lens.yml"
    cfg.write_text("p4_client: file-ws\n")
    assert load_config(config_path=str(cfg))["p4_client"] == "file-ws"


def test_exclude_list_is_not_shared_reference(tmp_path):
    """Mutating one config's exclude list must not affect another."""
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["exclude"].append("//depot/gen/")
    assert config_b["exclude"] == []


def test_custom_instructions_path(tmp_path):
    instructions = tmp_path / "review.txt"
    instructions.write_text("Focus on thread safety.")
    content = load_instructions({"instructions": str(instructions)})
    assert content == "Focus on thread safety."


def test_no_instructions_configured_returns_empty():
    assert load_instructions({"instructions": None}) == ""


def test_missing_instructions_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_instructions({"instructions": str(tmp_path / "does-not-exist.txt")})
