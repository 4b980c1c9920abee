"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import (
    AppConfig,
    GithubConfig,
    ModelConfig,
    PromptsConfig,
    RoundConfig,
    TimingConfig,
    load_config,
)


def _settings() -> dict:
    return {
        "defaults": {
            "output_dir": "./output",
            "announcer": "claude",
            "pause_between_rounds": False,
        },
        "rounds": [
            {"name": "Ronda 1", "winners": 5},
            {"name": "Gran Final", "winners": 1, "grand_finale": True},
        ],
        "timing": {
            "standard": {
                "shuffle_interval_ms": 100,
                "shuffle_ticks": 25,
                "shuffle_ticks_per_winner": 5,
                "shuffle_fraction": 0.7,
                "decelerate_ticks": 5,
                "decelerate_base_ms": 200,
                "decelerate_factor": 1.4,
                "settle_ms": 800,
            },
        },
        "github": {
            "api_base": "https://api.github.test/",
            "per_page": 50,
            "exclude": ["maintainer"],
        },
        "models": {
            "claude": {
                "sdk": "anthropic",
                "model": "claude-3-5-haiku-latest",
                "api_key_env": "TEST_CLAUDE_KEY",
                "timeout_sec": 15,
                "max_tokens": 256,
            }
        },
        "prompts": {
            "announcement": "Congratulate {login} on {round_name} ({issue_context}).",
            "celebrations": ["Bravo @{login}!"],
        },
    }


def _write(tmp_path: Path, settings: dict) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings, allow_unicode=True), encoding="utf-8")
    return path


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    return _write(tmp_path, _settings())


def test_load_config_returns_app_config(minimal_settings):
    assert isinstance(load_config(minimal_settings), AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.announcer == "claude"
    assert config.defaults.pause_between_rounds is False
    assert isinstance(config.defaults.output_dir, Path)


def test_load_config_rounds(minimal_settings):
    config = load_config(minimal_settings)
    assert config.rounds == [
        RoundConfig("Ronda 1", 5),
        RoundConfig("Gran Final", 1, grand_finale=True),
    ]


def test_load_config_timing_grand_finale_defaults_to_standard(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.timing["standard"], TimingConfig)
    assert config.timing["grand_finale"] == config.timing["standard"]
    assert config.timing["standard"].decelerate_factor == pytest.approx(1.4)


def test_load_config_timing_requires_standard(tmp_path):
    settings = _settings()
    settings["timing"] = {"grand_finale": settings["timing"]["standard"]}
    with pytest.raises(ValueError, match="timing.standard"):
        load_config(_write(tmp_path, settings))


def test_load_config_github(minimal_settings):
    github = load_config(minimal_settings).github
    assert isinstance(github, GithubConfig)
    assert github.api_base == "https://api.github.test"
    assert github.per_page == 50
    assert github.max_pages == 20
    assert github.bot_suffix == "[bot]"
    assert github.exclude == ["maintainer"]


def test_load_config_github_section_optional(tmp_path):
    settings = _settings()
    del settings["github"]
    github = load_config(_write(tmp_path, settings)).github
    assert github == GithubConfig()


def test_load_config_models(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.models["claude"], ModelConfig)
    assert config.models["claude"].model == "claude-3-5-haiku-latest"
    assert config.models["claude"].base_url is None


def test_load_config_prompts(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.prompts, PromptsConfig)
    assert "{login}" in config.prompts.announcement
    assert config.prompts.celebrations == ["Bravo @{login}!"]


def test_load_config_available_providers_with_key(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "sk-test-key")
    assert "claude" in load_config(minimal_settings).available_providers


def test_load_config_no_available_providers_without_key(minimal_settings, monkeypatch):
    monkeypatch.delenv("TEST_CLAUDE_KEY", raising=False)
    assert "claude" not in load_config(minimal_settings).available_providers


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


def test_shipped_settings_load():
    config = load_config()
    assert [r.winners for r in config.rounds] == [5, 5, 1]
    assert config.rounds[-1].grand_finale
    assert set(config.timing) == {"standard", "grand_finale"}
    assert config.defaults.announcer in config.models
