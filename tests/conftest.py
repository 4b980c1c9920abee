"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    GithubConfig,
    ModelConfig,
    PromptsConfig,
    RoundConfig,
    TimingConfig,
)
from gitwinner.models import Announcement, Candidate, RoundSpec
from gitwinner.providers.base import AnnouncerProvider


def make_candidates(n: int, prefix: str = "user") -> list[Candidate]:
    return [
        Candidate(
            id=f"{prefix}{i}",
            display_name=f"{prefix}{i}",
            avatar_ref=f"https://avatars.githubusercontent.com/u/{i}",
        )
        for i in range(1, n + 1)
    ]


DEFAULT_PLAN = (
    RoundSpec("Ronda 1", 5),
    RoundSpec("Ronda 2", 5),
    RoundSpec("Gran Final", 1, grand_finale=True),
)


@pytest.fixture
def sample_plan() -> tuple[RoundSpec, ...]:
    return DEFAULT_PLAN


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=256,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        announcement="Congratulate {login} for winning {round_name} on {issue_context}.",
        celebrations=["Well done @{login}!", "Congrats @{login}!"],
    )


@pytest.fixture
def sample_timing() -> dict[str, TimingConfig]:
    standard = TimingConfig(
        shuffle_interval_ms=100,
        shuffle_ticks=10,
        shuffle_ticks_per_winner=5,
        shuffle_fraction=0.7,
        decelerate_ticks=3,
        decelerate_base_ms=200,
        decelerate_factor=2.0,
        settle_ms=800,
    )
    grand_finale = TimingConfig(
        shuffle_interval_ms=80,
        shuffle_ticks=20,
        shuffle_ticks_per_winner=0,
        shuffle_fraction=0.7,
        decelerate_ticks=4,
        decelerate_base_ms=200,
        decelerate_factor=1.5,
        settle_ms=1500,
    )
    return {"standard": standard, "grand_finale": grand_finale}


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        output_dir=tmp_path / "output",
        announcer="claude",
        pause_between_rounds=False,
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
    sample_timing: dict[str, TimingConfig],
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-3-5-haiku-latest",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=15,
        max_tokens=256,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        rounds=[
            RoundConfig("Ronda 1", 5),
            RoundConfig("Ronda 2", 5),
            RoundConfig("Gran Final", 1, grand_finale=True),
        ],
        timing=sample_timing,
        github=GithubConfig(api_base="https://api.github.test"),
        models={"claude": model_cfg},
        prompts=sample_prompts_config,
        available_providers={"claude"},
    )


@pytest.fixture
def sample_candidates() -> list[Candidate]:
    return make_candidates(11)


class MockProvider(AnnouncerProvider):
    """Test double AnnouncerProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock announcement") -> None:
        # No SDK client and no API key, so the base __init__ is skipped.
        self._name = provider_name
        self._response_content = response_content
        # Shadow generate with an AsyncMock at the instance level so tests can assert on it.
        self.generate = AsyncMock(  # type: ignore[assignment]
            side_effect=lambda prompt, winner_id: Announcement(
                provider=provider_name,
                model="mock-model",
                winner_id=winner_id,
                content=response_content,
                latency_sec=0.1,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def _complete(self, prompt: str) -> str:
        return self._response_content


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()
