"""Load settings.yaml into typed dataclasses. Validates announcer API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class RoundConfig:
    name: str
    winners: int
    grand_finale: bool = False


@dataclass
class TimingConfig:
    """Reveal animation timing. All durations in milliseconds."""

    shuffle_interval_ms: int
    shuffle_ticks: int
    shuffle_ticks_per_winner: int
    shuffle_fraction: float
    decelerate_ticks: int
    decelerate_base_ms: int
    decelerate_factor: float
    settle_ms: int


@dataclass
class GithubConfig:
    api_base: str = "https://api.github.com"
    per_page: int = 100
    max_pages: int = 20
    timeout_sec: float = 10.0
    token_env: str = "GITHUB_TOKEN"
    bot_suffix: str = "[bot]"
    exclude: list[str] = field(default_factory=list)


@dataclass
class PromptsConfig:
    announcement: str
    celebrations: list[str] = field(default_factory=list)


@dataclass
class DefaultsConfig:
    output_dir: Path
    announcer: str | None
    pause_between_rounds: bool = True


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    rounds: list[RoundConfig]
    timing: dict[str, TimingConfig]
    github: GithubConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def _load_timing(raw: dict) -> TimingConfig:
    return TimingConfig(
        shuffle_interval_ms=int(raw["shuffle_interval_ms"]),
        shuffle_ticks=int(raw["shuffle_ticks"]),
        shuffle_ticks_per_winner=int(raw.get("shuffle_ticks_per_winner", 0)),
        shuffle_fraction=float(raw.get("shuffle_fraction", 0.7)),
        decelerate_ticks=int(raw["decelerate_ticks"]),
        decelerate_base_ms=int(raw["decelerate_base_ms"]),
        decelerate_factor=float(raw["decelerate_factor"]),
        settle_ms=int(raw["settle_ms"]),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs a line for each announcer without an API key but does not raise;
    the raffle runs with canned celebration messages in that case.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    announcer = defaults_raw.get("announcer")
    defaults = DefaultsConfig(
        output_dir=Path(defaults_raw["output_dir"]),
        announcer=str(announcer) if announcer else None,
        pause_between_rounds=bool(defaults_raw.get("pause_between_rounds", True)),
    )

    rounds = [
        RoundConfig(
            name=str(r["name"]),
            winners=int(r["winners"]),
            grand_finale=bool(r.get("grand_finale", False)),
        )
        for r in raw["rounds"]
    ]

    timing = {name: _load_timing(t) for name, t in raw["timing"].items()}
    if "standard" not in timing:
        raise ValueError("timing.standard is required in settings")
    timing.setdefault("grand_finale", timing["standard"])

    github_raw = raw.get("github", {})
    github = GithubConfig(
        api_base=str(github_raw.get("api_base", "https://api.github.com")).rstrip("/"),
        per_page=int(github_raw.get("per_page", 100)),
        max_pages=int(github_raw.get("max_pages", 20)),
        timeout_sec=float(github_raw.get("timeout_sec", 10.0)),
        token_env=str(github_raw.get("token_env", "GITHUB_TOKEN")),
        bot_suffix=str(github_raw.get("bot_suffix", "[bot]")),
        exclude=[str(login) for login in github_raw.get("exclude", [])],
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        announcement=prompts_raw["announcement"],
        celebrations=[str(m) for m in prompts_raw.get("celebrations", [])],
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw.get("models", {}).items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Announcer available: %s", provider_name)
        else:
            logger.info(
                "Announcer skipped (no API key): %s, set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        rounds=rounds,
        timing=timing,
        github=github,
        models=models,
        prompts=prompts,
        available_providers=available_providers,
    )
