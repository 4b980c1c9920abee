"""Tests for the shared announcer provider behaviour in gitwinner/providers/base.py."""

import asyncio

import pytest

from gitwinner.providers.base import AnnouncerProvider, ProviderError, clean_announcement


class ScriptedProvider(AnnouncerProvider):
    """Provider whose model reply is scripted by the test."""

    def __init__(self, config, reply=None, error=None, delay=0.0):
        super().__init__(config)
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts = []

    async def _complete(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def keyed_config(sample_model_config, monkeypatch):
    monkeypatch.setenv(sample_model_config.api_key_env, "sk-test")
    return sample_model_config


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  Congrats!  ", "Congrats!"),
        ('"Congrats @octocat!"', "Congrats @octocat!"),
        ("“Congrats!”", "Congrats!"),
        ('"Quoted" and not', '"Quoted" and not'),
        (None, ""),
        ('"', '"'),
    ],
)
def test_clean_announcement(raw, expected):
    assert clean_announcement(raw) == expected


def test_missing_api_key_raises(sample_model_config, monkeypatch):
    monkeypatch.delenv(sample_model_config.api_key_env, raising=False)
    with pytest.raises(ProviderError, match="Missing API key"):
        ScriptedProvider(sample_model_config)


def test_name_and_model_come_from_config(keyed_config):
    provider = ScriptedProvider(keyed_config)
    assert provider.name() == "test_model"
    assert provider.model_string() == "test-model-1"


async def test_generate_returns_cleaned_announcement(keyed_config):
    provider = ScriptedProvider(keyed_config, reply='"Well played, @octocat!"\n')
    announcement = await provider.generate("prompt", "octocat")

    assert announcement.content == "Well played, @octocat!"
    assert announcement.provider == "test_model"
    assert announcement.model == "test-model-1"
    assert announcement.winner_id == "octocat"
    assert announcement.latency_sec >= 0
    assert provider.prompts == ["prompt"]


async def test_generate_wraps_sdk_errors(keyed_config):
    provider = ScriptedProvider(keyed_config, error=RuntimeError("503 overloaded"))
    with pytest.raises(ProviderError, match="API call failed: 503 overloaded") as exc_info:
        await provider.generate("prompt", "octocat")
    assert exc_info.value.provider_name == "test_model"


async def test_generate_rejects_empty_reply(keyed_config):
    provider = ScriptedProvider(keyed_config, reply="   ")
    with pytest.raises(ProviderError, match="Empty response"):
        await provider.generate("prompt", "octocat")


async def test_generate_times_out(keyed_config):
    keyed_config.timeout_sec = 0.01
    provider = ScriptedProvider(keyed_config, reply="late", delay=1.0)
    with pytest.raises(ProviderError, match="timed out"):
        await provider.generate("prompt", "octocat")
