from src.config.configuration import AgentConfiguration, WakeWordConfiguration
from src.config.loader import get_bool_env, get_int_env, get_str_env


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("TEST_STR", "  value ")
    monkeypatch.setenv("TEST_BOOL", "Yes")
    monkeypatch.setenv("TEST_INT", "oops")
    monkeypatch.delenv("TEST_MISSING", raising=False)

    assert get_str_env("TEST_STR") == "value"
    assert get_str_env("TEST_MISSING", "fallback") == "fallback"
    assert get_bool_env("TEST_BOOL") is True
    assert get_bool_env("TEST_MISSING", True) is True
    assert get_int_env("TEST_INT", 7) == 7


def test_configuration_from_env(monkeypatch):
    monkeypatch.setenv("WAKE_WORD", "Jarvis")
    monkeypatch.setenv("WAKE_WORD_MIC_PERMISSION", "0")
    monkeypatch.setenv("AGENT_MAX_CONTEXT_MESSAGES", "-3")

    wake_word = WakeWordConfiguration.from_env()
    assert wake_word.wake_word == "Jarvis"
    assert wake_word.microphone_permission is False
    assert wake_word.autostart is False
    assert AgentConfiguration.from_env().max_context_messages == 1


def test_configuration_defaults(monkeypatch):
    for key in ("WAKE_WORD", "WAKE_WORD_MIC_PERMISSION", "AGENT_MAX_CONTEXT_MESSAGES"):
        monkeypatch.delenv(key, raising=False)

    assert WakeWordConfiguration.from_env().wake_word == "Panda"
    assert AgentConfiguration.from_env().max_context_messages == 50
