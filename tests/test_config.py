import os

import pytest
import toml
import yaml

from filemonitor import config
from filemonitor.config import ConfigError, parse_config
from filemonitor.events import Operation


def base_data(**overrides):
    data = {
        "monitor": {
            "directories": ["/data"],
            "ignore": {
                "files": ["*.log"],
                "extensions": [".tmp"],
                "directories": ["*/node_modules/*"],
            },
            "events": ["create", "WRITE"],
            "path_style": "posix",
        },
        "webhook": {"enabled": False, "provider": "serverchan", "sendkey": "SCTKEY"},
        "email": {"enabled": False},
    }
    data.update(overrides)
    return data


def write_yaml(path, data):
    with open(path, "w") as f:
        yaml.dump(data, f)
    return str(path)


def test_load_config(tmp_path):
    config_file = write_yaml(tmp_path / "config.yaml", base_data())

    loaded = config.load_config(config_file)
    assert loaded.directories == ("/data",)
    assert loaded.ignore.files == ("*.log",)
    assert loaded.ignore.extensions == frozenset({".tmp"})
    assert loaded.ignore.directories == ("*/node_modules/*",)
    assert loaded.events == frozenset({Operation.CREATE, Operation.WRITE})
    assert loaded.channel is None
    assert loaded.source == os.path.abspath(config_file)


def test_config_is_immutable(tmp_path):
    loaded = config.load_config(write_yaml(tmp_path / "config.yaml", base_data()))
    with pytest.raises(AttributeError):
        loaded.directories = ("/other",)


def test_load_config_from_working_directory(tmp_path, monkeypatch):
    write_yaml(tmp_path / "config.yaml", base_data())
    monkeypatch.delenv(config.ENV_CONFIG_DIR_VAR, raising=False)
    monkeypatch.chdir(tmp_path)
    assert config.load_config().directories == ("/data",)


def test_load_config_from_env_dir(tmp_path, monkeypatch):
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    write_yaml(conf_dir / "config.yml", base_data())
    monkeypatch.setenv(config.ENV_CONFIG_DIR_VAR, str(conf_dir))
    assert config.load_config().source == str(conf_dir / "config.yml")


def test_load_toml_config(tmp_path):
    config_file = tmp_path / "config.toml"
    with open(config_file, "w") as f:
        toml.dump(base_data(), f)
    assert config.load_config(str(config_file)).directories == ("/data",)


def test_missing_config_file(tmp_path, monkeypatch):
    monkeypatch.delenv(config.ENV_CONFIG_DIR_VAR, raising=False)
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        config.load_config()
    with pytest.raises(FileNotFoundError):
        config.load_config(str(tmp_path / "nope.yaml"))


def test_empty_directories_is_fatal():
    data = base_data()
    data["monitor"]["directories"] = []
    with pytest.raises(ConfigError, match="no directories to monitor"):
        parse_config(data)


def test_missing_monitor_section_is_fatal():
    with pytest.raises(ConfigError, match="no directories to monitor"):
        parse_config({})


def test_both_channels_enabled_is_fatal():
    data = base_data(
        webhook={"enabled": True, "provider": "serverchan", "sendkey": "k"},
        email={"enabled": True, "smtp_host": "smtp.example.com", "to": ["a@example.com"]},
    )
    with pytest.raises(ConfigError, match="conflict"):
        parse_config(data)


def test_unknown_webhook_provider_is_rejected():
    data = base_data(webhook={"enabled": True, "provider": "bark", "sendkey": "k"})
    with pytest.raises(ConfigError, match="unsupported webhook provider 'bark'"):
        parse_config(data)


def test_unknown_provider_allowed_when_disabled():
    data = base_data(webhook={"enabled": False, "provider": "bark"})
    assert parse_config(data).channel is None


def test_webhook_requires_sendkey():
    data = base_data(webhook={"enabled": True, "provider": "serverchan"})
    with pytest.raises(ConfigError, match="sendkey"):
        parse_config(data)


def test_email_requires_recipients():
    data = base_data(email={"enabled": True, "smtp_host": "smtp.example.com"})
    with pytest.raises(ConfigError, match="recipients"):
        parse_config(data)


def test_email_keys_are_case_insensitive():
    data = base_data(email={
        "Enabled": True,
        "SmtpHost": "smtp.example.com",
        "smtpPort": "587",
        "username": "bot",
        "password": "secret",
        "From": "bot@example.com",
        "to": "ops@example.com",
    })
    loaded = parse_config(data)
    assert loaded.channel == "email"
    assert loaded.email.smtp_host == "smtp.example.com"
    assert loaded.email.smtp_port == 587
    assert loaded.email.sender == "bot@example.com"
    assert loaded.email.to == ("ops@example.com",)


def test_invalid_port_is_rejected():
    data = base_data(email={"enabled": False, "smtp_port": "abc"})
    with pytest.raises(ConfigError, match="smtp_port"):
        parse_config(data)


def test_unknown_event_kind_is_rejected():
    data = base_data()
    data["monitor"]["events"] = ["CREATE", "TOUCH"]
    with pytest.raises(ConfigError, match="TOUCH"):
        parse_config(data)


def test_windows_path_style_normalizes_directories():
    data = base_data()
    data["monitor"]["path_style"] = "windows"
    data["monitor"]["directories"] = ["/data/in", "D:/share"]
    assert parse_config(data).directories == ("C:\\data\\in", "D:\\share")


def test_unknown_path_style_is_rejected():
    data = base_data()
    data["monitor"]["path_style"] = "amiga"
    with pytest.raises(ConfigError, match="path_style"):
        parse_config(data)


def test_summary_leaves_out_secrets():
    data = base_data(webhook={"enabled": True, "provider": "serverchan", "sendkey": "SCTSECRET"})
    loaded = parse_config(data)
    summary = config.summarize(loaded)
    assert summary["Channel"] == "webhook"
    assert "SCTSECRET" not in str(summary)
    assert "SCTSECRET" not in repr(loaded)


@pytest.mark.parametrize("template", ["{path.name} changed", "{unknown}", "{time:>{width}}"])
def test_invalid_webhook_template_is_rejected(template):
    data = base_data(webhook={"enabled": True, "provider": "serverchan", "sendkey": "k", "template": template})
    with pytest.raises(ConfigError, match="invalid webhook template"):
        parse_config(data)


def test_valid_webhook_template_is_kept():
    data = base_data(webhook={
        "enabled": True, "provider": "serverchan", "sendkey": "k", "template": "{operation} {path} at {time}",
    })
    assert parse_config(data).webhook.template == "{operation} {path} at {time}"
