"""
Configuration loading and validation for FileMonitor.

The configuration is read once at startup into an immutable Config snapshot
that is handed to every component explicitly.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import toml
import yaml

from filemonitor import paths
from filemonitor.events import Operation
from filemonitor.ignore import IgnoreRules

ENV_CONFIG_DIR_VAR = "FILEMONITOR_CONFIG_DIR"
CONFIG_BASENAME = "config"
CONFIG_EXTENSIONS = (".yaml", ".yml", ".toml")

DEFAULT_LOG_FILE = "logs/filemonitor.log"
DEFAULT_TIMEOUT = 10

# Webhook providers and the host their API lives on.
PROVIDERS = {"serverchan": "sctapi.ftqq.com"}


class ConfigError(ValueError):
    """Raised when the configuration is invalid."""

    pass


@dataclass(frozen=True)
class LoggingConfig:
    file: str = DEFAULT_LOG_FILE
    level: str = "INFO"
    max_size: int = 10
    max_backups: int = 5
    console: bool = True


@dataclass(frozen=True)
class WebhookConfig:
    enabled: bool = False
    provider: str = ""
    sendkey: str = field(default="", repr=False)
    template: str = ""
    timeout: float = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = False
    smtp_host: str = ""
    smtp_port: int = 25
    username: str = ""
    password: str = field(default="", repr=False)
    sender: str = ""
    to: Tuple[str, ...] = ()
    timeout: float = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class Config:
    directories: Tuple[str, ...]
    ignore: IgnoreRules = IgnoreRules()
    events: frozenset = frozenset()
    path_style: str = paths.POSIX
    webhook: WebhookConfig = WebhookConfig()
    email: EmailConfig = EmailConfig()
    logging: LoggingConfig = LoggingConfig()
    source: Optional[str] = None

    @property
    def channel(self) -> Optional[str]:
        """Name of the single enabled notification channel, if any."""
        if self.webhook.enabled:
            return "webhook"
        if self.email.enabled:
            return "email"
        return None


def find_config(cli_config_path=None):
    """
    Locate the configuration file.

    Precedence:
      1. cli_config_path if provided.
      2. Environment variable FILEMONITOR_CONFIG_DIR (looking for config.*).
      3. The current working directory (looking for config.*).

    Returns:
        str: Path to the configuration file.
    """
    if cli_config_path:
        if not os.path.exists(cli_config_path):
            raise FileNotFoundError(f"Configuration file not found: {cli_config_path}")
        return cli_config_path

    config_dir = os.environ.get(ENV_CONFIG_DIR_VAR) or os.getcwd()
    for ext in CONFIG_EXTENSIONS:
        candidate = os.path.join(config_dir, CONFIG_BASENAME + ext)
        if os.path.exists(candidate):
            return candidate
    raise FileNotFoundError(
        f"Configuration file not found: {os.path.join(config_dir, CONFIG_BASENAME)}"
        f"{{{','.join(CONFIG_EXTENSIONS)}}}"
    )


def read_config_file(config_path):
    """Read a YAML or TOML configuration file into a dict."""
    with open(config_path, "r", encoding="utf-8") as f:
        if config_path.endswith(".toml"):
            data = toml.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {config_path}")
    return data


def _key(name: str) -> str:
    return name.replace("_", "").replace("-", "").lower()


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """
    Fetch a nested mapping with keys folded, so that `smtpHost`,
    `smtphost` and `smtp_host` all address the same setting.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    value = {_key(k): v for k, v in data.items()}.get(_key(name)) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    return {_key(k): v for k, v in value.items()}


def _strings(section: Dict[str, Any], name: str) -> Tuple[str, ...]:
    value = section.get(_key(name)) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{name}' must be a list of strings")
    return tuple(str(item) for item in value if str(item))


def _number(section: Dict[str, Any], name: str, default, kind=int):
    value = section.get(_key(name))
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be a number, got {value!r}") from None


def _flag(section: Dict[str, Any], name: str, default=False) -> bool:
    value = section.get(_key(name), default)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _text(section: Dict[str, Any], name: str, default="") -> str:
    value = section.get(_key(name))
    return default if value is None else str(value)


def _check_template(template: str) -> None:
    """Render a webhook template once with sample fields so mistakes fail at startup."""
    if not template:
        return
    try:
        template.format(path="/sample/file.txt", operation="WRITE", time="2000-01-01 00:00:00")
    except Exception as e:
        raise ConfigError(f"invalid webhook template {template!r}: {e}") from None


def _resolve_path_style(value: str) -> str:
    style = (value or "auto").strip().lower()
    if style == "auto":
        return paths.host_path_style()
    if style not in paths.PATH_STYLES:
        raise ConfigError(
            f"Unknown path_style '{value}' (expected auto, {', '.join(paths.PATH_STYLES)})"
        )
    return style


def parse_config(data: Dict[str, Any], source=None) -> Config:
    """
    Build and validate a Config from raw configuration data.

    Raises:
        ConfigError: If the configuration is invalid.
    """
    monitor = _section(data, "monitor")
    ignore = _section(monitor, "ignore")
    webhook = _section(data, "webhook")
    email = _section(data, "email")
    log = _section(data, "logging")

    path_style = _resolve_path_style(_text(monitor, "path_style", "auto"))

    directories = tuple(
        paths.normalize(d, path_style) for d in _strings(monitor, "directories")
    )
    if not directories:
        raise ConfigError("no directories to monitor")

    try:
        events = frozenset(Operation.from_name(e) for e in _strings(monitor, "events"))
    except ValueError as e:
        raise ConfigError(str(e)) from None

    webhook_cfg = WebhookConfig(
        enabled=_flag(webhook, "enabled"),
        provider=_text(webhook, "provider").strip().lower(),
        sendkey=_text(webhook, "sendkey"),
        template=_text(webhook, "template"),
        timeout=_number(webhook, "timeout", DEFAULT_TIMEOUT, float),
    )
    email_cfg = EmailConfig(
        enabled=_flag(email, "enabled"),
        smtp_host=_text(email, "smtp_host"),
        smtp_port=_number(email, "smtp_port", 25),
        username=_text(email, "username"),
        password=_text(email, "password"),
        sender=_text(email, "from"),
        to=_strings(email, "to"),
        timeout=_number(email, "timeout", DEFAULT_TIMEOUT, float),
    )

    if webhook_cfg.enabled and email_cfg.enabled:
        raise ConfigError(
            "configuration conflict: email and webhook notifications cannot both be enabled"
        )
    if webhook_cfg.enabled:
        if webhook_cfg.provider not in PROVIDERS:
            raise ConfigError(
                f"unsupported webhook provider '{webhook_cfg.provider}' "
                f"(supported: {', '.join(sorted(PROVIDERS))})"
            )
        if not webhook_cfg.sendkey:
            raise ConfigError("webhook is enabled but no sendkey is configured")
        _check_template(webhook_cfg.template)
    if email_cfg.enabled:
        if not email_cfg.smtp_host:
            raise ConfigError("email is enabled but no smtp_host is configured")
        if not email_cfg.to:
            raise ConfigError("email is enabled but no recipients are configured")

    return Config(
        directories=directories,
        ignore=IgnoreRules(
            files=_strings(ignore, "files"),
            extensions=frozenset(_strings(ignore, "extensions")),
            directories=_strings(ignore, "directories"),
        ),
        events=events,
        path_style=path_style,
        webhook=webhook_cfg,
        email=email_cfg,
        logging=LoggingConfig(
            file=_text(log, "file", DEFAULT_LOG_FILE) or DEFAULT_LOG_FILE,
            level=_text(log, "level", "INFO").upper(),
            max_size=_number(log, "max_size", 10),
            max_backups=_number(log, "max_backups", 5),
            console=_flag(log, "console", True),
        ),
        source=source,
    )


def load_config(cli_config_path=None) -> Config:
    """
    Locate, read and validate the configuration.

    Returns:
        Config: The immutable configuration snapshot.
    """
    config_path = find_config(cli_config_path)
    return parse_config(read_config_file(config_path), source=os.path.abspath(config_path))


def summarize(config: Config) -> Dict[str, Any]:
    """Describe a configuration with secrets left out, for logs and the CLI."""
    summary = {
        "Config File": config.source or "-",
        "Directories": ", ".join(config.directories),
        "Ignored Files": ", ".join(config.ignore.files) or "-",
        "Ignored Extensions": ", ".join(sorted(config.ignore.extensions)) or "-",
        "Ignored Directories": ", ".join(config.ignore.directories) or "-",
        "Events": ", ".join(sorted(str(e) for e in config.events)) or "all",
        "Path Style": config.path_style,
        "Channel": config.channel or "none",
        "Log File": config.logging.file,
    }
    if config.webhook.enabled:
        summary["Webhook Provider"] = config.webhook.provider
    if config.email.enabled:
        summary["Email Server"] = f"{config.email.smtp_host}:{config.email.smtp_port}"
        summary["Email Recipients"] = ", ".join(config.email.to)
    return summary
