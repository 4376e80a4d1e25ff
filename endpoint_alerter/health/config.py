"""
Health configuration - Loads probe definitions and runtime settings.

Probe definitions come from a JSON file. Runtime settings (credentials,
database path, timeouts, notification channels) are read from the
environment once, at startup, and passed around as a Settings object.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from endpoint_alerter.health.models import ProbeDefinition, ProbeParameter

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "results.db"
DEFAULT_TIMEOUT = 10.0


# Probe file structure
# [
#   {
#     "url": str,
#     "status_code": int,
#     "method": str,  # "GET" or "POST"
#     "parameters": Optional[List[{"key": str, "value": str, "env_var": bool}]],
#     "basic_auth": Optional[bool]
#   }
# ]


class ConfigError(ValueError):
    """Raised when the probe file or the settings are unusable."""


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings captured from the environment.

    Attributes:
        api_user: Basic-auth user attached to probes with basic_auth
        api_secret: Basic-auth password attached to probes with basic_auth
        db_path: SQLite file holding last known results
        timeout: Request timeout in seconds for every probe
        max_workers: Number of probes evaluated concurrently
        twilio_sid: Twilio account SID
        twilio_token: Twilio auth token
        twilio_number: Twilio sender number
        oncall_number: Phone number of the on-call engineer
        slack_webhook_url: Slack incoming webhook URL
        email_to: Recipient of e-mail notifications
        smtp_host: SMTP server host
        smtp_port: SMTP server port
        smtp_user: SMTP login user (enables STARTTLS when set with password)
        smtp_password: SMTP login password
        smtp_from: Sender address for e-mail notifications
        probes_file: Probe file used when no path is given explicitly
        environ: Snapshot of the environment used to resolve env_var parameters
    """

    api_user: str = ""
    api_secret: str = ""
    db_path: str = DEFAULT_DB_PATH
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = 1
    twilio_sid: Optional[str] = None
    twilio_token: Optional[str] = None
    twilio_number: Optional[str] = None
    oncall_number: Optional[str] = None
    slack_webhook_url: Optional[str] = None
    email_to: Optional[str] = None
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: str = "endpoint-alerter@localhost"
    probes_file: Optional[str] = None
    environ: Mapping[str, str] = field(default_factory=dict)

    @property
    def basic_auth(self):
        return (self.api_user, self.api_secret)

    def resolve_env(self, name: str) -> str:
        """Look up an env_var parameter; unset variables resolve to ""."""
        return self.environ.get(name, "")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        environ: Mapping to read from. If None, uses os.environ

    Returns:
        Settings instance

    Raises:
        ConfigError: If a numeric setting is not a number
    """
    if environ is None:
        environ = os.environ
    env = dict(environ)

    settings = Settings(
        api_user=env.get("ALERTER_API_USER", ""),
        api_secret=env.get("ALERTER_API_SECRET", ""),
        db_path=env.get("ALERTER_DB") or DEFAULT_DB_PATH,
        timeout=_number(env, "ALERTER_TIMEOUT", DEFAULT_TIMEOUT, float),
        max_workers=_number(env, "ALERTER_WORKERS", 1, int),
        twilio_sid=env.get("TWILIO_SID") or None,
        twilio_token=env.get("TWILIO_TOKEN") or None,
        twilio_number=env.get("TWILIO_NUMBER") or None,
        oncall_number=env.get("ONCALL_NUMBER") or None,
        slack_webhook_url=env.get("SLACK_WEBHOOK_URL") or None,
        email_to=env.get("ALERT_EMAIL") or None,
        smtp_host=env.get("SMTP_HOST", "localhost"),
        smtp_port=_number(env, "SMTP_PORT", 25, int),
        smtp_user=env.get("SMTP_USER") or None,
        smtp_password=env.get("SMTP_PASSWORD") or None,
        smtp_from=env.get("SMTP_FROM", "endpoint-alerter@localhost"),
        probes_file=env.get("ALERTER_PROBES_FILE") or None,
        environ=MappingProxyType(env),
    )

    if settings.max_workers < 1:
        raise ConfigError("ALERTER_WORKERS must be at least 1")
    if settings.timeout <= 0:
        raise ConfigError("ALERTER_TIMEOUT must be positive")

    return settings


def _number(env: Dict[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def load_config(
    config_path: Optional[str] = None, probes_file: Optional[str] = None
) -> List[ProbeDefinition]:
    """
    Load probe definitions from a JSON file.

    Args:
        config_path: Path to the probe file. If None, looks for
                     probes_file, configs/probes.json and
                     request_tests.json, then falls back to
                     configs/probes.example.json
        probes_file: Configured probe file (Settings.probes_file)

    Returns:
        List of probe definitions in file order

    Raises:
        ConfigError: If no file is found, the JSON is invalid, or any
                     probe entry is malformed
    """
    if config_path is None:
        config_path = _find_default_config(probes_file)

    config_file = Path(config_path)
    if not config_file.exists():
        raise ConfigError(f"Probe file not found: {config_path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in probe file {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read probe file {config_path}: {e}")

    if not isinstance(data, list):
        raise ConfigError(f"Probe file must contain a JSON array: {config_path}")

    probes = [_validate_probe(index, entry) for index, entry in enumerate(data)]

    logger.info("Loaded %d probes from %s", len(probes), config_path)

    return probes


def _find_default_config(probes_file: Optional[str] = None) -> str:
    if probes_file:
        return probes_file

    project_root = Path(__file__).parent.parent.parent
    candidates = [
        project_root / "configs" / "probes.json",
        Path.cwd() / "request_tests.json",
    ]
    for candidate in candidates:
        if candidate.exists():
            return str(candidate)

    example = project_root / "configs" / "probes.example.json"
    if example.exists():
        logger.warning(
            "Using example probe file: %s. "
            "Create configs/probes.json for production.",
            example,
        )
        return str(example)

    expected = ", ".join(str(c) for c in candidates + [example])
    raise ConfigError(f"Probe file not found. Expected one of: {expected}")


def _validate_probe(index: int, entry: Any) -> ProbeDefinition:
    """
    Validate a single probe entry.

    Args:
        index: Position of the entry in the file (for error messages)
        entry: Raw JSON object

    Returns:
        ProbeDefinition

    Raises:
        ConfigError: If the entry is malformed
    """
    where = f"probe #{index}"
    if not isinstance(entry, dict):
        raise ConfigError(f"Entry must be an object for {where}")

    for name in ("url", "status_code", "method"):
        if name not in entry:
            raise ConfigError(f"Missing required field '{name}' for {where}")

    if not isinstance(entry["url"], str):
        raise ConfigError(f"Field 'url' must be a string for {where}")
    where = f"probe #{index} ({entry['url']})"

    # bool is an int subclass; true/false is not a status code
    status_code = entry["status_code"]
    if not isinstance(status_code, int) or isinstance(status_code, bool):
        raise ConfigError(f"Field 'status_code' must be an int for {where}")
    if not isinstance(entry["method"], str):
        raise ConfigError(f"Field 'method' must be a string for {where}")

    basic_auth = entry.get("basic_auth", False)
    if not isinstance(basic_auth, bool):
        raise ConfigError(f"Field 'basic_auth' must be a bool for {where}")

    raw_parameters = entry.get("parameters")
    if raw_parameters is None:
        raw_parameters = []
    if not isinstance(raw_parameters, list):
        raise ConfigError(f"Field 'parameters' must be a list for {where}")

    parameters = []
    for param in raw_parameters:
        if not isinstance(param, dict):
            raise ConfigError(f"Each parameter must be an object for {where}")
        if not isinstance(param.get("key"), str):
            raise ConfigError(f"Parameter 'key' must be a string for {where}")
        if not isinstance(param.get("value", ""), str):
            raise ConfigError(f"Parameter 'value' must be a string for {where}")
        if not isinstance(param.get("env_var", False), bool):
            raise ConfigError(f"Parameter 'env_var' must be a bool for {where}")
        parameters.append(
            ProbeParameter(
                key=param["key"],
                value=param.get("value", ""),
                env_var=param.get("env_var", False),
            )
        )

    return ProbeDefinition(
        url=entry["url"],
        method=entry["method"],
        expected_status=status_code,
        parameters=tuple(parameters),
        basic_auth=basic_auth,
    )
