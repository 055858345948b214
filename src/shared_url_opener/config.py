from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml


class ConfigError(ValueError):
    """Raised when configuration is invalid."""


@dataclass(slots=True)
class FirestoreSettings:
    project_id: str
    database: str = "(default)"
    credentials_path: str | None = None
    api_key_env_var: str = "FIRESTORE_API_KEY"


@dataclass(slots=True)
class SourceSettings:
    type: str = "firestore_listener"
    collection: str = "shared_urls"
    order_by: str = "timestamp"
    poll_interval_seconds: float = 5.0
    retry_interval_seconds: float = 5.0
    listen_timeout_seconds: float = 1.0
    timeout_seconds: int = 30
    target_id: int = 42


@dataclass(slots=True)
class ActionSettings:
    open_browser: bool = True
    write_back_expiry: bool = True
    expiry_days: int = 3


@dataclass(slots=True)
class AppConfig:
    firestore: FirestoreSettings
    source: SourceSettings = field(default_factory=SourceSettings)
    actions: ActionSettings = field(default_factory=ActionSettings)
    log_level: str = "INFO"


_SOURCE_KEYS = {
    "type",
    "collection",
    "order_by",
    "poll_interval_seconds",
    "retry_interval_seconds",
    "listen_timeout_seconds",
    "timeout_seconds",
    "target_id",
}


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in {0, 1}:
        return bool(value)

    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False

    raise ConfigError(f"{field_name} must be a boolean")


def _as_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_seconds(value: Any, *, field_name: str, minimum: float = 0.0) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a number of seconds")

    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a number of seconds") from exc

    if parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum:g}")
    return parsed


def _as_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{field_name} must be a mapping")
    return value


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _resolve_relative_path(base_dir: Path, raw_path: str) -> str:
    candidate = Path(raw_path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def _read_yaml(path: str | Path) -> tuple[dict[str, Any], Path]:
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            parsed = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config file is not valid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ConfigError("Config root must be a mapping")
    return parsed, config_path.parent


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Build the application config from an optional YAML file and the environment.

    Values in the file win over ``PROJECT_ID`` / ``CREDENTIALS_PATH`` /
    ``GOOGLE_APPLICATION_CREDENTIALS``. Without a file, everything except the
    project id has a default.
    """
    env = os.environ if environ is None else environ

    if path is not None:
        parsed, base_dir = _read_yaml(path)
    else:
        parsed, base_dir = {}, Path.cwd()

    raw_firestore = _as_mapping(parsed.get("firestore"), field_name="firestore")

    project_id = _optional_str(raw_firestore.get("project_id")) or _optional_str(
        env.get("PROJECT_ID")
    )
    if not project_id:
        raise ConfigError(
            "Firestore project id is required (firestore.project_id or PROJECT_ID)"
        )

    credentials_path = (
        _optional_str(raw_firestore.get("credentials_path"))
        or _optional_str(env.get("CREDENTIALS_PATH"))
        or _optional_str(env.get("GOOGLE_APPLICATION_CREDENTIALS"))
    )
    if credentials_path:
        credentials_path = _resolve_relative_path(base_dir, credentials_path)

    firestore_settings = FirestoreSettings(
        project_id=project_id,
        database=_optional_str(raw_firestore.get("database")) or "(default)",
        credentials_path=credentials_path,
        api_key_env_var=_optional_str(raw_firestore.get("api_key_env_var"))
        or "FIRESTORE_API_KEY",
    )

    raw_source = _as_mapping(parsed.get("source"), field_name="source")
    unknown_keys = sorted(str(key) for key in raw_source if key not in _SOURCE_KEYS)
    if unknown_keys:
        raise ConfigError(f"Unknown source setting(s): {', '.join(unknown_keys)}")

    source_settings = SourceSettings(
        type=_optional_str(raw_source.get("type")) or "firestore_listener",
        collection=_optional_str(raw_source.get("collection")) or "shared_urls",
        order_by=_optional_str(raw_source.get("order_by")) or "timestamp",
        poll_interval_seconds=_as_seconds(
            raw_source.get("poll_interval_seconds", 5),
            field_name="source.poll_interval_seconds",
            minimum=0.1,
        ),
        retry_interval_seconds=_as_seconds(
            raw_source.get("retry_interval_seconds", 5),
            field_name="source.retry_interval_seconds",
        ),
        listen_timeout_seconds=_as_seconds(
            raw_source.get("listen_timeout_seconds", 1),
            field_name="source.listen_timeout_seconds",
            minimum=0.1,
        ),
        timeout_seconds=_as_int(
            raw_source.get("timeout_seconds", 30),
            field_name="source.timeout_seconds",
            minimum=1,
        ),
        target_id=_as_int(
            raw_source.get("target_id", 42),
            field_name="source.target_id",
            minimum=1,
        ),
    )

    raw_actions = _as_mapping(parsed.get("actions"), field_name="actions")
    action_settings = ActionSettings(
        open_browser=_as_bool(
            raw_actions.get("open_browser", True),
            field_name="actions.open_browser",
        ),
        write_back_expiry=_as_bool(
            raw_actions.get("write_back_expiry", True),
            field_name="actions.write_back_expiry",
        ),
        expiry_days=_as_int(
            raw_actions.get("expiry_days", 3),
            field_name="actions.expiry_days",
            minimum=1,
        ),
    )

    return AppConfig(
        firestore=firestore_settings,
        source=source_settings,
        actions=action_settings,
        log_level=str(parsed.get("log_level", "INFO")).upper(),
    )
