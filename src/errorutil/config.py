from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional
import os
import uuid

import yaml

from .types import ErrorUtilError

DEFAULT_CHANNEL = "Custom_Exception_Log__e"
DEFAULT_ENVELOPE_KEY = "customExceptionLog"
FALLBACK_CONTEXT_TYPE = "errorUtil.logError()"
FALLBACK_OBJECT_TYPE = "Error__c"


class ConfigError(ErrorUtilError, ValueError):
    """Raised when reporter configuration is missing or invalid."""


@dataclass(frozen=True)
class FieldMap:
    """
    Maps logical record fields to the backend schema's field identifiers.

    Usage example
    -------------
        fm = FieldMap(full_message="Message__c")
    """
    object_type: str = "Object_Type__c"
    record_url: str = "Record_URL__c"
    severity: str = "Severity_Level__c"
    context_type: str = "Context_Type__c"
    error_type: str = "Error_Type__c"
    full_message: str = "Full_Message__c"
    stack_trace: str = "Stack_Trace__c"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FieldMap":
        """Build a field map, rejecting unknown logical names."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown field name(s) in field map: {', '.join(unknown)}")
        for key, value in data.items():
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"Field identifier for '{key}' must be a non-empty string.")
        return cls(**{k: v.strip() for k, v in data.items()})


@dataclass(frozen=True)
class ReporterConfig:
    """
    Configuration for record formatting, submission and local logging.

    Parameters
    ----------
    channel
        Identifier of the backend log-event channel (``apiName`` in the envelope).
    envelope_key
        Top-level key wrapping the channel and fields.
    fields
        Logical-to-backend field identifier mapping.
    record_url
        Location reported when no per-call location is set.
    endpoint_url
        Where ``HttpLogSink`` posts envelopes, if HTTP transport is used.
    timeout
        HTTP timeout in seconds.
    log_unrecognized
        If True, payloads of unknown shape are still logged as a record.
        If False, they are dropped (a debug line is written locally).
    fallback_context_type, fallback_object_type
        Labels of the record describing a failed submission.
    log_dir, console_level, file_level, write_jsonl, run_id
        Local logging knobs, see ``configure_logging``.
    env_prefix
        Prefix for environment-variable overrides, e.g. "ERRORUTIL_".

    Usage example
    -------------
        cfg = ReporterConfig(endpoint_url="https://logs.example.org/ingest")
    """

    channel: str = DEFAULT_CHANNEL
    envelope_key: str = DEFAULT_ENVELOPE_KEY
    fields: FieldMap = field(default_factory=FieldMap)

    record_url: str = ""
    endpoint_url: Optional[str] = None
    timeout: float = 5.0

    log_unrecognized: bool = True
    fallback_context_type: str = FALLBACK_CONTEXT_TYPE
    fallback_object_type: str = FALLBACK_OBJECT_TYPE

    log_dir: Optional[Path] = None
    console_level: int = 30  # logging.WARNING
    file_level: int = 10  # logging.DEBUG
    write_jsonl: bool = False
    run_id: str = "auto"

    env_prefix: str = field(default="", repr=False)

    def resolved_run_id(self) -> str:
        """Return a non-auto run id."""
        if self.run_id != "auto":
            return self.run_id
        return uuid.uuid4().hex[:10]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default: Optional["ReporterConfig"] = None) -> "ReporterConfig":
        """
        Overlay a plain mapping (e.g. parsed YAML) on top of `default`.

        Usage example
        -------------
            cfg = ReporterConfig.from_mapping({"channel": "App_Log__e", "fields": {"severity": "Level__c"}})
        """
        base = default if default is not None else cls()
        known = {f.name for f in fields(cls)} - {"env_prefix"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

        updates: dict[str, Any] = {}
        for key, value in data.items():
            if key == "fields":
                if not isinstance(value, Mapping):
                    raise ConfigError("'fields' must be a mapping of field name to identifier.")
                overrides = FieldMap.from_mapping(value)
                updates[key] = replace(base.fields, **{k: getattr(overrides, k) for k in value})
            elif key == "log_dir":
                updates[key] = None if value is None else Path(str(value))
            elif key == "timeout":
                try:
                    updates[key] = float(value)
                except (TypeError, ValueError) as exc:
                    raise ConfigError(f"'timeout' must be a number, got {value!r}") from exc
            elif key in ("log_unrecognized", "write_jsonl"):
                if not isinstance(value, bool):
                    raise ConfigError(f"'{key}' must be true or false, got {value!r}")
                updates[key] = value
            elif key in ("console_level", "file_level"):
                if not isinstance(value, int) or isinstance(value, bool):
                    raise ConfigError(f"'{key}' must be an integer logging level, got {value!r}")
                updates[key] = value
            else:
                if value is None and key == "endpoint_url":
                    updates[key] = None
                    continue
                if not isinstance(value, str):
                    raise ConfigError(f"'{key}' must be a string, got {value!r}")
                updates[key] = value
        return replace(base, **updates)

    @classmethod
    def from_env(cls, *, default: Optional["ReporterConfig"] = None) -> "ReporterConfig":
        """
        Create config from environment variables.

        Supported variables (prefix controlled by env_prefix on `default`):
        - <PFX>ENDPOINT_URL: URL
        - <PFX>RECORD_URL: string
        - <PFX>TIMEOUT: float seconds
        - <PFX>LOG_DIR: path
        - <PFX>WRITE_JSONL: "1"/"0"
        - <PFX>LOG_UNRECOGNIZED: "1"/"0"

        Invalid values fall back to `default`.

        Usage example
        -------------
            cfg = ReporterConfig.from_env(default=ReporterConfig(env_prefix="ERRORUTIL_"))
        """
        base = default if default is not None else cls()
        pfx = base.env_prefix

        endpoint_url = os.getenv(f"{pfx}ENDPOINT_URL", base.endpoint_url or "").strip() or None
        record_url = os.getenv(f"{pfx}RECORD_URL", base.record_url)

        timeout = base.timeout
        timeout_raw = os.getenv(f"{pfx}TIMEOUT", "")
        if timeout_raw.strip():
            try:
                timeout = float(timeout_raw)
            except ValueError:
                timeout = base.timeout

        log_dir_raw = os.getenv(f"{pfx}LOG_DIR", "")
        log_dir = Path(log_dir_raw) if log_dir_raw.strip() else base.log_dir

        return replace(
            base,
            endpoint_url=endpoint_url,
            record_url=record_url,
            timeout=timeout,
            log_dir=log_dir,
            write_jsonl=_env_flag(f"{pfx}WRITE_JSONL", base.write_jsonl),
            log_unrecognized=_env_flag(f"{pfx}LOG_UNRECOGNIZED", base.log_unrecognized),
        )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "1" if default else "0").strip()
    return raw not in ("0", "false", "False", "")


def load_config(root: Path, *, default: Optional[ReporterConfig] = None) -> ReporterConfig:
    """
    Load reporter config from a project root if present.

    Search order:
    1) ``errorutil.yaml`` (whole file is the reporter section)
    2) ``config.yaml`` (``errorutil:`` section)

    Returns `default` (or ``ReporterConfig()``) when neither file exists.
    """
    base = default if default is not None else ReporterConfig()

    for filename, section in (("errorutil.yaml", None), ("config.yaml", "errorutil")):
        config_path = root / filename
        if not config_path.exists():
            continue
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse {config_path}: {exc}") from exc
        if section is not None:
            raw = raw.get(section, {}) if isinstance(raw, dict) else {}
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path} must contain a mapping.")
        return ReporterConfig.from_mapping(raw, default=base)
    return base


def resolve_config(root: Path, *, env_prefix: str = "ERRORUTIL_") -> ReporterConfig:
    """
    Resolve configuration for command-line use.

    Priority (highest first): environment variables, config file, defaults.
    """
    from_file = load_config(root, default=ReporterConfig(env_prefix=env_prefix))
    return ReporterConfig.from_env(default=from_file)
