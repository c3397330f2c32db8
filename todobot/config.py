"""Configuration models and loading for todobot."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".github/config.yml"
DEFAULT_BLOB_WINDOW = 5
CONFIG_SECTION = "todo"


class AssignMode(str, Enum):
    NONE = "none"
    AUTHOR = "author"
    SINGLE = "single"
    MANY = "many"


class AutoAssign(BaseModel):
    """Resolved form of the ``autoAssign`` setting.

    The raw setting may be ``false``, ``true`` (assign the commit author), a single
    login or a list of logins. It is normalized once at validation time so callers only
    deal with a mode and an ordered identity list.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    mode: AssignMode = AssignMode.NONE
    identities: tuple[str, ...] = ()

    @classmethod
    def from_raw(cls, value: Any) -> AutoAssign:
        if isinstance(value, AutoAssign):
            return value
        if value is None or value is False:
            return cls()
        if value is True:
            return cls(mode=AssignMode.AUTHOR)
        if isinstance(value, str):
            login = value.strip().lstrip("@")
            return cls(mode=AssignMode.SINGLE, identities=(login,)) if login else cls()
        if isinstance(value, (list, tuple)):
            logins: list[str] = []
            for item in value:
                if not isinstance(item, str):
                    raise ValueError(f"autoAssign entries must be strings, got {type(item).__name__}")
                login = item.strip().lstrip("@")
                if login:
                    logins.append(login)
            return cls(mode=AssignMode.MANY, identities=tuple(logins)) if logins else cls()
        if isinstance(value, dict):
            return cls.model_validate(value)
        raise ValueError(f"Unsupported autoAssign value: {value!r}")

    def resolve(self, author: str | None = None, fallback: str | None = None) -> list[str]:
        if self.mode == AssignMode.AUTHOR:
            login = author or fallback
            return [login] if login else []
        return list(self.identities)


class TodoConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    keyword: list[str] = Field(default_factory=lambda: ["@todo", "TODO"])
    body_keyword: list[str] | None = None
    case_sensitive: bool = False
    auto_assign: AutoAssign = Field(default_factory=AutoAssign)
    exclude_paths: list[str] = Field(default_factory=list)
    config_file_path: str = DEFAULT_CONFIG_PATH
    blob_lines: bool | int = True
    reopen_closed: bool = True
    labels: list[str] = Field(default_factory=list, validation_alias=AliasChoices("label", "labels"))

    @field_validator("keyword", mode="before")
    @classmethod
    def _coerce_keyword(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list) and not [item for item in value if isinstance(item, str) and item.strip()]:
            raise ValueError("keyword must name at least one marker keyword")
        return value

    @field_validator("body_keyword", "exclude_paths", mode="before")
    @classmethod
    def _coerce_string_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("labels", mode="before")
    @classmethod
    def _coerce_labels(cls, value: Any) -> Any:
        if value is None or value is False:
            return []
        if value is True:
            return ["todo"]
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("auto_assign", mode="before")
    @classmethod
    def _coerce_auto_assign(cls, value: Any) -> AutoAssign:
        return AutoAssign.from_raw(value)

    @field_validator("blob_lines")
    @classmethod
    def _check_blob_lines(cls, value: bool | int) -> bool | int:
        if not isinstance(value, bool) and value < 0:
            raise ValueError("blobLines must be a boolean or a non-negative window size")
        return value

    @property
    def blob_window(self) -> int | None:
        """Lines of context on each side of a marker, or None when snippets are disabled."""
        if self.blob_lines is False:
            return None
        if self.blob_lines is True:
            return DEFAULT_BLOB_WINDOW
        return int(self.blob_lines)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _parse_document(text: str, config_path: str) -> dict[str, Any] | None:
    """Return the todo settings mapping, ``{}`` for an empty file or None when unusable."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        logger.warning("Ignoring unparseable config %s: %s", config_path, exc)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be a mapping", config_path)
        return None
    section = data.get(CONFIG_SECTION)
    if isinstance(section, dict):
        return section
    return data


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase keys onto field names so layered sources merge per setting."""
    aliases = {field.alias: name for name, field in TodoConfig.model_fields.items() if field.alias}
    aliases["label"] = "labels"
    return {aliases.get(key, key): value for key, value in data.items()}


def _validate(merged: dict[str, Any], config_path: str) -> TodoConfig:
    if "config_file_path" not in merged:
        merged = {**merged, "config_file_path": config_path}
    return TodoConfig.model_validate(merged)


def load_config_text(
    text: str | None,
    *,
    config_path: str = DEFAULT_CONFIG_PATH,
    defaults: dict[str, Any] | None = None,
    runtime_override: dict[str, Any] | None = None,
) -> TodoConfig:
    """Build a config from raw YAML/JSON text, falling back to defaults when absent or invalid."""
    base = _normalize_keys(defaults or {})
    override = _normalize_keys(runtime_override or {})

    document: dict[str, Any] | None = {}
    if text is not None:
        document = _parse_document(text, config_path)
    if document:
        document = _normalize_keys(document)

    if document is not None:
        try:
            return _validate(_deep_merge(_deep_merge(base, document), override), config_path)
        except ValidationError as exc:
            logger.warning("Ignoring invalid config %s (%s error(s)); using defaults", config_path, exc.error_count())
            logger.debug("Config validation detail: %s", exc)

    try:
        return _validate(_deep_merge(base, override), config_path)
    except ValidationError as exc:
        logger.warning("Ignoring invalid default/override config (%s error(s))", exc.error_count())
        return TodoConfig(config_file_path=config_path)


def load_repo_config(
    read_text: Callable[[str], str | None],
    *,
    config_path: str = DEFAULT_CONFIG_PATH,
    defaults: dict[str, Any] | None = None,
    runtime_override: dict[str, Any] | None = None,
) -> TodoConfig:
    """Load the config through a reader such as a content fetcher bound to a commit."""
    return load_config_text(
        read_text(config_path),
        config_path=config_path,
        defaults=defaults,
        runtime_override=runtime_override,
    )


def load_effective_config(
    repo_path: str | Path,
    config_path: str = DEFAULT_CONFIG_PATH,
    org_defaults: dict[str, Any] | None = None,
    system_defaults: dict[str, Any] | None = None,
    runtime_override: dict[str, Any] | None = None,
) -> TodoConfig:
    """Load config with precedence runtime > repo config file > org > system."""
    repo = Path(repo_path)

    def _read(relative: str) -> str | None:
        path = repo / relative
        if not path.exists():
            return None
        return path.read_text()

    defaults: dict[str, Any] = {}
    if system_defaults:
        defaults = _deep_merge(defaults, system_defaults)
    if org_defaults:
        defaults = _deep_merge(defaults, org_defaults)

    return load_repo_config(
        _read,
        config_path=config_path,
        defaults=defaults,
        runtime_override=runtime_override,
    )
