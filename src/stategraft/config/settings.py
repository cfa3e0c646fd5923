"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``STATEGRAFT_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``stategraft.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from stategraft.config.discovery import find_config
from stategraft.config.models import InferConfig, OutputConfig, StateConfig, TransformConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``stategraft.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class GraftSettings(BaseSettings):
    """Settings for one stategraft invocation.

    Attributes:
        workspace_root: Directory relative state paths resolve against
            (parent of ``stategraft.toml``, or CWD if none was found).
        config_path: The TOML file in use, if any.
        state_file: ``--state`` override for ``[state] path``.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "STATEGRAFT_",
        "env_nested_delimiter": "__",
    }

    workspace_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None
    state_file: str | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    state: StateConfig = Field(default_factory=StateConfig)
    infer: InferConfig = Field(default_factory=InferConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @property
    def state_path_setting(self) -> str:
        """The configured state path, with ``--state`` taking priority."""
        return self.state_file or self.state.path

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        workspace_root: Path | None = None,
        **cli_flags: Any,
    ) -> GraftSettings:
        """Construct settings from a CLI invocation.

        Discovers ``stategraft.toml`` via walk-up (or explicit
        *config_path*), resolves *workspace_root* from the config file's
        directory, and merges CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(workspace_root)

        resolved_root = workspace_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        flags = {k: v for k, v in cli_flags.items() if v is not None}
        _tls.toml_path = toml_path
        try:
            return cls(workspace_root=resolved_root, config_path=toml_path, **flags)
        finally:
            _tls.toml_path = None
