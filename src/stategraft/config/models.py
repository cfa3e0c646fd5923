"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``stategraft.toml`` only
contains overrides. An empty file (or none at all) is a valid setup.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from stategraft.domain.types import AmbiguityPolicy


class StateConfig(BaseModel):
    """[state] section."""

    model_config = {"frozen": True}

    path: str = "terraform.tfstate"
    backup: bool = True
    backup_suffix: str = ".backup"
    indent: int = 2


class InferConfig(BaseModel):
    """[infer] section."""

    model_config = {"frozen": True}

    rules: list[str] = Field(default_factory=list)
    ambiguity: AmbiguityPolicy = AmbiguityPolicy.STRICT


class TransformConfig(BaseModel):
    """[transform] section."""

    model_config = {"frozen": True}

    normalize_provider_prefix: bool = True


class OutputConfig(BaseModel):
    """[output] section."""

    model_config = {"frozen": True}

    width: int = 120


class GraftConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    state: StateConfig = Field(default_factory=StateConfig)
    infer: InferConfig = Field(default_factory=InferConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
