"""Configuration helpers for the edit-resolution engine."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

AnchorJoin = Literal["verbatim", "newline"]


class EditLimits(BaseModel):
    """Size, ratio and matching limits sourced from YAML.

    Passed explicitly into the matcher, resolver, validator and applier so
    tests can exercise edge limits deterministically.
    """

    # Request shape
    max_file_bytes: int = Field(1_000_000, gt=0)
    max_hunks: int = Field(20, gt=0)
    max_changed_lines_ratio: float = Field(0.5, gt=0.0, le=1.0)
    min_lines_for_ratio_check: int = Field(10, ge=0)

    # Anchor resolution
    max_anchor_span: int = Field(50_000, gt=0)  # chars between beforeStart and afterEnd
    max_anchor_pairs_per_hunk: int = Field(100, gt=0)
    max_boundary_anchor_distance: int = Field(1_000, ge=0)
    min_anchor_lines: int = Field(2, gt=0)
    min_single_line_anchor_chars: int = Field(80, gt=0)
    small_file_lines: int = Field(20, ge=0)  # anchor strength relaxed below this
    anchor_guard_min_chars: int = Field(20, gt=0)
    anchor_join: AnchorJoin = "verbatim"

    # Fuzzy matching
    max_fuzzy_lines: int = Field(50, gt=0)
    fuzzy_max_ratio: float = Field(0.15, ge=0.0, le=1.0)
    fuzzy_min_line_length: int = Field(8, ge=0)

    # Diff output
    diff_context_lines: int = Field(2, ge=0)
    max_diff_bytes: int = Field(100_000, gt=0)


DEFAULT_LIMITS_PATH = Path(__file__).with_name("limits.yaml")


def _read_yaml(path: str | Path | None) -> tuple[Path, dict]:
    config_path = Path(path) if path else DEFAULT_LIMITS_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Limits config not found: {config_path}")
    data = yaml.safe_load(config_path.read_text()) or {}
    return config_path, data


def _env_int(name: str) -> int | None:
    env_val = os.environ.get(name)
    if env_val:
        try:
            return int(env_val)
        except ValueError:
            return None
    return None


def load_limits(
    path: str | Path | None = None,
    preset: str | None = None,
) -> EditLimits:
    """Load edit limits from YAML.

    Priority (highest first):
        1. Environment overrides (LLM_EDIT_MAX_FILE_BYTES, LLM_EDIT_MAX_HUNKS,
           LLM_EDIT_ANCHOR_JOIN)
        2. Top-level keys in the YAML file
        3. The active preset: LLM_EDIT_PRESET, then `preset`, then the
           file's own `preset` key

    Args:
        path: Optional override path. Defaults to `llm_edit/config/limits.yaml`.
        preset: Optional preset name (default, strict, relaxed).

    Returns:
        Validated EditLimits.
    """
    _, data = _read_yaml(path)

    env_preset = os.environ.get("LLM_EDIT_PRESET")
    active_preset = env_preset or preset or data.get("preset")

    presets = data.get("presets", {})
    if active_preset and active_preset not in presets:
        raise ValueError(f"Unknown limits preset '{active_preset}'")

    values: dict = dict(presets.get(active_preset) or {})

    # Top-level overrides (anything that's a known field)
    for key, value in data.items():
        if key in EditLimits.model_fields:
            values[key] = value

    file_bytes = _env_int("LLM_EDIT_MAX_FILE_BYTES")
    if file_bytes:
        values["max_file_bytes"] = file_bytes
    max_hunks = _env_int("LLM_EDIT_MAX_HUNKS")
    if max_hunks:
        values["max_hunks"] = max_hunks
    anchor_join = os.environ.get("LLM_EDIT_ANCHOR_JOIN")
    if anchor_join:
        values["anchor_join"] = anchor_join

    return EditLimits(**values)


def available_presets(path: str | Path | None = None) -> list[str]:
    """List available preset names."""
    try:
        _, data = _read_yaml(path)
    except FileNotFoundError:
        return []
    return list(data.get("presets", {}).keys())


__all__ = [
    "AnchorJoin",
    "EditLimits",
    "DEFAULT_LIMITS_PATH",
    "load_limits",
    "available_presets",
]
