from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .errors import check_threshold


@dataclass(frozen=True)
class RunConfig:
    """
    Settings for one detection run. Keys of the JSON run config map 1:1 onto
    these fields (and onto the `--flag` names of Scripts/detect_image.py).
    """

    model: Optional[str] = None
    backend: Optional[str] = None
    metadata: Optional[str] = None
    output: str = "output.jpg"
    target_size: int = 480
    stride: int = 32
    conf_thres: float = 0.25
    nms_thres: float = 0.45
    class_agnostic: bool = False
    int8: bool = False
    use_vulkan: bool = True
    num_threads: int = 4

    def __post_init__(self) -> None:
        check_threshold("conf_thres", self.conf_thres)
        check_threshold("nms_thres", self.nms_thres)
        if self.stride <= 0:
            raise ValueError("stride must be > 0")
        if self.target_size < self.stride:
            raise ValueError("target_size must be >= stride")
        if self.num_threads < 1:
            raise ValueError("num_threads must be >= 1")


_STR_KEYS = {"model", "backend", "metadata", "output"}
_INT_KEYS = {"target_size", "stride", "num_threads"}
_FLOAT_KEYS = {"conf_thres", "nms_thres"}
_BOOL_KEYS = {"class_agnostic", "int8", "use_vulkan"}


def load_run_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Run config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid run config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Run config must be a JSON object")
    return payload


def _coerce(key: str, value: Any) -> Any:
    if key in _STR_KEYS:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{key} must be a non-empty string")
        return value
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean")
        return value
    if key in _INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be an integer")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"{key} must be an integer")
        return int(value)
    if key in _FLOAT_KEYS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        return float(value)
    raise ValueError(f"Unsupported run config key: {key}")


def run_config_from_payload(payload: Dict[str, Any]) -> RunConfig:
    allowed = {f.name for f in fields(RunConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown run config keys: {unknown}")
    values = {key: _coerce(key, value) for key, value in payload.items() if value is not None}
    return RunConfig(**values)


def collect_cli_dests(parser: argparse.ArgumentParser, argv: Sequence[str]) -> set[str]:
    dests: set[str] = set()
    for opt, action in parser._option_string_actions.items():
        for arg in argv:
            if arg == opt or arg.startswith(f"{opt}="):
                dests.add(action.dest)
                break
    return dests


def apply_run_config(
    *,
    args: argparse.Namespace,
    payload: Dict[str, Any],
    cli_dests: set[str],
) -> None:
    """
    Copy config values onto `args`; options given on the command line win.
    """

    if "config" in payload:
        raise ValueError("run config must not include the 'config' key")
    # validates keys and types
    run_config_from_payload(payload)

    for key, value in payload.items():
        if key in cli_dests or value is None:
            continue
        setattr(args, key, _coerce(key, value))
