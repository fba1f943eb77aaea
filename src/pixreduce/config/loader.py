"""Load reduction configs from Python references."""

from __future__ import annotations

from dataclasses import fields
import importlib
import importlib.util
from pathlib import Path
from types import ModuleType
from typing import Any

from pixreduce.config.schema import ReductionConfig


def _load_module(module_ref: str) -> ModuleType:
    path_candidate = Path(module_ref).expanduser()
    if path_candidate.exists():
        module_name = f"_pixreduce_cfg_{path_candidate.stem}"
        spec = importlib.util.spec_from_file_location(module_name, path_candidate)
        if spec is None or spec.loader is None:
            raise RuntimeError(f"Could not load module from path: {path_candidate}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(module_ref)


def _resolve_attr(obj: Any, attr_path: str) -> Any:
    value = obj
    for part in attr_path.split("."):
        value = getattr(value, part)
    return value


def load_object(reference: str) -> Any:
    """Load object by `module_or_path:attribute` reference."""

    if ":" not in reference:
        raise ValueError("Config reference must be in form 'module_or_path:attribute'.")
    module_ref, attr = reference.rsplit(":", maxsplit=1)
    module = _load_module(module_ref)
    return _resolve_attr(module, attr)


def load_reduction_config(config_ref: str | None) -> ReductionConfig:
    """Load a ReductionConfig from reference or return the defaults."""

    if config_ref is None:
        return ReductionConfig()

    loaded = load_object(config_ref)
    if isinstance(loaded, dict):
        loaded = reduction_config_from_dict(loaded)
    if not isinstance(loaded, ReductionConfig):
        type_name = type(loaded).__name__
        raise TypeError(
            f"Config reference must resolve to ReductionConfig, got {type_name}."
        )
    loaded.validate()
    return loaded


def reduction_config_from_dict(payload: dict[str, Any]) -> ReductionConfig:
    """Reconstruct a ReductionConfig from a plain dictionary."""

    known = {item.name for item in fields(ReductionConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    config = ReductionConfig(**payload)
    config.batch_size = int(config.batch_size)
    if config.max_workers is not None:
        config.max_workers = int(config.max_workers)
    config.validate()
    return config
