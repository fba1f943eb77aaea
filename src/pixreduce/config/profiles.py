"""Built-in configuration profiles for common execution environments."""

from __future__ import annotations

from dataclasses import dataclass

from pixreduce.config.schema import ReductionConfig
from pixreduce.workers.pool import available_execution_units


@dataclass(frozen=True, slots=True)
class ProfileSpec:
    """Declarative tuning defaults for a named runtime profile."""

    name: str
    description: str
    batch_size: int
    reduce_mode: str
    max_workers: int | None


_PROFILES: dict[str, ProfileSpec] = {
    "balanced": ProfileSpec(
        name="balanced",
        description="Default job-system granularity with a single reduce scan.",
        batch_size=256,
        reduce_mode="sequential",
        max_workers=None,
    ),
    "fine-grained": ProfileSpec(
        name="fine-grained",
        description="Small batches for maximal parallel granularity on small buffers.",
        batch_size=32,
        reduce_mode="sequential",
        max_workers=None,
    ),
    "throughput": ProfileSpec(
        name="throughput",
        description="Large batches and a parallel tree reduce for very large buffers.",
        batch_size=262_144,
        reduce_mode="tree",
        max_workers=None,
    ),
    "serial": ProfileSpec(
        name="serial",
        description="One worker; useful as a baseline when benchmarking.",
        batch_size=65_536,
        reduce_mode="sequential",
        max_workers=1,
    ),
}


def available_profiles() -> dict[str, ProfileSpec]:
    """Return built-in profiles by name."""

    return dict(_PROFILES)


def resolve_profile(name: str) -> ProfileSpec:
    """Resolve one profile by name."""

    key = name.strip().lower()
    profile = _PROFILES.get(key)
    if profile is None:
        known = ", ".join(sorted(_PROFILES))
        raise ValueError(f"Unknown profile '{name}'. Available profiles: {known}")
    return profile


def apply_profile(config: ReductionConfig, profile_name: str) -> ProfileSpec:
    """Apply a profile directly onto a ReductionConfig instance."""

    profile = resolve_profile(profile_name)
    config.batch_size = profile.batch_size
    config.reduce_mode = profile.reduce_mode
    config.max_workers = profile.max_workers
    return profile


def suggested_batch_size(sample_count: int, *, min_batches_per_worker: int = 4) -> int:
    """Pick a batch size that still yields a few batches per execution unit."""

    if sample_count <= 0:
        return 1
    target_batches = available_execution_units() * max(1, min_batches_per_worker)
    return max(1, -(-sample_count // target_batches))
