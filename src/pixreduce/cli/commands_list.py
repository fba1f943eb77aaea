"""`pixreduce list` command."""

from __future__ import annotations

from dataclasses import dataclass

from pixreduce.config.profiles import available_profiles
from pixreduce.pipeline.registry import available_combiners, available_extractors


@dataclass(slots=True)
class ListCommand:
    """List built-in extractors, combiners and profiles."""


def execute(command: ListCommand) -> None:
    print("extractors:")
    for name in sorted(available_extractors()):
        print(f"  {name}")
    print("combiners:")
    for name, combiner in sorted(available_combiners().items()):
        print(f"  {name} (identity={combiner.identity})")
    print("profiles:")
    for name, profile in sorted(available_profiles().items()):
        print(f"  {name}: {profile.description}")
