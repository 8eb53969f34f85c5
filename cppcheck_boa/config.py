"""
cppcheck_boa/config.py
══════════════════════

Analysis options.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, Mapping

from cppcheck_boa.errors import ConfigurationError
from cppcheck_boa.storage import CHARACTER_TYPES

#: allocator name → index of its byte-count argument
DEFAULT_ALLOCATORS: Mapping[str, int] = {
    "malloc": 0,
    "alloca": 0,
    "realloc": 1,
}


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run."""
    allocators: Mapping[str, int] = field(
        default_factory=lambda: dict(DEFAULT_ALLOCATORS))

    # Require MAX(ALLOC) > MAX(USED) instead of >=.
    strict_bounds: bool = False

    # Also require MIN(USED) >= 0.
    check_negative_index: bool = False

    # Emit flow-insensitive bounds for assignments to integer variables.
    track_assignments: bool = True

    character_types: FrozenSet[str] = CHARACTER_TYPES

    def with_allocators(self, specs: Iterable[str]) -> "AnalysisConfig":
        """Return a copy with extra ``NAME[:INDEX]`` allocator specs added."""
        allocators: Dict[str, int] = dict(self.allocators)
        for spec in specs:
            name, index = parse_allocator_spec(spec)
            allocators[name] = index
        return replace(self, allocators=allocators)


def parse_allocator_spec(spec: str):
    """``"xmalloc"`` → ``("xmalloc", 0)``; ``"my_realloc:1"`` → ``("my_realloc", 1)``."""
    name, sep, raw_index = spec.strip().partition(":")
    if not name.isidentifier():
        raise ConfigurationError(f"invalid allocator name in {spec!r}")
    if not sep:
        return name, 0
    try:
        index = int(raw_index)
    except ValueError:
        raise ConfigurationError(
            f"invalid size-argument index in allocator spec {spec!r}") from None
    if index < 0:
        raise ConfigurationError(
            f"size-argument index must be non-negative in {spec!r}")
    return name, index
