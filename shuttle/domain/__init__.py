"""Bracket engine: pure functions over the in-memory tournament model."""

from shuttle.domain.builder import build_knockout, build_round_robin
from shuttle.domain.updater import apply_result, recompute

__all__ = ["apply_result", "build_knockout", "build_round_robin", "recompute"]
