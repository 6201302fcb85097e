"""Metrics tracking for evodrive."""

from evodrive.metrics.tracker import EvolutionTracker, GenerationSummary

__all__ = ["EvolutionTracker", "GenerationSummary"]
