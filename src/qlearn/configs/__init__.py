"""Preset configuration registry for qlearn experiments."""

from qlearn.configs.presets import PRESETS, TrainConfig, cli

__all__ = [
    "PRESETS",
    "TrainConfig",
    "cli",
]
