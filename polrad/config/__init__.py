"""
Configuration management for polrad runs.

This module provides:
- SimulationConfig: Data class for simulation parameters
- Builders turning a configuration into geometry, atmosphere and bands
"""

from polrad.config.settings import (
    SimulationConfig,
    SystemConfig,
    EllipsoidConfig,
    SensorConfig,
    PathConfig,
    SpectralConfig,
    build_band,
    parse_target,
)

__all__ = [
    "SimulationConfig",
    "SystemConfig",
    "EllipsoidConfig",
    "SensorConfig",
    "PathConfig",
    "SpectralConfig",
    "build_band",
    "parse_target",
]
