"""
Simulation configuration data structures.

Defines the configuration schema of a polrad run: the reference ellipsoid,
the sensor state, the path sampling and the spectral setup including the
absorption bands. The builders turn a configuration into the plain objects
the numerical core works with.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from polrad.absorption.band import AbsorptionLine, Band
from polrad.absorption.zeeman import Zeeman
from polrad.atmosphere.profiles import AtmosphereProfile, StandardAtmosphere
from polrad.core.constants import (
    LINE_CUTOFF_HZ,
    WGS84_ECCENTRICITY,
    WGS84_SEMI_MAJOR_AXIS,
)
from polrad.geometry.coordinates import Los, Position
from polrad.geometry.ellipsoid import Ellipsoid
from polrad.geometry.navigation import Nav
from polrad.rte.jacobian import StokesComponent, Target, TargetKind

logger = logging.getLogger(__name__)

ATMOSPHERE_MODELS = ["US_STANDARD_1976"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class SystemConfig:
    """System-level configuration settings.

    Attributes:
        num_threads: Worker threads for the frequency loop
        log_level: Logging level name used by the command line
    """
    num_threads: int = 1
    log_level: str = "INFO"


@dataclass
class EllipsoidConfig:
    """Reference ellipsoid.

    Attributes:
        a: Semi-major axis [m]
        e: Eccentricity
    """
    a: float = WGS84_SEMI_MAJOR_AXIS
    e: float = WGS84_ECCENTRICITY


@dataclass
class SensorConfig:
    """Observing platform state.

    Attributes:
        altitude: Height above the ellipsoid [m]
        latitude: Geodetic latitude [deg]
        longitude: Longitude [deg]
        zenith: Viewing zenith angle [deg]
        azimuth: Viewing azimuth angle, east of north [deg]
        time: Observation time [s]
    """
    altitude: float = 600e3
    latitude: float = 0.0
    longitude: float = 0.0
    zenith: float = 120.0
    azimuth: float = 0.0
    time: float = 0.0


@dataclass
class PathConfig:
    """Path sampling and atmosphere.

    Attributes:
        atmosphere: Atmosphere model name
        top_altitude: Top of the atmosphere [m]
        step_length: Distance between path points [m]
        magnetic_field: Local (east, north, up) field [T]
    """
    atmosphere: str = "US_STANDARD_1976"
    top_altitude: float = 100e3
    step_length: float = 1e3
    magnetic_field: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])


@dataclass
class SpectralConfig:
    """Spectral calculation parameters.

    Attributes:
        flow: Lowest frequency [Hz]
        fupp: Highest frequency [Hz]
        size: Number of frequencies
        stokes_dim: Stokes dimension 1..4
        bands: Absorption bands, each a mapping with ``vmr``, optional
            ``cutoff`` and a list of ``lines`` (``f0``, ``intensity``,
            ``gamma``, ``n``, ``lower_energy``, ``Ju``, ``Jl``, ``gu``, ``gl``)
        targets: Retrieval target names: ``temperature``, ``vmr[i]``,
            ``magnetic_u``, ``magnetic_v``, ``magnetic_w``
        polarization: Reported Stokes components, e.g. ``["I", "V"]``
    """
    flow: float = 118.0e9
    fupp: float = 119.5e9
    size: int = 301
    stokes_dim: int = 4
    bands: List[Dict[str, Any]] = field(default_factory=list)
    targets: List[str] = field(default_factory=list)
    polarization: Optional[List[str]] = None


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Example YAML input:
        system: {num_threads: 4}
        sensor: {altitude: 600000, zenith: 120}
        path: {step_length: 500, magnetic_field: [0, 2.0e-5, -4.0e-5]}
        spectral:
          flow: 118.5e9
          fupp: 119.0e9
          size: 201
          bands:
            - vmr: 0.2095
              lines:
                - {f0: 118.750343e9, intensity: 1e-25, gamma: 2.0e9, Ju: 1, Jl: 0, gu: 2.0, gl: 0.0}
    """
    system: SystemConfig = field(default_factory=SystemConfig)
    ellipsoid: EllipsoidConfig = field(default_factory=EllipsoidConfig)
    sensor: SensorConfig = field(default_factory=SensorConfig)
    path: PathConfig = field(default_factory=PathConfig)
    spectral: SpectralConfig = field(default_factory=SpectralConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "SimulationConfig":
        """Create SimulationConfig from a dictionary.

        Missing sections and keys take their defaults.

        Args:
            config_dict: Configuration dictionary

        Returns:
            SimulationConfig instance
        """
        config_dict = config_dict or {}

        sys_dict = config_dict.get("system", {})
        system = SystemConfig(
            num_threads=int(sys_dict.get("num_threads", 1)),
            log_level=sys_dict.get("log_level", "INFO"),
        )

        ell_dict = config_dict.get("ellipsoid", {})
        ellipsoid = EllipsoidConfig(
            a=float(ell_dict.get("a", WGS84_SEMI_MAJOR_AXIS)),
            e=float(ell_dict.get("e", WGS84_ECCENTRICITY)),
        )

        sen_dict = config_dict.get("sensor", {})
        sensor = SensorConfig(
            altitude=float(sen_dict.get("altitude", 600e3)),
            latitude=float(sen_dict.get("latitude", 0.0)),
            longitude=float(sen_dict.get("longitude", 0.0)),
            zenith=float(sen_dict.get("zenith", 120.0)),
            azimuth=float(sen_dict.get("azimuth", 0.0)),
            time=float(sen_dict.get("time", 0.0)),
        )

        path_dict = config_dict.get("path", {})
        path = PathConfig(
            atmosphere=path_dict.get("atmosphere", "US_STANDARD_1976"),
            top_altitude=float(path_dict.get("top_altitude", 100e3)),
            step_length=float(path_dict.get("step_length", 1e3)),
            magnetic_field=[float(c) for c in path_dict.get("magnetic_field", [0.0, 0.0, 0.0])],
        )

        spec_dict = config_dict.get("spectral", {})
        spectral = SpectralConfig(
            flow=float(spec_dict.get("flow", 118.0e9)),
            fupp=float(spec_dict.get("fupp", 119.5e9)),
            size=int(spec_dict.get("size", 301)),
            stokes_dim=int(spec_dict.get("stokes_dim", 4)),
            bands=list(spec_dict.get("bands", [])),
            targets=list(spec_dict.get("targets", [])),
            polarization=spec_dict.get("polarization"),
        )

        return cls(
            system=system,
            ellipsoid=ellipsoid,
            sensor=sensor,
            path=path,
            spectral=spectral,
        )

    @classmethod
    def from_json(cls, json_path: str) -> "SimulationConfig":
        """Load configuration from a JSON file."""
        with open(json_path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "SimulationConfig":
        """Load configuration from a YAML file."""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f)
        return cls.from_dict(config_dict)

    @classmethod
    def from_file(cls, path: str) -> "SimulationConfig":
        """Load a YAML or JSON file, chosen by extension."""
        logger.info(f"Loading configuration from {path}")
        if str(path).lower().endswith((".yaml", ".yml")):
            return cls.from_yaml(path)
        return cls.from_json(path)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a nested dictionary."""
        return {
            "system": {
                "num_threads": self.system.num_threads,
                "log_level": self.system.log_level,
            },
            "ellipsoid": {
                "a": self.ellipsoid.a,
                "e": self.ellipsoid.e,
            },
            "sensor": {
                "altitude": self.sensor.altitude,
                "latitude": self.sensor.latitude,
                "longitude": self.sensor.longitude,
                "zenith": self.sensor.zenith,
                "azimuth": self.sensor.azimuth,
                "time": self.sensor.time,
            },
            "path": {
                "atmosphere": self.path.atmosphere,
                "top_altitude": self.path.top_altitude,
                "step_length": self.path.step_length,
                "magnetic_field": list(self.path.magnetic_field),
            },
            "spectral": {
                "flow": self.spectral.flow,
                "fupp": self.spectral.fupp,
                "size": self.spectral.size,
                "stokes_dim": self.spectral.stokes_dim,
                "bands": self.spectral.bands,
                "targets": self.spectral.targets,
                "polarization": self.spectral.polarization,
            },
        }

    def to_json(self, json_path: str, indent: int = 2) -> None:
        """Save configuration to a JSON file."""
        with open(json_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=indent)

    def validate(self) -> list:
        """Validate configuration parameters.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.system.num_threads < 1:
            errors.append("num_threads must be at least 1")
        if self.system.log_level.upper() not in LOG_LEVELS:
            errors.append(f"Invalid log level: {self.system.log_level}")

        if self.ellipsoid.a <= 0:
            errors.append("ellipsoid semi-major axis must be positive")
        if not 0 <= self.ellipsoid.e < 1:
            errors.append("ellipsoid eccentricity must be in [0, 1)")

        if not -90 <= self.sensor.latitude <= 90:
            errors.append("sensor latitude must be between -90 and 90 degrees")
        if not 0 <= self.sensor.zenith <= 180:
            errors.append("zenith angle must be between 0 and 180 degrees")

        if self.path.atmosphere not in ATMOSPHERE_MODELS:
            errors.append(f"Invalid atmosphere model: {self.path.atmosphere}")
        if self.path.top_altitude <= 0:
            errors.append("top altitude must be positive")
        if self.path.step_length <= 0:
            errors.append("step length must be positive")
        if len(self.path.magnetic_field) != 3:
            errors.append("magnetic field needs three components")

        if self.spectral.flow > self.spectral.fupp:
            errors.append("flow must not exceed fupp")
        if self.spectral.size < 1:
            errors.append("spectral size must be at least 1")
        if not 1 <= self.spectral.stokes_dim <= 4:
            errors.append("stokes_dim must be between 1 and 4")

        for i, band in enumerate(self.spectral.bands):
            if not band.get("lines"):
                errors.append(f"band {i} has no lines")
            if float(band.get("vmr", 1.0)) < 0:
                errors.append(f"band {i} has a negative vmr")

        for name in self.spectral.targets:
            try:
                parse_target(name, len(self.spectral.bands))
            except ValueError as e:
                errors.append(str(e))

        for name in self.spectral.polarization or []:
            if name not in StokesComponent.__members__:
                errors.append(f"Invalid Stokes component: {name}")
            elif StokesComponent[name] >= self.spectral.stokes_dim:
                errors.append(f"Stokes component {name} exceeds stokes_dim")

        return errors

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    def build_ellipsoid(self) -> Ellipsoid:
        return Ellipsoid(self.ellipsoid.a, self.ellipsoid.e)

    def build_sensor(self) -> Nav:
        s = self.sensor
        return Nav.from_state(
            Position.ellipsoidal(s.altitude, s.latitude, s.longitude, s.time),
            Los.spherical(s.zenith, s.azimuth),
            self.build_ellipsoid(),
        )

    def build_atmosphere(self) -> AtmosphereProfile:
        if self.path.atmosphere not in ATMOSPHERE_MODELS:
            raise ValueError(f"Invalid atmosphere model: {self.path.atmosphere}")
        return StandardAtmosphere(magnetic_field=self.path.magnetic_field)

    def build_bands(self) -> List[Band]:
        return [build_band(b) for b in self.spectral.bands]

    def build_targets(self) -> List[Target]:
        return [parse_target(name, len(self.spectral.bands)) for name in self.spectral.targets]

    def build_polarization(self) -> Optional[List[StokesComponent]]:
        if self.spectral.polarization is None:
            return None
        return [StokesComponent[name] for name in self.spectral.polarization]


def build_band(band_dict: Dict[str, Any]) -> Band:
    """Band from its configuration mapping."""
    lines = []
    for line in band_dict.get("lines", []):
        lines.append(AbsorptionLine(
            f0=float(line["f0"]),
            intensity=float(line["intensity"]),
            gamma=float(line["gamma"]),
            n=float(line.get("n", 0.75)),
            lower_energy=float(line.get("lower_energy", 0.0)),
            Ju=line.get("Ju"),
            Jl=line.get("Jl"),
            zeeman=Zeeman(float(line.get("gu", 0.0)), float(line.get("gl", 0.0))),
        ))
    return Band(
        lines,
        vmr=float(band_dict.get("vmr", 1.0)),
        cutoff=float(band_dict.get("cutoff", LINE_CUTOFF_HZ)),
    )


def parse_target(name: str, n_bands: int) -> Target:
    """
    Target from its name: ``temperature``, ``magnetic_u|v|w`` or ``vmr[i]``.

    Raises
    ------
    ValueError
        For unknown names or band indices out of range
    """
    if name.startswith("vmr[") and name.endswith("]"):
        try:
            band = int(name[4:-1])
        except ValueError:
            raise ValueError(f"Invalid retrieval target: {name}") from None
        if not 0 <= band < n_bands:
            raise ValueError(f"Retrieval target {name} refers to a missing band")
        return Target(TargetKind.VMR, band=band)

    for kind in TargetKind:
        if kind is not TargetKind.VMR and kind.value == name:
            return Target(kind)
    raise ValueError(f"Invalid retrieval target: {name}")

