"""Target definitions and the detector-construction settings of a simulation."""

from __future__ import annotations

from dataclasses import dataclass, field

# Lengths are kept in millimetres, densities in g/cm3 and molar masses in g/mole.
MM = 1.0
CM = 10.0
M = 1000.0
UM = 1e-3
NM = 1e-6

_LENGTH_UNITS = (
    ("km", 1e6),
    ("m", M),
    ("cm", CM),
    ("mm", MM),
    ("um", UM),
    ("nm", NM),
    ("fm", 1e-12),
)

SEGA_DETECTORS = 16
SEGA_SEGMENTS = 32
S3_DETECTORS = 2
S3_RINGS = 24
S3_SECTORS = 32


@dataclass(frozen=True)
class Target:
    """A cylindrical, isotopically pure target foil."""

    z: int
    n: int
    density: float
    molar_mass: float
    thickness: float
    radius: float = 0.5 * CM

    @property
    def a(self) -> int:
        return self.z + self.n


_STANDARD_TARGETS = {
    ("Ti", 48): Target(22, 26, 4.515, 47.9475, 2.20 * UM),
    ("Pb", 208): Target(82, 126, 11.382, 207.97665, 882 * NM),
    ("Pt", 196): Target(78, 118, 21.547, 195.9650, 738 * NM),
    ("Pt", 194): Target(78, 116, 21.327, 193.963, 483 * NM),
    ("Pd", 110): Target(46, 64, 12.417, 109.905, 805 * NM),
    ("Au", 197): Target(79, 118, 19.3, 196.97, 984 * NM),
}


def _aliases(symbol: str, mass_number: int) -> tuple[str, ...]:
    forms = (f"{mass_number}{symbol}", f"{symbol}{mass_number}")
    return forms + tuple(form.lower() for form in forms)


_BY_NAME = {
    alias: target
    for (symbol, mass_number), target in _STANDARD_TARGETS.items()
    for alias in _aliases(symbol, mass_number)
}

STANDARD_TARGET_NAMES = tuple(_BY_NAME)


def standard_target(name: str) -> Target:
    """Look up a standard target such as "208Pb", "Pb208", "pb208" or "208pb"."""
    try:
        return _BY_NAME[name]
    except KeyError:
        raise ValueError(f"Unrecognized target {name}") from None


def _best_length(value: float) -> str:
    if value == 0:
        return "0 mm"
    for unit, factor in _LENGTH_UNITS:
        if abs(value) >= factor:
            return f"{value / factor:g} {unit}"
    unit, factor = _LENGTH_UNITS[-1]
    return f"{value / factor:g} {unit}"


@dataclass
class DetectorConstruction:
    """Which detectors and target a simulation places, and where."""

    sega_offset: float = 0.0 * MM
    us_offset: float = 3.0 * CM
    ds_offset: float = 3.0 * CM
    target: Target = field(default_factory=lambda: standard_target("208Pb"))
    target_step: float = 0.0 * UM
    place_sega: bool = False
    place_s3: bool = False
    place_target: bool = False
    check_overlaps: bool = False

    def set_target(self, name: str) -> Target:
        """Switch to a standard target; unknown names leave the target unchanged."""
        self.target = standard_target(name)
        return self.target

    def describe_target(self) -> str:
        """The target's parameters, one per line."""
        t = self.target
        return (
            f"\t Z: {t.z}\n\t N: {t.n}"
            f"\n\t Molar Mass: {t.molar_mass:g} g/mole"
            f"\n\t Density: {t.density:g} g/cm3"
            f"\n\t Thickness: {_best_length(t.thickness)}"
            f"\n\t Radius: {_best_length(t.radius)}"
        )

    def target_step_limit(self) -> float:
        """Maximum step length in the target: the set step, else 5% of the thickness."""
        if self.target_step > 0.0:
            return self.target_step
        return 0.05 * self.target.thickness

    def sensitive_volume_names(self) -> dict[str, list[str]]:
        """Logical-volume names attached to each sensitive detector."""
        volumes: dict[str, list[str]] = {}
        if self.place_sega:
            volumes["GammaTracker"] = [
                f"GeLog{100 * (det + 1) + seg + 1}"
                for det in range(SEGA_DETECTORS)
                for seg in range(SEGA_SEGMENTS)
            ]
        if self.place_s3:
            volumes["IonTracker"] = [
                f"S3Log{det * 10000 + (ring + 1) * 100 + sec + 1}"
                for det in range(S3_DETECTORS)
                for ring in range(S3_RINGS)
                for sec in range(S3_SECTORS)
            ]
        return volumes