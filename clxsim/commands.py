"""Macro commands that configure the geometry, the excitations and the gamma-ray source."""

from __future__ import annotations

import sys
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Iterator, Optional, Sequence

from .excitation import Excitation
from .levels import GammaSource
from .targets import CM, M, MM, NM, STANDARD_TARGET_NAMES, UM, DetectorConstruction

Handler = Callable[[str], Optional[str]]

LENGTH = "Length"
DENSITY = "Volumic Mass"
MASS = "Mass"

# Lengths in mm, densities in g/cm3, molar masses in g/mole.
_UNITS: dict[str, tuple[float, str]] = {
    "km": (1e6 * MM, LENGTH),
    "m": (M, LENGTH),
    "cm": (CM, LENGTH),
    "mm": (MM, LENGTH),
    "um": (UM, LENGTH),
    "nm": (NM, LENGTH),
    "fm": (1e-12 * MM, LENGTH),
    "g/cm3": (1.0, DENSITY),
    "mg/cm3": (1e-3, DENSITY),
    "kg/m3": (1e-3, DENSITY),
    "g/mole": (1.0, MASS),
    "kg/mole": (1e3, MASS),
    "mg/mole": (1e-3, MASS),
}

BEAM_ON = "/run/beamOn"
MASTER_PREFIXES = ("/Geometry", "/Output", "/run")


class CommandError(ValueError):
    """A macro command is unknown or its argument is invalid."""


def _measure(text: str) -> tuple[float, str]:
    tokens = text.split()
    if len(tokens) != 2:
        raise CommandError(f"expected a value and a unit, got {text!r}")
    value, unit = tokens
    try:
        number = float(value)
    except ValueError:
        raise CommandError(f"{value!r} is not a number") from None
    try:
        factor, dimension = _UNITS[unit]
    except KeyError:
        raise CommandError(f"unknown unit {unit!r}") from None
    return number * factor, dimension


def parse_quantity(text: str) -> float:
    """Convert "value unit" to internal units (mm, g/cm3 or g/mole)."""
    return _measure(text)[0]


def _quantity(text: str, dimension: str) -> float:
    value, found = _measure(text)
    if found != dimension:
        raise CommandError(f"{text!r} is a {found.lower()}, not a {dimension.lower()}")
    return value


def _integer(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise CommandError(f"{text!r} is not an integer") from None


def _real(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise CommandError(f"{text!r} is not a number") from None


def _string(text: str) -> str:
    if not text:
        raise CommandError("a value is required")
    return text


def _no_argument(text: str) -> None:
    if text:
        raise CommandError(f"takes no parameter, got {text!r}")


@dataclass(frozen=True)
class _Command:
    handler: Handler
    guidance: str


class CommandRegistry:
    """Command paths mapped to the handlers that carry them out."""

    def __init__(self) -> None:
        self._commands: dict[str, _Command] = {}

    def register(self, path: str, handler: Handler, guidance: str = "") -> None:
        """Add a command; the handler receives the argument text and returns a message."""
        if not path.startswith("/") or path.endswith("/") or any(c.isspace() for c in path):
            raise ValueError(f"invalid command path {path!r}")
        if path in self._commands:
            raise ValueError(f"command {path} is already registered")
        self._commands[path] = _Command(handler, guidance)

    def apply(self, line: str) -> str | None:
        """Run one macro line; blank lines and comments do nothing."""
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        parts = text.split(maxsplit=1)
        path = parts[0]
        argument = parts[1].strip() if len(parts) > 1 else ""
        command = self._commands.get(path)
        if command is None:
            raise CommandError(f"command <{path}> not found")
        try:
            return command.handler(argument)
        except ValueError as exc:
            raise CommandError(f"{path}: {exc}") from exc

    def guidance(self, path: str) -> str:
        try:
            return self._commands[path].guidance
        except KeyError:
            raise CommandError(f"command <{path}> not found") from None

    def __contains__(self, path: object) -> bool:
        return path in self._commands

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)


def _register_geometry(registry: CommandRegistry, con: DetectorConstruction) -> None:
    def flag(attribute: str, message: str) -> Handler:
        def handler(argument: str) -> str:
            _no_argument(argument)
            setattr(con, attribute, True)
            return message

        return handler

    def offset(attribute: str, side: str) -> Handler:
        def handler(argument: str) -> str:
            setattr(con, attribute, _quantity(argument, LENGTH))
            return f"Setting {side} S3 offset to {argument}"

        return handler

    def target_field(name: str, parse: Callable[[str], object], label: str) -> Handler:
        def handler(argument: str) -> str:
            con.target = replace(con.target, **{name: parse(argument)})
            return f"Setting target {label} to {argument}"

        return handler

    def step(argument: str) -> str:
        con.target_step = _quantity(argument, LENGTH)
        return f"Setting step size in the target to {argument}"

    def standard(argument: str) -> str:
        name = _string(argument)
        if name not in STANDARD_TARGET_NAMES:
            raise CommandError(
                f"{name!r} is not one of the candidates: {' '.join(STANDARD_TARGET_NAMES)}"
            )
        con.set_target(name)
        return f"Setting parameters for a standard {name} target\n{con.describe_target()}"

    def show(argument: str) -> str:
        _no_argument(argument)
        return con.describe_target()

    def length(text: str) -> float:
        return _quantity(text, LENGTH)

    reg = registry.register
    reg(
        "/Geometry/CheckOverlaps",
        flag("check_overlaps", "Will check the geometry for overlapping physical volumes"),
        "Check for overlapping volumes",
    )
    reg(
        "/Geometry/SeGA/Construct",
        flag("place_sega", "Simulation will include the SeGA array"),
        "Place SeGA",
    )
    reg(
        "/Geometry/S3/Construct",
        flag("place_s3", "Simulation will include the silicon detectors"),
        "Place the S3 detectors",
    )
    reg(
        "/Geometry/S3/UpstreamOffset",
        offset("us_offset", "upstream"),
        "Set (positive) z-offset of upstream detector (Default: 3 cm)",
    )
    reg(
        "/Geometry/S3/DownstreamOffset",
        offset("ds_offset", "downstream"),
        "Set (positive) z-offset of downstream detector (Default: 3 cm)",
    )
    reg(
        "/Geometry/Target/Construct",
        flag("place_target", "Simulation will include the target"),
        "Place the target",
    )
    reg("/Geometry/Target/Z", target_field("z", _integer, "Z"), "Set target Z")
    reg("/Geometry/Target/N", target_field("n", _integer, "N"), "Set target N")
    reg(
        "/Geometry/Target/Density",
        target_field("density", lambda text: _quantity(text, DENSITY), "density"),
        "Set target density",
    )
    reg(
        "/Geometry/Target/Mass",
        target_field("molar_mass", lambda text: _quantity(text, MASS), "mass"),
        "Set target mass",
    )
    reg(
        "/Geometry/Target/Thickness",
        target_field("thickness", length, "thickness"),
        "Set target linear thickness (length)",
    )
    reg("/Geometry/Target/Radius", target_field("radius", length, "radius"), "Set target radius")
    reg(
        "/Geometry/Target/StandardTarget",
        standard,
        "Construct a standard target: 208Pb, 48Ti, 196Pt, 110Pd, or 197Au",
    )
    reg("/Geometry/Target/StepSize", step, "Set simulation step size in the target")
    reg("/Geometry/Target/Print", show, "Print target parameters")


def _register_excitation(registry: CommandRegistry, exc: Excitation) -> None:
    nuc = exc.nucleus
    path = "/Excitation/Projectile/" if exc.projectile else "/Excitation/Recoil/"

    def level_file(argument: str) -> str:
        exc.level_file = _string(argument)
        return f"Setting {nuc} level scheme file to {argument}"

    def probability_file(argument: str) -> str:
        exc.probability_file = _string(argument)
        return f"Setting {nuc} excitation probabilites file to {argument}"

    def populate(argument: str) -> str:
        exc.selected = _integer(argument)
        return f"Selecting state {argument} to populate in the {nuc}"

    def consider(argument: str) -> str:
        exc.considered = _integer(argument)
        return f"Will only consider state {argument} when populating excited states in the {nuc}"

    def spin(argument: str) -> str:
        exc.ground_state_spin = _real(argument)
        return f"Setting ground state spin of the {nuc} to {argument}"

    def no_feeding(argument: str) -> str:
        _no_argument(argument)
        exc.simple_considered = True
        return f"Will not include feeding to the {nuc} considered state"

    reg = registry.register
    reg(path + "LevelScheme", level_file, f"Set name of the {nuc} level scheme file")
    reg(
        path + "Probabilities",
        probability_file,
        f"Set name of the {nuc} excitation probabilities file",
    )
    reg(path + "PopulateState", populate, f"Choose one state to always populate in the {nuc}")
    reg(
        path + "OnlyConsiderState",
        consider,
        f"Only allow one excited state to emit gamma-rays in the {nuc}. "
        "Rescale excitation probabilities",
    )
    reg(path + "GroundStateSpin", spin, f"Set spin of the {nuc} ground state")
    reg(
        path + "NoFeeding",
        no_feeding,
        f"Turn off feeding to the considered state in the {nuc}. "
        "Rescale excitation probabilities",
    )


def _register_source(registry: CommandRegistry, source: GammaSource) -> None:
    def level_file(argument: str) -> str:
        source.file_name = _string(argument)
        return f"Setting source level scheme file to {argument}"

    def spin(argument: str) -> str:
        source.ground_state_spin = _real(argument)
        return f"Setting the spin of the gamma-ray source ground state to {argument}"

    registry.register(
        "/Source/LevelScheme",
        level_file,
        "Set the name of the level scheme file for the gamma-ray source",
    )
    registry.register(
        "/Source/GroundStateSpin", spin, "Set the ground state spin of the gamma-ray source"
    )


def build_registry(
    construction: DetectorConstruction | None = None,
    projectile: Excitation | None = None,
    recoil: Excitation | None = None,
    source: GammaSource | None = None,
) -> CommandRegistry:
    """Register the commands of every component that is given."""
    registry = CommandRegistry()
    if construction is not None:
        _register_geometry(registry, construction)
    for excitation in (projectile, recoil):
        if excitation is not None:
            _register_excitation(registry, excitation)
    if source is not None:
        _register_source(registry, source)
    return registry


def master_commands(lines: Iterable[str]) -> tuple[list[str], str | None]:
    """The macro lines the master applies before initialisation, and the beamOn line.

    Lines mentioning /Geometry, /Output or /run are kept until the first
    /run/beamOn line, which is returned separately (None if there is none).
    """
    kept: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if BEAM_ON in line:
            return kept, line
        if any(prefix in line for prefix in MASTER_PREFIXES):
            kept.append(line)
    return kept, None


def _beam_on_events(line: str) -> int:
    tokens = line.split()
    try:
        position = tokens.index(BEAM_ON)
    except ValueError:
        raise CommandError(f"malformed beamOn command {line.strip()!r}") from None
    if position + 1 >= len(tokens):
        return 1
    events = _integer(tokens[position + 1])
    if events < 0:
        raise CommandError(f"cannot run {events} events")
    return events


def main(argv: Sequence[str] | None = None) -> int:
    """Configure a batch run from a macro file and report its set-up."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(
            "usage: clxsim MACRO_FILE (interactive visualisation is not available)",
            file=sys.stderr,
        )
        return 1

    path = args[0]
    try:
        with open(path, encoding="utf-8") as handle:
            lines = handle.read().splitlines()
    except OSError as exc:
        print(f"Could not open macro file {path}: {exc}", file=sys.stderr)
        return 1

    construction = DetectorConstruction()
    registry = build_registry(
        construction,
        Excitation(projectile=True),
        Excitation(projectile=False),
        GammaSource(),
    )

    commands, beam_on = master_commands(lines)
    for line in commands:
        try:
            message = registry.apply(line)
        except CommandError as exc:
            print(exc, file=sys.stderr)
            continue
        if message:
            print(message)

    if beam_on is None:
        print(f"No {BEAM_ON} command in {path}", file=sys.stderr)
        return 1
    try:
        events = _beam_on_events(beam_on)
    except CommandError as exc:
        print(exc, file=sys.stderr)
        return 1

    for name, volumes in construction.sensitive_volume_names().items():
        print(f"{name}: {len(volumes)} sensitive volumes")
    if construction.place_target:
        print("Target:")
        print(construction.describe_target())
    print(f"Starting run of {events} events")
    return 0