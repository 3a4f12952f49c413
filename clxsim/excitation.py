"""Excitation probabilities of Coulomb-excited states and random state selection."""

from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from itertools import accumulate
from typing import Iterable, Protocol, Union

import numpy as np
from scipy.interpolate import CubicSpline

from .levels import Level, LevelScheme, parse_level_scheme

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

# A bicubic spline needs at least this many points along each axis.
MIN_GRID_POINTS = 4
# Out-of-range warnings are repeated at most this many times per kind.
WARNING_LIMIT = 5


class _RandomSource(Protocol):
    def random(self) -> float: ...


def _numbers(line: str, what: str) -> list[float]:
    try:
        return [float(token) for token in line.split()]
    except ValueError:
        raise ValueError(f"malformed {what} line: {line.rstrip()!r}") from None


@dataclass
class ProbabilityTable:
    """Excitation probabilities on an (energy, theta) grid.

    ``probabilities`` is indexed ``[state, theta, energy]``.
    """

    energies: np.ndarray
    thetas: np.ndarray
    probabilities: np.ndarray

    def __post_init__(self) -> None:
        self.energies = np.asarray(self.energies, dtype=float)
        self.thetas = np.asarray(self.thetas, dtype=float)
        self.probabilities = np.array(self.probabilities, dtype=float)
        if self.energies.ndim != 1 or self.thetas.ndim != 1:
            raise ValueError("energies and thetas must be one-dimensional")
        if self.energies.size == 0 or self.thetas.size == 0:
            raise ValueError("the probability grid needs energies and thetas")
        expected = (self.thetas.size, self.energies.size)
        if self.probabilities.ndim != 3 or self.probabilities.shape[1:] != expected:
            raise ValueError(
                f"probabilities must have shape (states, {expected[0]}, {expected[1]}), "
                f"got {self.probabilities.shape}"
            )

    @property
    def states(self) -> int:
        return self.probabilities.shape[0]

    def renormalize_simple(self, considered: int) -> float:
        """Keep only the considered state's grid, scaled to a peak of one, and the
        complementary no-excitation grid; returns the scale factor applied."""
        if not 0 <= considered < self.states:
            raise ValueError(f"considered state {considered} is not in the probability table")
        block = self.probabilities[considered]
        peak = max(0.0, float(block.max()))
        if peak <= 0.0:
            raise ValueError(f"state {considered} has no excitation probability to rescale")
        scaled = block / peak
        self.probabilities = np.stack([1.0 - scaled, scaled])
        log.info(
            "Feeding is not included. State %d excitation probabilities rescaled by %g",
            considered,
            1.0 / peak,
        )
        return 1.0 / peak

    def renormalize(self, scheme: LevelScheme, considered: int) -> float:
        """Zero every state that cannot reach the considered one, rescale so the
        summed feeding peaks at one, and give the rest to the ground state;
        returns the scale factor applied."""
        count = len(scheme)
        if self.states < count:
            raise ValueError(
                f"the probability table holds {self.states} states but the level scheme {count}"
            )
        if not 0 <= considered < count:
            raise ValueError(f"considered state {considered} is not in the level scheme")

        feeders = [
            index
            for index in range(count)
            if index == considered or scheme.can_feed(index, considered)
        ]
        for index in range(count):
            if index not in feeders:
                self.probabilities[index] = 0.0

        total = self.probabilities[feeders].sum(axis=0)
        peak = max(0.0, float(total.max()))
        if peak <= 0.0:
            raise ValueError(f"no probability of populating state {considered}")
        self.probabilities /= peak
        self.probabilities[0] = 1.0 - total / peak

        log.info(
            "Found %d possible feeder(s) of state %d (%s). Probabilities rescaled by %g",
            len(feeders) - 1,
            considered,
            " ".join(str(index) for index in feeders if index != considered),
            1.0 / peak,
        )
        return 1.0 / peak


def read_probability_table(lines: Iterable[str]) -> ProbabilityTable:
    """Read a probability file.

    The first line lists the energies, the second the thetas, the third is a
    header. Then, for each energy in turn, one line per state holding its
    probability at every theta; a blank line moves on to the next energy.
    """
    rows = iter(lines)
    energy_line = next(rows, None)
    theta_line = next(rows, None)
    if energy_line is None or theta_line is None:
        raise ValueError("the probability file needs an energy line and a theta line")
    energies = _numbers(energy_line, "energy")
    thetas = _numbers(theta_line, "theta")
    next(rows, None)

    blocks: list[list[list[float]]] = [[]]
    for line in rows:
        if not line.strip():
            blocks.append([])
            continue
        values = _numbers(line, "probability")
        if len(values) > len(thetas):
            raise ValueError(
                f"probability line has {len(values)} values for {len(thetas)} thetas"
            )
        if len(blocks) > len(energies):
            raise ValueError(f"probabilities given for more than {len(energies)} energies")
        blocks[-1].append(values)

    states = max(len(block) for block in blocks)
    probabilities = np.zeros((states, len(thetas), len(energies)))
    for e, block in enumerate(blocks):
        for s, row in enumerate(block):
            probabilities[s, : len(row), e] = row
    return ProbabilityTable(energies, thetas, probabilities)


def _interval(axis: np.ndarray, value: float) -> int:
    index = int(np.searchsorted(axis, value, side="right")) - 1
    return min(max(index, 0), axis.size - 2)


def _value_basis(t: float) -> tuple[float, float]:
    return 2 * t**3 - 3 * t**2 + 1, -2 * t**3 + 3 * t**2


def _slope_basis(t: float) -> tuple[float, float]:
    return t**3 - 2 * t**2 + t, t**3 - t**2


class _BicubicSpline:
    """Bicubic interpolation with natural-spline derivatives at the grid nodes."""

    def __init__(self, xs: np.ndarray, ys: np.ndarray, z: np.ndarray) -> None:
        if xs.size < MIN_GRID_POINTS or ys.size < MIN_GRID_POINTS:
            raise ValueError(
                f"bicubic interpolation needs at least {MIN_GRID_POINTS} energies and thetas"
            )
        if np.any(np.diff(xs) <= 0) or np.any(np.diff(ys) <= 0):
            raise ValueError("grid energies and thetas must be strictly increasing")
        self.xs, self.ys, self.z = xs, ys, z
        self.zx = CubicSpline(xs, z, axis=1, bc_type="natural")(xs, 1)
        self.zy = CubicSpline(ys, z, axis=0, bc_type="natural")(ys, 1)
        self.zxy = CubicSpline(xs, self.zy, axis=1, bc_type="natural")(xs, 1)

    def __call__(self, x: float, y: float) -> float:
        i, j = _interval(self.xs, x), _interval(self.ys, y)
        dx = self.xs[i + 1] - self.xs[i]
        dy = self.ys[j + 1] - self.ys[j]
        t = (x - self.xs[i]) / dx
        u = (y - self.ys[j]) / dy
        vt, st = _value_basis(t), _slope_basis(t)
        vu, su = _value_basis(u), _slope_basis(u)
        total = 0.0
        for a in (0, 1):
            for b in (0, 1):
                node = (j + b, i + a)
                total += (
                    vt[a] * vu[b] * self.z[node]
                    + st[a] * vu[b] * self.zx[node] * dx
                    + vt[a] * su[b] * self.zy[node] * dy
                    + st[a] * su[b] * self.zxy[node] * dx * dy
                )
        return float(total)


@dataclass
class Excitation:
    """Level scheme and excitation probabilities of the projectile or the recoil."""

    projectile: bool = True
    level_file: str = ""
    probability_file: str = ""
    selected: int = -1
    considered: int = 0
    ground_state_spin: float = 0.0
    simple_considered: bool = False
    scheme: LevelScheme = field(default_factory=LevelScheme)
    table: ProbabilityTable | None = None
    _splines: list[_BicubicSpline] = field(default_factory=list, init=False, repr=False)
    _warnings: Counter = field(default_factory=Counter, init=False, repr=False)

    @property
    def nucleus(self) -> str:
        return "projectile" if self.projectile else "recoil"

    def build_level_scheme(self) -> LevelScheme:
        """Build the ground state and, if a level file is set, the excited states."""
        if not self.level_file:
            log.info("No %s excitations.", self.nucleus)
            self.scheme = LevelScheme([Level(0, 0.0, self.ground_state_spin)])
            return self.scheme
        log.info("Building %s level scheme from %s", self.nucleus, self.level_file)
        with open(self.level_file, encoding="utf-8") as handle:
            self.scheme = parse_level_scheme(
                handle, self.ground_state_spin, self.considered, self.projectile
            )
        log.info("%d excited states built for the %s", len(self.scheme) - 1, self.nucleus)
        return self.scheme

    def build_probabilities(self) -> ProbabilityTable | None:
        """Read, renormalise and interpolate the excitation probabilities."""
        self._splines = []
        self.table = None
        if not self.level_file:
            return None
        if self.selected > -1:
            log.info("State %d will always be populated in the %s", self.selected, self.nucleus)
            return None
        if not self.probability_file:
            log.info("No %s probabilities.", self.nucleus)
            return None
        if not len(self.scheme):
            self.build_level_scheme()

        log.info(
            "Building %s excitation probabilities from %s", self.nucleus, self.probability_file
        )
        with open(self.probability_file, encoding="utf-8") as handle:
            table = read_probability_table(handle)

        if self.considered:
            if self.simple_considered:
                table.renormalize_simple(self.considered)
            else:
                table.renormalize(self.scheme, self.considered)

        count = 2 if self.simple_considered else len(self.scheme)
        if table.states < count:
            raise ValueError(
                f"{self.probability_file} holds {table.states} states but {count} are needed"
            )
        if table.states > count:
            log.warning(
                "%s holds %d states; only %d are used for the %s",
                self.probability_file,
                table.states,
                count,
                self.nucleus,
            )
        self._splines = [
            _BicubicSpline(table.energies, table.thetas, table.probabilities[state])
            for state in range(count)
        ]
        self.table = table
        return table

    def _clamp(self, what: str, value: float, low: float, high: float) -> float:
        if value < low:
            side, bound = "lower", low
        elif value > high:
            side, bound = "higher", high
        else:
            return value
        key = (what, side)
        if self._warnings[key] < WARNING_LIMIT:
            log.warning(
                "The probability file needs a %s %s (%s = %g, limit %g)",
                side,
                what,
                what,
                value,
                bound,
            )
        self._warnings[key] += 1
        return bound

    def choose_state(self, energy: float, theta: float, rng: _RandomSource) -> int:
        """Pick the state populated at this beam energy and scattering angle."""
        if self.selected > -1:
            return self.selected
        if not self._splines or self.table is None:
            return 0

        energies, thetas = self.table.energies, self.table.thetas
        energy = self._clamp("energy", energy, energies[0], energies[-1])
        theta = self._clamp("theta", theta, thetas[0], thetas[-1])

        values = [spline(energy, theta) for spline in self._splines]
        total = sum(values)
        if total == 0:
            raise ValueError(f"all excitation probabilities vanish at ({energy}, {theta})")

        draw = rng.random()
        index = 0
        for state, cumulative in enumerate(accumulate(value / total for value in values)):
            if draw < cumulative:
                index = state
                break

        if self.simple_considered and index:
            return self.considered
        return index

    def excitation(self, index: int) -> float:
        """Excitation energy (keV) of a state."""
        return self.scheme.excitation(index)