"""Nuclear level schemes read from text files, and a gamma-ray source built on one."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from itertools import accumulate
from typing import Callable, Iterable, Iterator, Protocol, Sequence, Union

from .decay import GammaDecay

log = logging.getLogger(__name__)

# The calibration source is modelled as excited states of 208Pb.
SOURCE_Z = 82
SOURCE_A = 208

PathLike = Union[str, "os.PathLike[str]"]


class _RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass(eq=False)
class Level:
    """A nuclear state; energies in keV, lifetimes in ps (negative means stable)."""

    index: int
    energy: float
    spin: float
    lifetime: float = -1.0
    decays: list[GammaDecay] = field(default_factory=list)

    @property
    def two_j(self) -> int:
        return int(2.0 * self.spin + 0.01)

    @property
    def stable(self) -> bool:
        return self.lifetime < 0


@dataclass
class LevelScheme:
    """The ground state followed by the excited states, in file order."""

    levels: list[Level] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.levels)

    def __getitem__(self, index: int) -> Level:
        return self.levels[index]

    def __iter__(self) -> Iterator[Level]:
        return iter(self.levels)

    @property
    def spins(self) -> list[float]:
        return [level.spin for level in self.levels]

    def excitation(self, index: int) -> float:
        """Excitation energy of a state; the ground state is at zero."""
        if not index:
            return 0.0
        return self.levels[index].energy

    def can_feed(self, index: int, considered: int) -> bool:
        """Whether a gamma cascade from ``index`` can reach state ``considered``.

        Only transitions ending at or above the considered state are followed.
        """
        threshold = self.excitation(considered)
        if self.excitation(index) < threshold:
            return False
        target = self.levels[considered]
        frontier = [self.levels[index]]
        seen: set[int] = set()
        while frontier:
            following: list[Level] = []
            for level in frontier:
                for decay in level.decays:
                    if decay.final_energy < threshold:
                        continue
                    if decay.daughter is target:
                        return True
                    if id(decay.daughter) not in seen:
                        seen.add(id(decay.daughter))
                        following.append(decay.daughter)
            frontier = following
        return False


def _fields(line: str, kinds: Sequence[Callable[[str], object]], what: str) -> list:
    tokens = line.split()
    if len(tokens) < len(kinds):
        raise ValueError(f"{what} line has too few fields: {line.rstrip()!r}")
    try:
        return [kind(token) for kind, token in zip(kinds, tokens)]
    except ValueError:
        raise ValueError(f"malformed {what} line: {line.rstrip()!r}") from None


def _read(
    lines: Iterable[str],
    ground_state_spin: float,
    *,
    with_population: bool,
    considered: int,
    projectile: bool,
) -> tuple[LevelScheme, list[float]]:
    levels = [Level(0, 0.0, ground_state_spin)]
    populations: list[float] = []
    state_kinds: tuple = (int, float, float, float, float, int) if with_population else (
        int, float, float, float, int
    )
    rows = iter(lines)
    for line in rows:
        if not line.strip():
            continue
        values = _fields(line, state_kinds, "state")
        if with_population:
            index, energy, spin, lifetime, population, branches = values
            populations.append(population)
        else:
            index, energy, spin, lifetime, branches = values

        level = Level(index, energy, spin, lifetime if branches else -1.0)
        if not branches:
            log.warning("State %d has no decay branches", index)

        for _ in range(branches):
            branch = next(rows, None)
            if branch is None:
                raise ValueError(f"state {index} is missing decay branch lines")
            daughter_index, ratio, l0, lp, delta, conversion = _fields(
                branch, (int, float, int, int, float, float), "branch"
            )
            if not 0 <= daughter_index < len(levels):
                raise ValueError(f"state {index} decays to unknown state {daughter_index}")
            daughter = levels[daughter_index]
            level.decays.append(
                GammaDecay(
                    parent=level,
                    daughter=daughter,
                    branching_ratio=ratio,
                    initial_energy=energy,
                    final_energy=daughter.energy,
                    two_ji=level.two_j,
                    two_jf=daughter.two_j,
                    l0=l0,
                    lp=lp,
                    delta=delta,
                    conversion_coefficient=conversion,
                    emit_gamma=not considered or index == considered,
                    projectile=projectile,
                )
            )

        if index != len(levels):
            log.warning("States are out of order in the level scheme (state %d)", index)
        levels.append(level)
    return LevelScheme(levels), populations


def parse_level_scheme(
    lines: Iterable[str],
    ground_state_spin: float = 0.0,
    considered: int = 0,
    projectile: bool = True,
) -> LevelScheme:
    """Read a level scheme: "index energy(keV) spin lifetime(ps) branches" lines,
    each followed by "daughter BR L0 Lp delta cc" lines.

    With a non-zero ``considered`` state only its own transitions emit gamma rays.
    """
    scheme, _ = _read(
        lines,
        ground_state_spin,
        with_population=False,
        considered=considered,
        projectile=projectile,
    )
    return scheme


def parse_source_level_scheme(
    lines: Iterable[str], ground_state_spin: float = 0.0
) -> tuple[LevelScheme, list[float]]:
    """Read a source level scheme whose state lines also carry a population
    probability before the branch count; returns the scheme and the raw probabilities."""
    return _read(
        lines,
        ground_state_spin,
        with_population=True,
        considered=0,
        projectile=True,
    )


@dataclass
class GammaSource:
    """A gamma-ray source that populates excited states with fixed probabilities."""

    file_name: str = ""
    ground_state_spin: float = 0.0
    scheme: LevelScheme = field(default_factory=LevelScheme)
    probabilities: list[float] = field(default_factory=list)

    def load(self, path: PathLike | None = None) -> LevelScheme:
        """Build the level scheme from a file and normalise the populations."""
        if path is not None:
            self.file_name = os.fspath(path)
        if not self.file_name:
            raise ValueError("the source level scheme file is not set")
        with open(self.file_name, encoding="utf-8") as handle:
            scheme, populations = parse_source_level_scheme(handle, self.ground_state_spin)
        total = sum(populations)
        if populations and total <= 0:
            raise ValueError(f"population probabilities in {self.file_name} sum to {total}")
        self.scheme = scheme
        self.probabilities = [p / total for p in populations]
        return scheme

    def choose_state(self, rng: _RandomSource) -> int:
        """Pick an excited state by population; 0 (ground) if none is chosen."""
        draw = rng.random()
        for index, cumulative in enumerate(accumulate(self.probabilities), start=1):
            if draw < cumulative:
                return index
        return 0