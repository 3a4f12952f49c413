"""Gamma-ray decay channels between nuclear levels."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Protocol


class _RandomSource(Protocol):
    def random(self) -> float: ...


def two_body_momentum(parent_mass: float, mass1: float, mass2: float) -> float:
    """Momentum of each daughter in a two-body decay at rest; -1 if it vanishes."""
    if parent_mass - mass1 - mass2 < 0:
        raise ValueError("energy in cms > mass1+mass2")
    e, p1, p2 = parent_mass, mass1, mass2
    ppp = (e + p1 + p2) * (e + p1 - p2) * (e - p1 + p2) * (e - p1 - p2) / (4.0 * e * e)
    if ppp > 0:
        return math.sqrt(ppp)
    return -1.0


Polarization = list[list[complex]]


def _copy_polarization(polarization: Iterable[Iterable[complex]]) -> Polarization:
    return [[complex(value) for value in row] for row in polarization]


@dataclass
class GammaDecay:
    """A gamma transition from a parent level to a daughter level."""

    kinematics_name: ClassVar[str] = "GammaDecay"

    parent: Any
    daughter: Any
    branching_ratio: float
    initial_energy: float = 0.0
    final_energy: float = 0.0
    two_ji: int = 0
    two_jf: int = 0
    l0: int = 0
    lp: int = 0
    delta: float = 0.0
    conversion_coefficient: float = 0.0
    emit_gamma: bool = True
    projectile: bool = True
    projectile_polarization: Polarization = field(default_factory=list)
    recoil_polarization: Polarization = field(default_factory=list)

    @property
    def transition_energy(self) -> float:
        return self.initial_energy - self.final_energy

    def gamma_probability(self) -> float:
        """Chance the transition emits a photon rather than a conversion electron."""
        return 1.0 / (self.conversion_coefficient + 1.0)

    def emits_gamma(self, rng: _RandomSource) -> bool:
        """Decide whether this decay produces a gamma ray."""
        return self.emit_gamma and rng.random() < self.gamma_probability()

    def set_projectile_polarization(self, polarization: Iterable[Iterable[complex]]) -> None:
        self.projectile_polarization = _copy_polarization(polarization)

    def unpolarize_projectile(self) -> None:
        self.projectile_polarization = [[1.0 + 0j]]

    def set_recoil_polarization(self, polarization: Iterable[Iterable[complex]]) -> None:
        self.recoil_polarization = _copy_polarization(polarization)

    def unpolarize_recoil(self) -> None:
        self.recoil_polarization = [[1.0 + 0j]]