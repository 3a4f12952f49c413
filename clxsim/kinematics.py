"""Two-body kinematics for Coulomb excitation and Doppler reconstruction."""

from __future__ import annotations

import math
from dataclasses import dataclass

# Defaults matching the reference experiment (106Cd on 48Ti).
BEAM_Z = 48
BEAM_MASS = 98626.9  # MeV/c^2
BEAM_ENERGY = 265.0  # MeV
TARGET_Z = 22
TARGET_MASS = 44652.0  # MeV/c^2


def _asin(value: float) -> float:
    """Arcsine tolerant of rounding just outside [-1, 1]."""
    return math.asin(max(-1.0, min(1.0, value)))


@dataclass(frozen=True)
class Reaction:
    """A binary reaction of a beam on a target, masses in MeV/c^2."""

    beam_mass: float = BEAM_MASS
    target_mass: float = TARGET_MASS
    beam_energy: float = BEAM_ENERGY
    beam_z: int = BEAM_Z
    target_z: int = TARGET_Z

    @property
    def mass_ratio(self) -> float:
        return self.beam_mass / self.target_mass

    def _root(self, ep: float, ex: float) -> float:
        return math.sqrt(1.0 - (ex / ep) * (1.0 + self.mass_ratio))

    def tau_projectile(self, ep: float, ex: float = 0.0) -> float:
        """Ratio of CM velocity to projectile CM velocity."""
        return self.mass_ratio / self._root(ep, ex)

    def tau_recoil(self, ep: float, ex: float = 0.0) -> float:
        """Ratio of CM velocity to recoil CM velocity."""
        return 1.0 / self._root(ep, ex)

    def theta_cm_from_projectile(
        self, theta_lab: float, ep: float, sol2: bool = False, ex: float = 0.0
    ) -> float:
        """CM scattering angle from the projectile's lab angle."""
        tau = self.tau_projectile(ep, ex)
        if math.sin(theta_lab) > 1.0 / tau:
            theta_lab = math.asin(1.0 / tau)
            if theta_lab < 0:
                theta_lab += math.pi
            return _asin(tau * math.sin(theta_lab)) + theta_lab
        if not sol2:
            return _asin(tau * math.sin(theta_lab)) + theta_lab
        return _asin(tau * math.sin(-theta_lab)) + theta_lab + math.pi

    def theta_cm_from_recoil(
        self, theta_lab: float, ep: float, sol2: bool = False, ex: float = 0.0
    ) -> float:
        """CM scattering angle from the recoil's lab angle."""
        tau = self.tau_recoil(ep, ex)
        if math.sin(theta_lab) > 1.0 / tau:
            theta_lab = math.asin(1.0 / tau)
            if theta_lab < 0:
                theta_lab += math.pi
            return _asin(tau * math.sin(theta_lab)) + theta_lab
        if not sol2:
            return math.pi - (_asin(tau * math.sin(theta_lab)) + theta_lab)
        return -_asin(tau * math.sin(-theta_lab)) - theta_lab

    def theta_lab_max(self, ep: float, ex: float = 0.0) -> float:
        """Largest lab angle the projectile can reach."""
        tau = self.tau_projectile(ep, ex)
        if tau < 1.0:
            return math.pi
        return math.asin(1.0 / tau)

    def theta_lab(self, theta_cm: float, ep: float, ex: float = 0.0) -> float:
        """Projectile lab angle for a CM angle."""
        tau = self.tau_projectile(ep, ex)
        tan_theta = math.sin(theta_cm) / (math.cos(theta_cm) + tau)
        if tan_theta > 0:
            return math.atan(tan_theta)
        return math.atan(tan_theta) + math.pi

    def recoil_theta_lab(self, theta_cm: float, ep: float, ex: float = 0.0) -> float:
        """Recoil lab angle for a CM angle."""
        tau = self.tau_recoil(ep, ex)
        angle = math.pi - theta_cm
        return math.atan(math.sin(angle) / (math.cos(angle) + tau))

    def _available(self, ep: float, ex: float) -> float:
        return ep - ex * (1.0 + self.mass_ratio)

    def ke_lab(self, theta_cm: float, ep: float, ex: float = 0.0) -> float:
        """Projectile lab kinetic energy for a CM angle."""
        tau = self.tau_projectile(ep, ex)
        term1 = (self.target_mass / (self.beam_mass + self.target_mass)) ** 2
        term2 = 1.0 + tau * tau + 2.0 * tau * math.cos(theta_cm)
        return term1 * term2 * self._available(ep, ex)

    def recoil_ke_lab(self, theta_cm: float, ep: float, ex: float = 0.0) -> float:
        """Recoil lab kinetic energy for a CM angle."""
        tau = self.tau_recoil(ep, ex)
        term1 = self.beam_mass * self.target_mass / (self.beam_mass + self.target_mass) ** 2
        term2 = 1.0 + tau * tau + 2.0 * tau * math.cos(math.pi - theta_cm)
        return term1 * term2 * self._available(ep, ex)


def sega_sigma(energy: float) -> float:
    """Energy resolution (sigma, keV) of a SeGA core at the given energy."""
    return 1.03753 + energy * 0.000274797


def doppler_correct(energy: float, kinetic_energy: float, mass: float, angle: float) -> float:
    """Doppler-correct a gamma energy emitted by a moving nucleus.

    ``angle`` is the angle between the emitter's direction and the gamma ray.
    """
    gamma = kinetic_energy / mass + 1.0
    beta = math.sqrt(1.0 - 1.0 / (gamma * gamma))
    return gamma * (1.0 - beta * math.cos(angle)) * energy