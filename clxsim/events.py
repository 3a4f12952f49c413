"""Correlation of raw detector channels into particle and gamma-ray hits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .geometry import Vector3

# Ring and sector energies belonging to one particle agree within this (MeV).
MATCH_TOLERANCE = 1.0
SEGA_DETECTORS = 16


@dataclass(frozen=True)
class S3Channel:
    """One ring or sector channel of an S3 silicon detector."""

    det: int
    ring: int
    sector: int
    energy: float
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    projectile: bool = False
    recoil: bool = False

    def is_ring(self) -> bool:
        """A ring channel carries no sector number."""
        return self.sector == 0

    @property
    def position(self) -> Vector3:
        return Vector3(self.x, self.y, self.z)


@dataclass(frozen=True)
class SegaChannel:
    """One core (segment 0) or segment channel of a SeGA detector."""

    det: int
    seg: int
    energy: float
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    fep: bool = False
    pfep: bool = False


@dataclass(frozen=True)
class ParticleHit:
    """A particle seen by a matched ring and sector of one S3 detector."""

    det: int
    ring: int
    sector: int
    ring_energy: float
    sector_energy: float
    ring_position: Vector3
    sector_position: Vector3
    ring_projectile: bool
    ring_recoil: bool
    sector_projectile: bool
    sector_recoil: bool

    @property
    def is_projectile(self) -> bool:
        return self.ring_projectile and self.sector_projectile

    @property
    def is_recoil(self) -> bool:
        return self.ring_recoil and self.sector_recoil


@dataclass
class GammaDetectorHit:
    """Everything one SeGA detector recorded in an event."""

    det: int
    segments: list[int] = field(default_factory=list)
    segment_energies: list[float] = field(default_factory=list)
    positions: list[Vector3] = field(default_factory=list)
    core_energy: float = 0.0
    fep: bool = False
    pfep: bool = False

    def main_segment(self) -> int:
        """The segment holding the most energy (the first one on a tie)."""
        if not self.segments:
            raise ValueError(f"SeGA detector {self.det} has no segment hits")
        return max(zip(self.segment_energies, self.segments), key=lambda pair: pair[0])[1]


@dataclass
class BuiltEvent:
    """A correlated event."""

    number: int
    particles: list[ParticleHit] = field(default_factory=list)
    gammas: list[GammaDetectorHit] = field(default_factory=list)


def _make_hit(ring: S3Channel, sector: S3Channel) -> ParticleHit:
    return ParticleHit(
        det=ring.det,
        ring=ring.ring,
        sector=sector.sector,
        ring_energy=ring.energy,
        sector_energy=sector.energy,
        ring_position=ring.position,
        sector_position=sector.position,
        ring_projectile=ring.projectile,
        ring_recoil=ring.recoil,
        sector_projectile=sector.projectile,
        sector_recoil=sector.recoil,
    )


def _find_split(
    index: int,
    rings: Sequence[S3Channel],
    sectors: Sequence[S3Channel],
    used_rings: list[bool],
    used_sectors: list[bool],
) -> tuple[int, int] | None:
    """A ring whose energy is shared between sector ``index`` and one more unused sector."""
    first = sectors[index]
    for j, ring in enumerate(rings):
        if used_rings[j]:
            continue
        for k, second in enumerate(sectors):
            if used_sectors[k]:
                continue
            if (
                first.det == ring.det
                and second.det == ring.det
                and abs(first.energy + second.energy - ring.energy) < MATCH_TOLERANCE
            ):
                return j, k
    return None


def _correlate_particles(channels: Iterable[S3Channel]) -> list[ParticleHit]:
    channels = list(channels)
    rings = sorted((c for c in channels if c.is_ring()), key=lambda c: c.energy, reverse=True)
    sectors = sorted((c for c in channels if not c.is_ring()), key=lambda c: c.energy, reverse=True)
    used_rings = [False] * len(rings)
    used_sectors = [False] * len(sectors)
    particles: list[ParticleHit] = []

    # Same detector and same energy.
    for i, sector in enumerate(sectors):
        for j, ring in enumerate(rings):
            if used_rings[j]:
                continue
            if sector.det == ring.det and abs(sector.energy - ring.energy) < MATCH_TOLERANCE:
                particles.append(_make_hit(ring, sector))
                used_sectors[i] = used_rings[j] = True
                break

    # Same detector and two sector energies adding up to a ring energy.
    for i in range(len(sectors)):
        if used_sectors[i]:
            continue
        found = _find_split(i, rings, sectors, used_rings, used_sectors)
        if found is None:
            continue
        j, k = found
        particles.append(_make_hit(rings[j], sectors[i]))
        particles.append(_make_hit(rings[j], sectors[k]))
        used_sectors[i] = used_rings[j] = used_sectors[k] = True

    return particles


def _organize_gammas(channels: Iterable[SegaChannel]) -> list[GammaDetectorHit]:
    detectors: dict[int, GammaDetectorHit] = {}
    for channel in channels:
        if not 1 <= channel.det <= SEGA_DETECTORS:
            raise ValueError(f"SeGA detector {channel.det} out of range")
        hit = detectors.setdefault(channel.det, GammaDetectorHit(channel.det))
        if channel.seg:
            hit.segments.append(channel.seg)
            hit.segment_energies.append(channel.energy)
            hit.positions.append(Vector3(channel.x, channel.y, channel.z))
        else:
            hit.core_energy = channel.energy
            hit.fep = channel.fep
            hit.pfep = channel.pfep
    return list(detectors.values())


def build_event(
    event_number: int,
    s3_channels: Iterable[SegaChannel | S3Channel],
    sega_channels: Iterable[SegaChannel],
) -> BuiltEvent:
    """Correlate the raw channels of one event."""
    return BuiltEvent(
        number=event_number,
        particles=_correlate_particles(s3_channels),
        gammas=_organize_gammas(sega_channels),
    )