"""Sensitive-detector hits for the SeGA germanium array and the S3 silicon detectors."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from .geometry import Vector3

# Energies are in keV.
FEP_TOLERANCE = 0.01
CORE_THRESHOLD = 0.01
SEGA_DETECTORS = 16
DOWNSTREAM_ID_OFFSET = 10000


def decode_gamma_id(copy_number: int) -> tuple[int, int]:
    """Split a SeGA copy number into (detector, segment)."""
    seg = copy_number % 100
    return (copy_number - seg) // 100, seg


def decode_ion_id(copy_number: int) -> tuple[int, int, int]:
    """Split an S3 copy number into (detector, ring, sector)."""
    if copy_number > DOWNSTREAM_ID_OFFSET:
        det = 1
        copy_number -= DOWNSTREAM_ID_OFFSET
    else:
        det = 0
    sector = copy_number % 100
    return det, (copy_number - sector) // 100, sector


@dataclass
class GammaHit:
    """Energy deposited in a SeGA segment, or in a whole core (segment 0)."""

    det: int
    seg: int
    edep: float
    position: Vector3 = field(default_factory=Vector3)
    fep: bool = False
    pfep: bool = False


@dataclass
class IonHit:
    """Energy deposited in an S3 ring (sector 0) or sector (ring 0)."""

    det: int
    ring: int
    sector: int
    edep: float
    position: Vector3 = field(default_factory=Vector3)
    projectile: bool = False
    recoil: bool = False

    def is_ring(self) -> bool:
        return self.sector == 0

    def is_sector(self) -> bool:
        return self.ring == 0


class GammaSensitiveDetector:
    """Collects SeGA hits over an event and adds full-energy-peak flagged core hits."""

    def __init__(self, name: str = "GammaTracker") -> None:
        self.name = name
        self.hits: list[GammaHit] = []
        self._tracks: dict[int, list[int]] = {}

    def process_hit(self, position: Vector3, copy_number: int, edep: float, track_id: int) -> bool:
        """Record a step; steps depositing nothing are ignored."""
        if edep > 0.0:
            det, seg = decode_gamma_id(copy_number)
            self.hits.append(GammaHit(det=det, seg=seg, edep=edep, position=position))
            tracks = self._tracks.setdefault(det, [])
            if track_id not in tracks:
                tracks.append(track_id)
        return True

    def end_of_event(
        self,
        id_map: Mapping[int, Iterable[int]],
        energy_map: Mapping[int, float],
        projectile_gammas: Iterable[int],
    ) -> list[GammaHit]:
        """Merge segment hits, add core hits and return the event's collection.

        ``id_map`` maps each emitted gamma's track id to the ids of it and its
        secondaries, ``energy_map`` gives each gamma's energy.
        """
        merged: dict[tuple[int, int], GammaHit] = {}
        for hit in self.hits:
            key = (hit.det, hit.seg)
            if key in merged:
                merged[key].edep += hit.edep
            else:
                merged[key] = hit
        hits = list(merged.values())

        cores = dict.fromkeys(range(1, SEGA_DETECTORS + 1), 0.0)
        for hit in hits:
            cores[hit.det] += hit.edep

        families = {gamma: list(ids) for gamma, ids in id_map.items()}
        projectile_gammas = set(projectile_gammas)
        for det, energy in cores.items():
            if energy < CORE_THRESHOLD:
                continue
            core = GammaHit(det=det, seg=0, edep=energy)
            tracks = self._tracks.get(det, [])
            for gamma, family in families.items():
                if any(track not in family for track in tracks):
                    continue
                diff = energy_map.get(gamma, 0.0) - energy
                if diff * diff < FEP_TOLERANCE * FEP_TOLERANCE:
                    core.fep = True
                    if gamma in projectile_gammas:
                        core.pfep = True
            hits.append(core)

        self.hits = []
        self._tracks = {}
        return hits


def _first_pair(
    hits: list[IonHit], match: Callable[[IonHit, IonHit], bool]
) -> tuple[int, int] | None:
    for i, first in enumerate(hits):
        for j in range(i + 1, len(hits)):
            if match(first, hits[j]):
                return i, j
    return None


def _same_kind(a: IonHit, b: IonHit) -> bool:
    same_particle = (a.projectile and b.projectile) or (a.recoil and b.recoil)
    same_side = (a.is_ring() and b.is_ring()) or (a.is_sector() and b.is_sector())
    return same_particle and same_side


class IonSensitiveDetector:
    """Collects S3 ring and sector hits from the projectile and recoil ions."""

    def __init__(self, projectile_name: str, recoil_name: str, name: str = "IonTracker") -> None:
        self.name = name
        self.projectile_name = projectile_name
        self.recoil_name = recoil_name
        self.hits: list[IonHit] = []

    def process_hit(
        self, particle_name: str, position: Vector3, copy_number: int, edep: float
    ) -> bool:
        """Record a ring hit and a sector hit for a step of the projectile or recoil."""
        is_projectile = self.projectile_name in particle_name
        if not is_projectile and self.recoil_name not in particle_name:
            return True
        det, ring, sector = decode_ion_id(copy_number)
        flags = {"projectile": is_projectile, "recoil": not is_projectile}
        self.hits.append(IonHit(det=det, ring=ring, sector=0, edep=edep, position=position, **flags))
        self.hits.append(IonHit(det=det, ring=0, sector=sector, edep=edep, position=position, **flags))
        return True

    def end_of_event(self) -> list[IonHit]:
        """Consolidate the event's hits and return them."""
        hits = self.hits
        if len(hits) > 2:
            self._consolidate(hits)
        if len(hits) > 3:
            self._combine_rings(hits)
        self.hits = []
        return hits

    @staticmethod
    def _consolidate(hits: list[IonHit]) -> None:
        while (pair := _first_pair(hits, _same_kind)) is not None:
            i, j = pair
            hits[i].edep += hits[j].edep
            del hits[j]

    @staticmethod
    def _combine_rings(hits: list[IonHit]) -> None:
        # After a removal the scan moves on past the hit that slid into place.
        i = 0
        while i < len(hits):
            j = i + 1
            while j < len(hits):
                first, second = hits[i], hits[j]
                if (
                    first.is_ring()
                    and second.is_ring()
                    and first.ring == second.ring
                    and first.det == second.det
                ):
                    first.edep += second.edep
                    first.projectile = True
                    first.recoil = True
                    del hits[j]
                j += 1
            i += 1