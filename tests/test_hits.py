import pytest

from clxsim.geometry import Vector3
from clxsim.hits import (
    GammaSensitiveDetector,
    IonHit,
    IonSensitiveDetector,
    decode_gamma_id,
    decode_ion_id,
)


@pytest.mark.parametrize("det,seg", [(1, 1), (12, 3), (16, 32)])
def test_gamma_id_round_trip(det, seg):
    assert decode_gamma_id(100 * det + seg) == (det, seg)


@pytest.mark.parametrize("det,ring,sector", [(0, 1, 1), (1, 24, 32), (1, 5, 7), (0, 12, 30)])
def test_ion_id_round_trip(det, ring, sector):
    assert decode_ion_id(det * 10000 + ring * 100 + sector) == (det, ring, sector)


def test_ion_hit_kind():
    assert IonHit(det=0, ring=3, sector=0, edep=1.0).is_ring()
    assert IonHit(det=0, ring=0, sector=3, edep=1.0).is_sector()
    assert not IonHit(det=0, ring=0, sector=3, edep=1.0).is_ring()


def _fill_gamma(sd):
    sd.process_hit(Vector3(1.0, 2.0, 3.0), 203, 100.0, 5)
    sd.process_hit(Vector3(1.0, 2.0, 4.0), 203, 50.0, 5)
    sd.process_hit(Vector3(), 207, 200.0, 6)


def test_gamma_segments_merged_and_core_added():
    sd = GammaSensitiveDetector()
    _fill_gamma(sd)
    hits = sd.end_of_event({10: [5, 6]}, {10: 350.0}, [10])
    segments = [h for h in hits if h.seg]
    assert [(h.det, h.seg) for h in segments] == [(2, 3), (2, 7)]
    assert segments[0].edep == pytest.approx(100.0 + 50.0)
    assert segments[0].position == Vector3(1.0, 2.0, 3.0)
    cores = [h for h in hits if h.seg == 0]
    assert len(cores) == 1
    core = cores[0]
    assert core.det == 2
    assert core.edep == pytest.approx(sum(h.edep for h in segments))
    assert core.position == Vector3()
    assert core.fep and core.pfep


def test_gamma_full_energy_but_not_projectile():
    sd = GammaSensitiveDetector()
    _fill_gamma(sd)
    core = [h for h in sd.end_of_event({10: [5, 6]}, {10: 350.0}, []) if h.seg == 0][0]
    assert core.fep
    assert not core.pfep


def test_gamma_energy_mismatch_is_not_fep():
    sd = GammaSensitiveDetector()
    _fill_gamma(sd)
    core = [h for h in sd.end_of_event({10: [5, 6]}, {10: 300.0}, [10]) if h.seg == 0][0]
    assert not core.fep and not core.pfep


def test_gamma_foreign_track_is_not_fep():
    sd = GammaSensitiveDetector()
    _fill_gamma(sd)
    core = [h for h in sd.end_of_event({10: [5]}, {10: 350.0}, [10]) if h.seg == 0][0]
    assert not core.fep


def test_gamma_zero_deposit_ignored_and_state_reset():
    sd = GammaSensitiveDetector()
    sd.process_hit(Vector3(), 101, 0.0, 1)
    assert sd.end_of_event({}, {}, []) == []
    _fill_gamma(sd)
    assert len(sd.end_of_event({}, {}, [])) == 3
    assert sd.end_of_event({}, {}, []) == []


def test_gamma_cores_in_detector_order():
    sd = GammaSensitiveDetector()
    sd.process_hit(Vector3(), 905, 10.0, 1)
    sd.process_hit(Vector3(), 105, 20.0, 2)
    hits = sd.end_of_event({}, {}, [])
    assert [h.det for h in hits if h.seg == 0] == [1, 9]


def test_ion_ignores_other_particles():
    sd = IonSensitiveDetector("Cd106", "Ti48")
    sd.process_hit("e-", Vector3(), 10305, 5.0)
    assert sd.end_of_event() == []


def test_ion_step_makes_ring_and_sector_hit():
    sd = IonSensitiveDetector("Cd106", "Ti48")
    sd.process_hit("Cd106[0.0]", Vector3(0.0, 0.0, 3.0), 10305, 5.0)
    hits = sd.end_of_event()
    assert [(h.det, h.ring, h.sector) for h in hits] == [(1, 3, 0), (1, 0, 5)]
    assert all(h.projectile and not h.recoil for h in hits)
    assert all(h.edep == 5.0 for h in hits)


def test_ion_recoil_flags():
    sd = IonSensitiveDetector("Cd106", "Ti48")
    sd.process_hit("Ti48", Vector3(), 305, 2.0)
    hits = sd.end_of_event()
    assert [(h.det, h.ring, h.sector) for h in hits] == [(0, 3, 0), (0, 0, 5)]
    assert all(h.recoil and not h.projectile for h in hits)


def test_ion_consolidates_same_particle_steps():
    sd = IonSensitiveDetector("Cd106", "Ti48")
    sd.process_hit("Cd106", Vector3(), 10305, 5.0)
    sd.process_hit("Cd106", Vector3(), 10305, 7.0)
    hits = sd.end_of_event()
    assert len(hits) == 2
    assert hits[0].is_ring() and hits[1].is_sector()
    assert [h.edep for h in hits] == [pytest.approx(5.0 + 7.0)] * 2


def test_ion_combines_rings_of_both_particles():
    sd = IonSensitiveDetector("Cd106", "Ti48")
    sd.process_hit("Cd106", Vector3(), 10305, 5.0)
    sd.process_hit("Ti48", Vector3(), 10309, 2.0)
    hits = sd.end_of_event()
    assert len(hits) == 3
    ring = hits[0]
    assert ring.is_ring()
    assert ring.projectile and ring.recoil
    assert ring.edep == pytest.approx(5.0 + 2.0)
    assert [h.sector for h in hits[1:]] == [5, 9]
    assert sd.end_of_event() == []