import math

import pytest

from clxsim.geometry import Vector3, s3_segment_position, sega_segment_position


def test_basic_angles():
    v = Vector3(0.0, 1.0, 0.0)
    assert v.phi() == pytest.approx(math.pi / 2)
    assert v.theta() == pytest.approx(math.pi / 2)
    assert Vector3(0.0, 0.0, 2.0).theta() == 0.0


def test_mag_and_perp():
    v = Vector3(3.0, 4.0, 12.0)
    assert v.perp() == pytest.approx(5.0)
    assert v.mag() == pytest.approx(13.0)


def test_with_perp_keeps_direction():
    v = Vector3(1.0, 1.0, 2.0).with_perp(5.0)
    assert v.perp() == pytest.approx(5.0)
    assert v.phi() == pytest.approx(math.pi / 4)
    assert v.z == 2.0


def test_with_perp_on_axis_unchanged():
    v = Vector3(0.0, 0.0, 1.0)
    assert v.with_perp(3.0) == v


def test_with_phi_keeps_perp():
    v = Vector3(3.0, 4.0, 1.0).with_phi(-1.0)
    assert v.perp() == pytest.approx(5.0)
    assert v.phi() == pytest.approx(-1.0)
    assert v.z == 1.0


def test_with_theta_keeps_mag_and_phi():
    v = Vector3(1.0, 2.0, 3.0)
    w = v.with_theta(0.7)
    assert w.mag() == pytest.approx(v.mag())
    assert w.theta() == pytest.approx(0.7)
    assert w.phi() == pytest.approx(v.phi())


def test_rotate_y_half_turn():
    v = Vector3(1.0, 2.0, 3.0).rotate_y(math.pi)
    assert v.x == pytest.approx(-1.0)
    assert v.y == pytest.approx(2.0)
    assert v.z == pytest.approx(-3.0)


def test_cross_product_right_handed():
    assert Vector3(1, 0, 0).cross(Vector3(0, 1, 0)) == Vector3(0, 0, 1)
    a, b = Vector3(1.0, 2.0, 3.0), Vector3(-2.0, 0.5, 4.0)
    c = a.cross(b)
    assert c.dot(a) == pytest.approx(0.0)
    assert c.dot(b) == pytest.approx(0.0)


def test_angle():
    assert Vector3(1, 0, 0).angle(Vector3(0, 1, 0)) == pytest.approx(math.pi / 2)
    assert Vector3(1, 0, 0).angle(Vector3(-2, 0, 0)) == pytest.approx(math.pi)
    assert Vector3(0, 0, 0).angle(Vector3(1, 0, 0)) == 0.0


def test_downstream_s3_position():
    pos = s3_segment_position(1, 1, 1, us_offset=3.0, ds_offset=2.0)
    assert pos.z == 2.0
    assert pos.phi() == pytest.approx(math.pi / 2)
    assert 1.1 < pos.perp() < 3.5


def test_upstream_s3_is_mirrored():
    pos = s3_segment_position(0, 5, 1, us_offset=3.0, ds_offset=2.0)
    assert pos.z == pytest.approx(-3.0)
    assert pos.y > 0


def test_s3_radius_grows_with_ring():
    radii = [s3_segment_position(1, ring, 4).perp() for ring in range(1, 25)]
    assert radii == sorted(radii)
    assert all(1.1 < r < 3.5 for r in radii)


def test_s3_sectors_wind_opposite_ways():
    ds = s3_segment_position(1, 10, 2).phi() - s3_segment_position(1, 10, 1).phi()
    us_a = s3_segment_position(0, 10, 1)
    us_b = s3_segment_position(0, 10, 2)
    assert ds < 0
    assert us_b.x < us_a.x  # mirrored by the rotation about y


@pytest.mark.parametrize(
    "det, ring, sector",
    [(2, 1, 1), (-1, 1, 1), (0, 0, 1), (0, 25, 1), (1, 1, 0), (1, 1, 33)],
)
def test_s3_bad_indices(det, ring, sector):
    with pytest.raises(ValueError):
        s3_segment_position(det, ring, sector)


def test_sega_offset_shifts_z():
    base = sega_segment_position(3, 12)
    moved = sega_segment_position(3, 12, offset=1.5)
    assert moved.z - base.z == pytest.approx(1.5)
    assert moved.x == pytest.approx(base.x)


def test_sega_upstream_mirrors_detector_centre():
    down = [sega_segment_position(1, s).z for s in range(1, 9)]
    up = [sega_segment_position(9, s).z for s in range(1, 9)]
    assert down == sorted(down)
    assert up == sorted(up)
    assert down[0] > 0 > up[-1]
    assert down[7] - down[0] == pytest.approx(up[7] - up[0])


def test_sega_same_quadrant_shares_azimuth_offset():
    a = sega_segment_position(2, 1) - sega_segment_position(2, 2)
    assert a.x == pytest.approx(0.0)
    assert a.y == pytest.approx(0.0)


@pytest.mark.parametrize("det, seg", [(17, 1), (-1, 1), (1, 0), (1, 33)])
def test_sega_bad_indices(det, seg):
    with pytest.raises(ValueError):
        sega_segment_position(det, seg)