"""Three-vectors and detector segment positions (cm)."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

# Silicon detector z-offsets and SeGA shift used by the correlator.
DS_OFFSET = 2.6
US_OFFSET = 3.4
SEGA_OFFSET = 0.0

S3_INNER_RADIUS = 1.1
S3_OUTER_RADIUS = 3.5
S3_RINGS = 24
S3_SECTORS = 32

SEGA_LENGTH = 4.025
SEGA_OUTER_RADIUS = 3.165
SEGA_FINGER_RADIUS = 0.5
SEGA_DEAD_LAYER = 0.03
SEGA_RADIAL_DISTANCE = 12.975


@dataclass(frozen=True)
class Vector3:
    """An immutable Cartesian three-vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: float) -> Vector3:
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    __rmul__ = __mul__

    def perp(self) -> float:
        """Distance from the z axis."""
        return math.hypot(self.x, self.y)

    def phi(self) -> float:
        """Azimuthal angle in (-pi, pi]."""
        return math.atan2(self.y, self.x)

    def theta(self) -> float:
        """Polar angle from the z axis."""
        return math.atan2(self.perp(), self.z)

    def mag(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def with_perp(self, perp: float) -> Vector3:
        """Copy scaled transversely to the given perp; a vector on the axis is unchanged."""
        current = self.perp()
        if current == 0:
            return self
        scale = perp / current
        return replace(self, x=self.x * scale, y=self.y * scale)

    def with_phi(self, phi: float) -> Vector3:
        """Copy rotated about z to the given azimuth."""
        current = self.perp()
        return replace(self, x=current * math.cos(phi), y=current * math.sin(phi))

    def with_theta(self, theta: float) -> Vector3:
        """Copy with the given polar angle, keeping magnitude and azimuth."""
        magnitude = self.mag()
        phi = self.phi()
        return Vector3(
            magnitude * math.sin(theta) * math.cos(phi),
            magnitude * math.sin(theta) * math.sin(phi),
            magnitude * math.cos(theta),
        )

    def with_z(self, z: float) -> Vector3:
        return replace(self, z=z)

    def rotate_y(self, angle: float) -> Vector3:
        """Copy rotated about the y axis."""
        s, c = math.sin(angle), math.cos(angle)
        return Vector3(s * self.z + c * self.x, self.y, c * self.z - s * self.x)

    def cross(self, other: Vector3) -> Vector3:
        return Vector3(
            self.y * other.z - other.y * self.z,
            self.z * other.x - other.z * self.x,
            self.x * other.y - other.x * self.y,
        )

    def dot(self, other: Vector3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def angle(self, other: Vector3) -> float:
        """Angle between two vectors; zero if either has no length."""
        norm = self.mag() * other.mag()
        if norm <= 0:
            return 0.0
        return math.acos(max(-1.0, min(1.0, self.dot(other) / norm)))


def s3_segment_position(
    det: int,
    ring: int,
    sector: int,
    us_offset: float = US_OFFSET,
    ds_offset: float = DS_OFFSET,
) -> Vector3:
    """Centre of an S3 pixel; det 0 is upstream, det 1 downstream."""
    if not (0 <= det <= 1 and 1 <= ring <= S3_RINGS and 1 <= sector <= S3_SECTORS):
        raise ValueError(f"Bad det, ring, sec ({det},{ring},{sector})")

    # Sector 1 of the downstream detector sits at phi = 90 degrees;
    # the downstream detector winds clockwise.
    phi_offset = 0.5 * math.pi
    direction = -1 if det == 1 else 1
    rad_slope = (S3_OUTER_RADIUS - S3_INNER_RADIUS) / S3_RINGS

    pos = Vector3(1.0, 0.0, 0.0).with_perp((ring - 0.5) * rad_slope + S3_INNER_RADIUS)
    pos = pos.with_phi(phi_offset + direction * 2.0 * math.pi / S3_SECTORS * (sector - 1))
    pos = pos.with_z(ds_offset if det == 1 else us_offset)
    if det == 0:
        pos = pos.rotate_y(math.pi)
    return pos


def sega_segment_position(det: int, seg: int, offset: float = SEGA_OFFSET) -> Vector3:
    """Centre of a SeGA segment in the barrel; detectors above 8 sit upstream."""
    if not (0 <= det <= 16 and 1 <= seg <= 32):
        raise ValueError(f"Bad det, seg ({det},{seg})")

    quad, slice_ = divmod(seg - 1, 8)
    inner_radius = 0.0 if slice_ == 7 else SEGA_FINGER_RADIUS + SEGA_DEAD_LAYER

    pos = Vector3(1.0, 1.0, 1.0).with_perp((SEGA_OUTER_RADIUS + inner_radius) / 2.0)
    pos = pos.with_phi((quad + 0.5) * 2.0 * math.pi / 4.0)
    pos = pos.with_z((SEGA_LENGTH / 8.0) * (2.0 * slice_ - 7.0))

    phid = (det - 1) * (2.0 * math.pi / 8.0) + math.pi / 8.0
    zd = SEGA_LENGTH + 2 * 0.05 + 0.6
    if det > 8:
        zd = -zd
    origin = Vector3(
        SEGA_RADIAL_DISTANCE * math.cos(phid),
        SEGA_RADIAL_DISTANCE * math.sin(phid),
        zd + offset,
    )
    return origin + pos