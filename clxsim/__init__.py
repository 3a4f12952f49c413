"""Coulomb-excitation experiment modelling: kinematics, geometry, hits, level schemes and macro commands."""

__version__ = "0.1.0"