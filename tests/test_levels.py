import logging

import pytest

from clxsim.levels import (
    GammaSource,
    parse_level_scheme,
    parse_source_level_scheme,
)

SCHEME = [
    "1 1000.0 2 1.5 1",
    "0 1.0 2 2 0.0 0.0",
    "2 2000.0 4 0.5 2",
    "1 0.7 2 2 0.0 0.0",
    "0 0.3 4 4 0.0 0.5",
    "3 2500.0 3 0.2 1",
    "2 1.0 1 2 0.1 0.0",
    "4 3000.0 0 0.0 0",
]

SOURCE = [
    "1 1000.0 2 1.0 3.0 1",
    "0 1.0 2 2 0.0 0.0",
    "2 2000.0 4 1.0 1.0 1",
    "1 1.0 2 2 0.0 0.0",
]


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def test_parse_builds_levels_in_order():
    scheme = parse_level_scheme(SCHEME, ground_state_spin=0.0)
    assert len(scheme) == 5
    assert [level.index for level in scheme] == [0, 1, 2, 3, 4]
    assert scheme.spins == [0.0, 2.0, 4.0, 3.0, 0.0]
    assert scheme.excitation(0) == 0.0
    assert scheme.excitation(2) == 2000.0


def test_decay_channels_link_levels():
    scheme = parse_level_scheme(SCHEME)
    second = scheme[2]
    assert [d.daughter for d in second.decays] == [scheme[1], scheme[0]]
    first = second.decays[0]
    assert first.parent is second
    assert first.initial_energy == 2000.0
    assert first.final_energy == 1000.0
    assert first.two_ji == second.two_j
    assert first.two_jf == scheme[1].two_j
    assert second.decays[1].conversion_coefficient == 0.5


def test_level_without_branches_is_stable(caplog):
    with caplog.at_level(logging.WARNING):
        scheme = parse_level_scheme(SCHEME)
    assert scheme[4].stable
    assert not scheme[1].stable
    assert "no decay branches" in caplog.text


def test_considered_state_limits_emission():
    scheme = parse_level_scheme(SCHEME, considered=1, projectile=False)
    assert all(d.emit_gamma for d in scheme[1].decays)
    assert not any(d.emit_gamma for d in scheme[2].decays)
    assert not any(d.projectile for level in scheme for d in level.decays)


def test_no_considered_state_emits_everything():
    scheme = parse_level_scheme(SCHEME)
    assert all(d.emit_gamma for level in scheme for d in level.decays)


def test_can_feed():
    scheme = parse_level_scheme(SCHEME)
    assert scheme.can_feed(3, 1)
    assert scheme.can_feed(2, 1)
    assert scheme.can_feed(3, 2)
    assert not scheme.can_feed(1, 2)
    assert not scheme.can_feed(4, 1)
    assert not scheme.can_feed(0, 1)


def test_out_of_order_warns(caplog):
    lines = ["2 1000.0 2 1.0 1", "0 1.0 2 2 0.0 0.0"]
    with caplog.at_level(logging.WARNING):
        scheme = parse_level_scheme(lines)
    assert len(scheme) == 2
    assert "out of order" in caplog.text


def test_unknown_daughter_raises():
    with pytest.raises(ValueError, match="unknown state"):
        parse_level_scheme(["1 1000.0 2 1.0 1", "3 1.0 2 2 0.0 0.0"])


def test_missing_branch_line_raises():
    with pytest.raises(ValueError, match="missing"):
        parse_level_scheme(["1 1000.0 2 1.0 2", "0 1.0 2 2 0.0 0.0"])


def test_malformed_line_raises():
    with pytest.raises(ValueError):
        parse_level_scheme(["one 1000.0 2 1.0 0"])


def test_parse_source_scheme_returns_populations():
    scheme, populations = parse_source_level_scheme(SOURCE, ground_state_spin=0.0)
    assert len(scheme) == 3
    assert populations == [3.0, 1.0]
    assert all(d.emit_gamma and d.projectile for level in scheme for d in level.decays)


def test_gamma_source_load_normalises(tmp_path):
    path = tmp_path / "source.lvl"
    path.write_text("\n".join(SOURCE) + "\n")
    source = GammaSource(ground_state_spin=0.0)
    scheme = source.load(path)
    assert len(scheme) == 3
    assert source.file_name == str(path)
    assert sum(source.probabilities) == pytest.approx(1.0)
    assert source.probabilities[0] == pytest.approx(3 * source.probabilities[1])


def test_gamma_source_choose_state(tmp_path):
    path = tmp_path / "source.lvl"
    path.write_text("\n".join(SOURCE) + "\n")
    source = GammaSource()
    source.load(path)
    assert source.choose_state(FixedRandom(0.0)) == 1
    assert source.choose_state(FixedRandom(0.74)) == 1
    assert source.choose_state(FixedRandom(0.76)) == 2


def test_gamma_source_without_file_raises():
    with pytest.raises(ValueError):
        GammaSource().load()


def test_gamma_source_empty_chooses_ground():
    assert GammaSource().choose_state(FixedRandom(0.5)) == 0