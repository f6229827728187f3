"""
Tests for linkage_tools/editing.py

Each edit either applies and leaves an evaluable linkage, or reports
failure and leaves the linkage exactly as it was.
"""
import math

import pytest

from configs.link_models import HingeJoint, Linkage, Point, RotaryJoint, SliderJoint
from linkage_tools.editing import (
    add_hinge,
    add_rotary,
    add_slider,
    move_point,
    remove_point,
    set_ground_point,
    set_link_length,
    translate_ground,
)
from linkage_tools.exceptions import UnknownPointReference
from linkage_tools.kinematic import distance, evaluate
from linkage_tools.mechanism import hinge_side_lengths


# =============================================================================
# Adding joints
# =============================================================================

def test_add_rotary_mints_names():
    linkage = Linkage()
    joint = add_rotary(linkage, (2.0, 1.0))
    assert isinstance(joint, RotaryJoint)
    assert (joint.p0, joint.p1, joint.len, joint.theta) == ('p0', 'p1', 'len2', 'theta3')
    assert linkage.n == 4
    assert evaluate(linkage, 0.0)['p1'] == pytest.approx((3.0, 1.0))


def test_add_hinge_to_new_ground_point():
    """Hinge between the crank tip and a freshly placed ground point"""
    linkage = Linkage()
    add_rotary(linkage, (0.0, 0.0))
    joint = add_hinge(linkage, 0.0, 'p1', (3.0, 0.0), (3.25, math.sqrt(3.9375)))

    assert isinstance(joint, HingeJoint)
    assert joint.p1 == 'p4'
    assert linkage.is_ground('p4')
    assert (joint.pt, joint.l2t, joint.p2) == ('pt5', 'l2t6', 'p7')
    assert evaluate(linkage, 0.0)['p7'] == pytest.approx((3.25, math.sqrt(3.9375)))
    assert evaluate(linkage, math.pi)['p7'] is not None


def test_add_hinge_between_existing_points(crank_rocker):
    joint = add_hinge(crank_rocker, 0.0, 'p1', 'p6', (2.0, 2.5))
    assert joint is not None
    assert evaluate(crank_rocker, 0.0)[joint.p2] == pytest.approx((2.0, 2.5))


def test_add_hinge_unknown_point(crank_rocker):
    with pytest.raises(UnknownPointReference):
        add_hinge(crank_rocker, 0.0, 'p99', (0.0, 1.0), (1.0, 1.0))


def test_add_hinge_coincident_parents_rejected(crank_rocker):
    before = crank_rocker.model_copy(deep=True)
    assert add_hinge(crank_rocker, 0.0, 'p0', (0.0, 0.0), (1.0, 1.0)) is None
    assert crank_rocker.links == before.links
    assert crank_rocker.params == before.params


def test_add_slider_projects_tip():
    linkage = Linkage()
    joint = add_slider(linkage, 0.0, (0.0, 0.0), (1.0, 0.0), (2.0, 0.5))
    assert isinstance(joint, SliderJoint)
    assert linkage.params[joint.len] == pytest.approx(2.0)
    assert evaluate(linkage, 0.0)[joint.p2] == pytest.approx((2.0, 0.0))


def test_add_slider_tip_inside_guide_rejected():
    """Projected tip nearer the origin than the guide: nothing is added"""
    linkage = Linkage()
    assert add_slider(linkage, 0.0, (0.0, 0.0), (1.0, 0.0), (0.5, 0.3)) is None
    assert linkage.links == []
    assert linkage.params == {}
    assert linkage.n == 0


# =============================================================================
# Removing
# =============================================================================

def test_remove_hinge_point(crank_rocker):
    """Removing the coupler point drops the hinge and its private params"""
    assert remove_point(crank_rocker, 'p6') is True
    assert len(crank_rocker.links) == 1
    assert set(crank_rocker.params) == {'p0', 'len1', 'theta2'}


def test_remove_shared_point_refused(crank_rocker):
    assert remove_point(crank_rocker, 'p1') is False
    assert len(crank_rocker.links) == 2


def test_remove_crank_with_dependents_refused(crank_rocker):
    """p0 belongs only to the crank, but the crank tip drives the hinge"""
    assert remove_point(crank_rocker, 'p0') is False


def test_remove_unknown_point(crank_rocker):
    with pytest.raises(UnknownPointReference):
        remove_point(crank_rocker, 'p42')


def test_remove_slider(slider_linkage):
    assert remove_point(slider_linkage, 'p3') is True
    assert slider_linkage.links == []
    assert slider_linkage.params == {}


# =============================================================================
# Moving points
# =============================================================================

def test_move_ground_point(crank_rocker):
    assert move_point(crank_rocker, 0.0, 'p0', (0.0, 0.1)) is True
    assert crank_rocker.params['p0'] == Point(x=0.0, y=0.1)


def test_move_ground_point_infeasible_rolls_back(crank_rocker):
    """Rocker pivot too far away for the coupler to reach"""
    assert move_point(crank_rocker, 0.0, 'p3', (10.0, 0.0)) is False
    assert crank_rocker.params['p3'] == Point(x=3.0, y=0.0)


def test_move_crank_tip(crank_rocker):
    """Crank length and angle offset follow the dragged tip"""
    assert move_point(crank_rocker, 0.0, 'p1', (0.0, 1.2)) is True
    assert crank_rocker.params['len1'] == pytest.approx(1.2)
    assert crank_rocker.params['theta2'] == pytest.approx(math.pi / 2)
    assert evaluate(crank_rocker, 0.0)['p1'] == pytest.approx((0.0, 1.2), abs=1e-12)


def test_move_crank_tip_offset_relative_to_drive_angle(crank_rocker):
    """At drive angle pi/2, pointing the crank up means zero offset"""
    assert move_point(crank_rocker, math.pi / 2, 'p1', (0.0, 1.0)) is True
    assert crank_rocker.params['theta2'] == pytest.approx(0.0, abs=1e-12)


def test_move_hinge_point(crank_rocker):
    assert move_point(crank_rocker, 0.0, 'p6', (3.0, 2.0)) is True
    l0, l1 = hinge_side_lengths(crank_rocker.params['pt4'].as_tuple(), crank_rocker.params['l2t5'])
    assert l0 == pytest.approx(math.sqrt(8))
    assert l1 == pytest.approx(2.0)
    assert evaluate(crank_rocker, 0.0)['p6'] == pytest.approx((3.0, 2.0))


def test_move_slider_tip(slider_linkage):
    assert move_point(slider_linkage, 0.0, 'p3', (3.0, 0.0)) is True
    assert slider_linkage.params['len2'] == pytest.approx(3.0)


def test_move_unknown_point(crank_rocker):
    with pytest.raises(UnknownPointReference):
        move_point(crank_rocker, 0.0, 'zz', (0.0, 0.0))


# =============================================================================
# Lengths and ground coordinates
# =============================================================================

def test_set_crank_length(crank_rocker):
    assert set_link_length(crank_rocker, 0.0, 'p1', 'p0', 1.5) is True
    assert crank_rocker.params['len1'] == 1.5


def test_set_coupler_length(crank_rocker):
    assert set_link_length(crank_rocker, 0.0, 'p1', 'p6', 2.5) is True
    pt = crank_rocker.params['pt4']
    assert hinge_side_lengths(pt.as_tuple(), crank_rocker.params['l2t5']) == pytest.approx((2.5, 2.0))
    assert pt.y > 0
    points = evaluate(crank_rocker, 0.0)
    assert distance(points['p1'], points['p6']) == pytest.approx(2.5)


def test_set_rocker_length_too_long_rolls_back(crank_rocker):
    pt_before = crank_rocker.params['pt4']
    assert set_link_length(crank_rocker, 0.0, 'p6', 'p3', 10.0) is False
    assert crank_rocker.params['pt4'] == pt_before
    assert crank_rocker.params['l2t5'] == 2.0


def test_set_length_without_link(crank_rocker):
    """The ground bar p0-p3 is not owned by a joint"""
    with pytest.raises(UnknownPointReference):
        set_link_length(crank_rocker, 0.0, 'p0', 'p3', 2.0)


def test_slider_under_extension_rolls_back(slider_linkage):
    assert set_link_length(slider_linkage, 0.0, 'p0', 'p3', 0.5) is False
    assert slider_linkage.params['len2'] == 2.0


def test_set_ground_point_single_coordinate(crank_rocker):
    assert set_ground_point(crank_rocker, 0.0, 'p3', x=3.5) is True
    assert crank_rocker.params['p3'] == Point(x=3.5, y=0.0)


def test_set_ground_point_rejects_computed_point(crank_rocker):
    with pytest.raises(UnknownPointReference):
        set_ground_point(crank_rocker, 0.0, 'p1', x=1.0)


def test_translate_ground_moves_everything(crank_rocker):
    before = evaluate(crank_rocker, 0.7)
    translate_ground(crank_rocker, 1.0, 2.0)
    after = evaluate(crank_rocker, 0.7)
    for name, (x, y) in before.items():
        assert after[name] == pytest.approx((x + 1.0, y + 2.0))
    assert crank_rocker.params['pt4'].x == pytest.approx(2.25)


def test_crank_slider_track_too_short_rolls_back(crank_slider):
    """At theta = 0 the guide is 2 from the crank tip"""
    assert set_link_length(crank_slider, 0.0, 'p1', 'p5', 1.5) is False
    assert crank_slider.params['len4'] == 5.0
    assert set_link_length(crank_slider, 0.0, 'p5', 'p1', 4.0) is True
    assert crank_slider.params['len4'] == 4.0
