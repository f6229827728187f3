"""
Tests for the pylinkage bridge module.

Tests cover:
- Conversion from linkage documents to pylinkage Linkage
- Simulation using pylinkage solver
- Comparison between evaluate() and pylinkage
"""
import numpy as np
import pytest

pytest.importorskip("pylinkage")

from link.pylinkage_bridge import (  # noqa: E402
    ConversionResult,
    SimulationResult,
    simulate_pylinkage,
    to_pylinkage,
)
from linkage_tools.kinematic import evaluate  # noqa: E402


def test_convert_crank_rocker(crank_rocker):
    result = to_pylinkage(crank_rocker, n_steps=24)
    assert isinstance(result, ConversionResult)
    assert result.success, result.errors
    assert result.stats == {"static_joints": 2, "crank_joints": 1, "revolute_joints": 1}
    assert set(result.joint_mapping) == {"p0", "p3", "p1", "p6"}
    assert result.to_dict()["success"] is True


def test_convert_slider_reports_error(slider_linkage):
    result = to_pylinkage(slider_linkage)
    assert not result.success
    assert result.linkage is None
    assert any("Slider" in e for e in result.errors)


def test_convert_infeasible_start(lockup_rocker):
    result = to_pylinkage(lockup_rocker, theta=np.pi)
    assert not result.success
    assert result.errors


def test_simulation_matches_evaluate(crank_rocker):
    """pylinkage and evaluate agree along a full revolution"""
    n_steps = 36
    result = simulate_pylinkage(crank_rocker, n_steps=n_steps)
    assert isinstance(result, SimulationResult)
    assert result.success, result.errors
    assert set(result.trajectories) == {"p1", "p6"}

    for step, theta in enumerate(result.thetas):
        expected = evaluate(crank_rocker, float(theta))
        for name, trajectory in result.trajectories.items():
            assert tuple(trajectory[step]) == pytest.approx(expected[name], abs=1e-6)
