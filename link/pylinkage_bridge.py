"""
Bridge module for converting plate linkages to pylinkage.

This module handles:
- Linkage document -> pylinkage Linkage conversion
- Simulation with pylinkage's own solver
- Trajectory extraction, for cross-checking evaluate() against an
  independent implementation

Key pylinkage concepts:
- Ground points become Static joints
- A rotary joint is a Crank anchored on its pivot; all cranks advance by
  the same angle per step, like the shared drive angle
- A hinge is a Revolute joint: distance0 = |p0 p2|, distance1 = |p1 p2|
- Sliders have no pylinkage counterpart and are reported as errors
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

# pylinkage imports
from pylinkage.joints import Crank, Revolute, Static
from pylinkage.linkage import Linkage as PylinkageLinkage

from configs.appconfig import TRACE_STEPS
from configs.link_models import HingeJoint, Linkage, RotaryJoint, SliderJoint
from linkage_tools.exceptions import InfeasibleConfiguration
from linkage_tools.kinematic import evaluate
from linkage_tools.mechanism import hinge_side_lengths

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Result of converting a linkage document to pylinkage."""
    success: bool = False
    linkage: Optional[PylinkageLinkage] = None
    errors: list[str] = field(default_factory=list)
    joint_mapping: dict[str, Any] = field(default_factory=dict)  # point name -> pylinkage joint
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert result to JSON-serializable dict."""
        return {
            "success": self.success,
            "errors": self.errors,
            "joint_mapping": {k: str(v) for k, v in self.joint_mapping.items()},
            "stats": self.stats,
        }


@dataclass
class SimulationResult:
    """Result of running pylinkage simulation."""
    success: bool = False
    thetas: np.ndarray = field(default_factory=lambda: np.zeros(0))
    trajectories: dict[str, np.ndarray] = field(default_factory=dict)  # point name -> (n_steps, 2)
    n_steps: int = 0
    errors: list[str] = field(default_factory=list)


def to_pylinkage(
    linkage: Linkage,
    theta: float = 0.0,
    n_steps: int = TRACE_STEPS,
) -> ConversionResult:
    """
    Convert a linkage document into a pylinkage Linkage.

    Joint positions are initialized from evaluate(linkage, theta), so the
    Revolute joints start on the same branch as the document's hinges.

    Args:
        linkage: Linkage document (rotary and hinge joints only)
        theta: Drive angle of the initial configuration
        n_steps: Steps per revolution; each Crank turns 2*pi/n_steps per step

    Returns:
        ConversionResult with the pylinkage Linkage or errors
    """
    result = ConversionResult()

    try:
        positions = evaluate(linkage, theta)
    except InfeasibleConfiguration as e:
        result.errors.append(f"Linkage cannot be assembled at theta={theta}: {e}")
        return result

    joints = {}
    order = []
    params = linkage.params

    for ref in linkage.ground_point_refs():
        x, y = positions[ref]
        joints[ref] = Static(x=x, y=y, name=ref)

    angle_per_step = 2 * np.pi / n_steps

    for link in linkage.links:
        if isinstance(link, RotaryJoint):
            x, y = positions[link.p1]
            joint = Crank(
                x=x,
                y=y,
                joint0=joints[link.p0],
                angle=angle_per_step,
                distance=float(params[link.len]),
                name=link.p1,
            )
        elif isinstance(link, HingeJoint):
            l0, l1 = hinge_side_lengths(params[link.pt].as_tuple(), float(params[link.l2t]))
            x, y = positions[link.p2]
            joint = Revolute(
                x=x,
                y=y,
                joint0=joints[link.p0],
                joint1=joints[link.p1],
                distance0=l0,
                distance1=l1,
                name=link.p2,
            )
        elif isinstance(link, SliderJoint):
            result.errors.append(f"Slider '{link.p2}' has no pylinkage equivalent")
            return result
        else:
            raise TypeError(f"Unknown joint type: {type(link).__name__}")

        joints[link.output_point()] = joint
        order.append(joint)

    result.linkage = PylinkageLinkage(
        joints=tuple(joints.values()),
        order=tuple(order),
        name="plate_linkage",
    )
    result.joint_mapping = joints
    result.stats = {
        "static_joints": len(joints) - len(order),
        "crank_joints": sum(isinstance(j, Crank) for j in order),
        "revolute_joints": sum(isinstance(j, Revolute) for j in order),
    }
    result.success = True
    logger.debug(f"Created pylinkage Linkage with {len(joints)} joints")
    return result


def simulate_pylinkage(
    linkage: Linkage,
    theta: float = 0.0,
    n_steps: int = TRACE_STEPS,
) -> SimulationResult:
    """
    Run one revolution through pylinkage.

    pylinkage turns the cranks before solving, so step i is the configuration
    at drive angle theta + (i + 1) * 2*pi/n_steps.

    Returns:
        SimulationResult with a trajectory per moving point
    """
    result = SimulationResult(n_steps=n_steps)

    conversion = to_pylinkage(linkage, theta, n_steps)
    if not conversion.success:
        result.errors.extend(conversion.errors)
        return result

    pl = conversion.linkage
    names = [joint.name for joint in pl.joints]
    moving = [name for name in names if name not in linkage.params]
    trajectories = {name: np.full((n_steps, 2), np.nan) for name in moving}

    try:
        for step, coords in enumerate(pl.step(iterations=n_steps)):
            for name, coord in zip(names, coords):
                if name in trajectories and coord[0] is not None and coord[1] is not None:
                    trajectories[name][step] = [coord[0], coord[1]]
    except Exception as e:
        result.errors.append(f"Simulation failed: {str(e)}")
        logger.exception("Pylinkage simulation failed")
        return result

    result.thetas = theta + (np.arange(n_steps) + 1) * 2 * np.pi / n_steps
    result.trajectories = trajectories
    result.success = True
    return result
