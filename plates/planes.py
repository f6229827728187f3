"""
planes.py - From a linkage to plates stacked on planes.

compute_planes runs the whole pipeline:

    build_plates -> sample configurations -> analyze_plates -> layer_plates

and groups the plates of the best assignment per plane.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field

import numpy as np

from configs.appconfig import PASS_THRU_MARGIN
from configs.appconfig import TRACE_STEPS
from configs.link_models import Linkage
from linkage_tools.exceptions import NoLayeringSolution
from linkage_tools.kinematic import sample_cycle
from linkage_tools.mechanism import compile_linkage
from linkage_tools.mechanism import Mechanism
from plates.layering import layer_plates
from plates.layering import score_assignment
from plates.partition import build_plates
from plates.partition import Plate
from plates.relations import analyze_plates
from plates.relations import PlateGraph

logger = logging.getLogger(__name__)


@dataclass
class PlaneLayout:
    """
    Result of compute_planes.

    `assignment` maps plate index -> plane, normalized so the lowest plane
    is 0. `solutions` holds every distinct optimal assignment found, the
    chosen one first.
    """
    point_names: list[str]
    plates: list[Plate]
    graph: PlateGraph
    assignment: dict[int, int]
    score: int
    solutions: list[dict[int, int]] = field(default_factory=list)

    @property
    def planes(self) -> list[list[Plate]]:
        planes: list[list[Plate]] = [[] for _ in range(self.score)]
        for index, plane in self.assignment.items():
            planes[plane].append(self.plates[index])
        return planes

    def to_dict(self) -> dict:
        return {
            'score': self.score,
            'assignment': {str(k): v for k, v in self.assignment.items()},
            'planes': [[plate.index for plate in plane] for plane in self.planes],
            'plates': [plate.to_dict(self.point_names) for plate in self.plates],
            'relations': self.graph.to_dict(self.point_names),
            'n_solutions': len(self.solutions),
        }


def _normalize(assignment: Mapping) -> dict:
    low = min(assignment.values())
    return {plate: plane - low for plate, plane in assignment.items()}


def _configurations_array(mechanism: Mechanism, configurations) -> np.ndarray:
    """Accept an (m, n_points, 2) array or a sequence of {name: point} mappings."""
    if isinstance(configurations, np.ndarray):
        return configurations
    configurations = list(configurations)
    if configurations and isinstance(configurations[0], Mapping):
        return np.stack([mechanism.from_named(c) for c in configurations])
    return np.asarray(configurations, dtype=float).reshape(-1, mechanism.n_points, 2)


def compute_planes(
    linkage: Linkage,
    configurations=None,
    n_steps: int = TRACE_STEPS,
    margin: float = PASS_THRU_MARGIN,
    enumerate_all: bool = False,
) -> PlaneLayout:
    """
    Partition a linkage into plates and layer them on the fewest planes.

    Args:
        linkage: Linkage document
        configurations: Sampled positions to check collisions against; when
            None, one revolution of `n_steps` samples is used
        n_steps: Samples per revolution when sampling here
        margin: Pass-through distance threshold
        enumerate_all: See layer_plates

    Returns:
        PlaneLayout

    Raises:
        NoLayeringSolution: if the plates cannot be stacked
    """
    mechanism = compile_linkage(linkage)
    plates = build_plates(linkage, mechanism)

    if configurations is None:
        configs = sample_cycle(linkage, n_steps).configurations
    else:
        configs = _configurations_array(mechanism, configurations)

    graph = analyze_plates(plates, configs, margin)

    try:
        solutions = layer_plates(
            [plate.index for plate in plates],
            graph.connections,
            graph.intersections,
            graph.pass_thrus,
            enumerate_all=enumerate_all,
        )
    except NoLayeringSolution:
        logger.warning(f'No layering solution for {len(plates)} plates')
        raise

    solutions = [_normalize(s) for s in solutions]
    assignment = solutions[0]
    score = score_assignment(assignment)
    logger.info(f'Layered {len(plates)} plates on {score} planes ({len(solutions)} distinct solutions)')

    return PlaneLayout(
        point_names=list(mechanism.point_names),
        plates=plates,
        graph=graph,
        assignment=assignment,
        score=score,
        solutions=solutions,
    )
