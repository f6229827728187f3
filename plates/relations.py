"""
relations.py - How plates interact over a full motion cycle.

Three relations are derived from the plates and a set of sampled
configurations (feasible point positions, shape (m, n_points, 2)):

  connections    plates that share a pivot point
  intersections  unconnected plates whose bars cross in some configuration
  pass_thrus     connection points a plate sweeps near without using

Connections and intersections are undirected networkx graphs over plate
indices, so both relations are symmetric by construction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations

import networkx as nx
import numpy as np

from configs.appconfig import PASS_THRU_MARGIN
from linkage_tools.geometry import point_segment_distance
from linkage_tools.geometry import segments_intersect
from plates.partition import Plate

logger = logging.getLogger(__name__)


@dataclass
class PlateGraph:
    plates: list[Plate]
    connections: nx.Graph                 # edge attr 'point': the shared point handle
    point_connections: dict[int, set[int]]
    intersections: nx.Graph
    pass_thrus: dict[int, list[frozenset[int]]]

    def connected(self, a: int, b: int) -> bool:
        return self.connections.has_edge(a, b)

    def intersecting(self, a: int, b: int) -> bool:
        return self.intersections.has_edge(a, b)

    def to_dict(self, point_names: list[str]) -> dict:
        return {
            'connections': [
                {'plates': sorted((a, b)), 'point': point_names[data['point']]}
                for a, b, data in self.connections.edges(data=True)
            ],
            'point_connections': {
                point_names[p]: sorted(group) for p, group in self.point_connections.items()
            },
            'intersections': sorted(sorted(edge) for edge in self.intersections.edges()),
            'pass_thrus': {
                plate: [sorted(group) for group in groups]
                for plate, groups in self.pass_thrus.items()
            },
        }


def _as_configurations(configurations) -> np.ndarray:
    configs = np.asarray(configurations, dtype=float)
    if configs.ndim == 2:
        configs = configs[np.newaxis]
    if configs.ndim != 3 or configs.shape[-1] != 2:
        raise ValueError(f'configurations must have shape (m, n_points, 2), got {configs.shape}')
    return configs


# =============================================================================
# Connections
# =============================================================================

def connect_plates(plates: list[Plate]) -> tuple[nx.Graph, dict[int, set[int]]]:
    """
    Link every pair of plates that shares a point.

    Two plates can only pivot about one common point, so the first shared
    point (in the lower plate's point order) is the connection.

    Returns:
        (connections graph, {point handle: set of plates meeting there})
    """
    connections = nx.Graph()
    connections.add_nodes_from(plate.index for plate in plates)
    point_connections: dict[int, set[int]] = {}

    for plate0, plate1 in combinations(plates, 2):
        for p in plate0.points:
            if p in plate1.points:
                connections.add_edge(plate0.index, plate1.index, point=p)
                point_connections.setdefault(p, set()).update((plate0.index, plate1.index))
                break

    return connections, point_connections


# =============================================================================
# Intersections
# =============================================================================

def plates_intersect(plate0: Plate, plate1: Plate, configurations) -> bool:
    """Whether any bar of plate0 crosses any bar of plate1 in any configuration."""
    configs = _as_configurations(configurations)
    for a0, a1 in plate0.segments:
        for b0, b1 in plate1.segments:
            hit = segments_intersect(
                configs[:, a0], configs[:, a1], configs[:, b0], configs[:, b1],
            )
            if np.any(hit):
                return True
    return False


def find_intersections(plates: list[Plate], configurations, connections: nx.Graph) -> nx.Graph:
    """Pairs of unconnected plates that collide somewhere in the cycle."""
    configs = _as_configurations(configurations)
    intersections = nx.Graph()
    intersections.add_nodes_from(plate.index for plate in plates)
    if len(configs) == 0:
        return intersections

    for plate0, plate1 in combinations(plates, 2):
        if connections.has_edge(plate0.index, plate1.index):
            continue
        if plates_intersect(plate0, plate1, configs):
            intersections.add_edge(plate0.index, plate1.index)
    return intersections


# =============================================================================
# Pass-throughs
# =============================================================================

def find_pass_thrus(
    plates: list[Plate],
    point_connections: dict[int, set[int]],
    configurations,
    margin: float = PASS_THRU_MARGIN,
) -> dict[int, list[frozenset[int]]]:
    """
    Connection points each plate sweeps within `margin` of.

    A plate is not checked against points it is attached to. For every hit
    the plate records the full set of plates meeting at that point, once per
    point, ordered by the first configuration that came near it.

    Returns:
        {plate index: [group of plate indices, ...]}
    """
    configs = _as_configurations(configurations)
    pass_thrus: dict[int, list[frozenset[int]]] = {plate.index: [] for plate in plates}
    if len(configs) == 0:
        return pass_thrus

    for plate in plates:
        if not plate.segments:
            continue
        hits = []
        for order, (p, group) in enumerate(point_connections.items()):
            if plate.index in group:
                continue
            near = np.zeros(len(configs), dtype=bool)
            for s0, s1 in plate.segments:
                dist = point_segment_distance(configs[:, p], configs[:, s0], configs[:, s1])
                near |= dist < margin
            if near.any():
                hits.append((int(np.argmax(near)), order, frozenset(group)))
        pass_thrus[plate.index] = [group for _, _, group in sorted(hits, key=lambda t: t[:2])]

    return pass_thrus


def analyze_plates(
    plates: list[Plate],
    configurations,
    margin: float = PASS_THRU_MARGIN,
) -> PlateGraph:
    """
    Compute connections, intersections and pass-throughs for a set of plates.

    Args:
        plates: Output of build_plates
        configurations: Sampled positions, (m, n_points, 2) in handle order
        margin: Distance below which a bar counts as passing a pivot

    Returns:
        PlateGraph
    """
    connections, point_connections = connect_plates(plates)
    intersections = find_intersections(plates, configurations, connections)
    pass_thrus = find_pass_thrus(plates, point_connections, configurations, margin)

    logger.info(
        f'{len(plates)} plates: {connections.number_of_edges()} connections, '
        f'{intersections.number_of_edges()} intersections, '
        f'{sum(len(g) for g in pass_thrus.values())} pass-throughs'
    )
    return PlateGraph(
        plates=plates,
        connections=connections,
        point_connections=point_connections,
        intersections=intersections,
        pass_thrus=pass_thrus,
    )
