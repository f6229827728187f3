"""
layering.py - Assign plates to stacked fabrication planes.

Constraints on an assignment {plate: plane}:
  - connected or intersecting plates never share a plane
  - sandwich rule: a plate that passes through a connection point may not
    sit strictly between the lowest and highest planes of the plates
    meeting at that point (the axle would have to go through it)

The score of an assignment is the number of planes it spans,
max - min + 1. layer_plates finds the minimum score with a depth-first
branch-and-bound search, then drops answers that are a shift or a mirror
image of an earlier one.

Plates can be any hashable keys. Relations may be networkx graphs or plain
{plate: iterable of plates} mappings.
"""
from __future__ import annotations

import logging
from collections.abc import Hashable
from collections.abc import Iterable
from collections.abc import Mapping

import networkx as nx

from linkage_tools.exceptions import NoLayeringSolution

logger = logging.getLogger(__name__)

Assignment = dict[Hashable, int]


def _adjacency(relation, plates: Iterable) -> dict:
    """Normalize a graph or mapping relation to {plate: set of plates}."""
    adjacency = {plate: set() for plate in plates}
    if relation is None:
        return adjacency
    if isinstance(relation, nx.Graph):
        for a, b in relation.edges():
            adjacency.setdefault(a, set()).add(b)
            adjacency.setdefault(b, set()).add(a)
        return adjacency
    for plate, others in relation.items():
        for other in others:
            adjacency.setdefault(plate, set()).add(other)
            adjacency.setdefault(other, set()).add(plate)
    return adjacency


def score_assignment(assignment: Mapping) -> int:
    """Number of planes spanned, max - min + 1."""
    planes = assignment.values()
    return max(planes) - min(planes) + 1


def creates_sandwich(pass_thrus: Mapping, plate, plane: int, assignment: Mapping) -> bool:
    """
    Whether putting `plate` on `plane` completes a sandwich.

    Two cases, matching the two ways a sandwich can be closed:
      - `plate` passes through a group and lands strictly inside its planes
      - `plate` belongs to a group that an already placed plate passes
        through, and the group's planes now enclose that plate
    """
    for plate2, groups in pass_thrus.items():
        if plate2 == plate:
            for group in groups:
                planes = [assignment[p] for p in group if p in assignment]
                if planes and min(planes) < plane < max(planes):
                    return True
        else:
            plane2 = assignment.get(plate2)
            if plane2 is None:
                continue
            for group in groups:
                if plate not in group:
                    continue
                planes = [
                    plane if p == plate else assignment[p]
                    for p in group if p == plate or p in assignment
                ]
                if min(planes) < plane2 < max(planes):
                    return True
    return False


def is_shift_or_mirror(solution1: Mapping, solution2: Mapping) -> bool:
    """Whether two assignments are equal up to a uniform shift or a reflection."""
    keys = list(solution1)
    ps1 = [solution1[k] for k in keys]
    ps2 = [solution2[k] for k in keys]
    min1, min2, max2 = min(ps1), min(ps2), max(ps2)
    return (
        all(p1 - min1 == p2 - min2 for p1, p2 in zip(ps1, ps2))
        or all(p1 - min1 == max2 - p2 for p1, p2 in zip(ps1, ps2))
    )


def find_violations(assignment: Mapping, connections, intersections, pass_thrus: Mapping) -> list[str]:
    """List every constraint a complete assignment breaks (empty when valid)."""
    violations = []
    plates = list(assignment)

    for name, relation in (('connected', connections), ('intersecting', intersections)):
        adjacency = _adjacency(relation, plates)
        seen = set()
        for a in plates:
            for b in adjacency.get(a, ()):
                pair = frozenset((a, b))
                if pair in seen or b not in assignment:
                    continue
                seen.add(pair)
                if assignment[a] == assignment[b]:
                    violations.append(f'{name} plates {a!r} and {b!r} share plane {assignment[a]}')

    for plate, groups in pass_thrus.items():
        if plate not in assignment:
            continue
        plane = assignment[plate]
        for group in groups:
            planes = [assignment[p] for p in group if p in assignment]
            if planes and min(planes) < plane < max(planes):
                violations.append(
                    f'plate {plate!r} on plane {plane} is sandwiched by {sorted(group, key=repr)}'
                )
    return violations


def layer_plates(
    plates: list,
    connections,
    intersections,
    pass_thrus: Mapping | None = None,
    enumerate_all: bool = False,
) -> list[Assignment]:
    """
    Minimum-span plane assignments for `plates`.

    Plates are placed in list order; each tries planes 0 .. n-1 in turn.
    A branch is pruned when its partial score already reaches the best
    complete score, when it conflicts with a plate on the same plane, or
    when it closes a sandwich. The search keeps an explicit stack of
    (depth, partial assignment, next plane) frames.

    Args:
        plates: Plates to place, in search order
        connections: Graph or mapping of connected plates
        intersections: Graph or mapping of intersecting plates
        pass_thrus: {plate: [group, ...]} pass-through groups
        enumerate_all: Keep branches that tie the best score, so every
            optimal assignment is found (before deduplication)

    Returns:
        Optimal assignments, pairwise not shift/mirror equivalent

    Raises:
        NoLayeringSolution: if no assignment satisfies the constraints
    """
    plates = list(plates)
    n = len(plates)
    if n == 0:
        raise NoLayeringSolution('no plates to layer')

    pass_thrus = pass_thrus or {}
    connected = _adjacency(connections, plates)
    intersecting = _adjacency(intersections, plates)
    conflicts = {plate: connected[plate] | intersecting[plate] for plate in plates}

    solutions: list[Assignment] = []
    best = n + 1  # every plate on its own plane, plus one
    visited = 0

    stack: list[list] = [[0, {}, 0]]
    while stack:
        frame = stack[-1]
        depth, assignment, plane = frame

        if depth == n:
            solutions.append(assignment)
            best = min(best, score_assignment(assignment))
            stack.pop()
            continue
        if plane >= n:
            stack.pop()
            continue
        frame[2] = plane + 1

        visited += 1
        plate = plates[depth]
        candidate = {**assignment, plate: plane}
        score = score_assignment(candidate)
        if score > best or (score == best and not enumerate_all):
            continue
        if any(assignment.get(other) == plane for other in conflicts[plate]):
            continue
        if creates_sandwich(pass_thrus, plate, plane, assignment):
            continue

        stack.append([depth + 1, candidate, 0])

    logger.debug(f'Layering search visited {visited} nodes, {len(solutions)} complete assignments')

    if not solutions:
        raise NoLayeringSolution(f'no valid plane assignment for {n} plates')

    optimal = [s for s in solutions if score_assignment(s) == best]
    unique: list[Assignment] = []
    for solution in optimal:
        if not any(is_shift_or_mirror(solution, other) for other in unique):
            unique.append(solution)
    return unique
