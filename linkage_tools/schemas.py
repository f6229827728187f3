"""
schemas.py - Data structures for linkage kinematics.

Dataclasses used across linkage_tools and plates modules.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class TraceResult:
    """
    One sampling pass over a full crank revolution.

    Sample i is taken at thetas[i]; the last sample repeats angle 0 so that
    a fully rotatable linkage closes its loop. Infeasible samples have
    feasible[i] == False and NaN positions. run_ids[i] is the run counter in
    effect at sample i: it advances once per failed sample, for every point
    at the same time.
    """
    point_names: list[str]
    n_ground: int
    thetas: np.ndarray       # (n_samples,)
    feasible: np.ndarray     # (n_samples,) bool
    run_ids: np.ndarray      # (n_samples,) int
    positions: np.ndarray    # (n_samples, n_points, 2)

    @property
    def n_samples(self) -> int:
        return len(self.thetas)

    @property
    def configurations(self) -> np.ndarray:
        """Positions of every feasible sample, (n_feasible, n_points, 2)."""
        return self.positions[self.feasible]

    def runs(self) -> list[np.ndarray]:
        """Sample indices grouped by run; empty runs are skipped."""
        groups: dict[int, list[int]] = {}
        for i in np.flatnonzero(self.feasible):
            groups.setdefault(int(self.run_ids[i]), []).append(int(i))
        return [np.array(groups[k]) for k in sorted(groups)]

    def traces(self) -> dict[str, list[list[tuple[float, float]]]]:
        """Per non-ground point, the list of feasible motion arcs."""
        runs = self.runs()
        traces: dict[str, list[list[tuple[float, float]]]] = {}
        for h in range(self.n_ground, len(self.point_names)):
            traces[self.point_names[h]] = [
                [(float(x), float(y)) for x, y in self.positions[idx, h]]
                for idx in runs
            ]
        return traces

    def to_dict(self) -> dict:
        return {
            'n_samples': self.n_samples,
            'n_feasible': int(self.feasible.sum()),
            'n_runs': len(self.runs()),
            'traces': {
                name: [[list(p) for p in run] for run in runs]
                for name, runs in self.traces().items()
            },
        }
