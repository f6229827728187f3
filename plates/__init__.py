"""
Plates and planes for fabricating a linkage from flat stock.

- partition: group points into rigid plates
- relations: connections, intersections and pass-throughs over a cycle
- layering: minimum-span plane assignment search
- planes: the full pipeline, compute_planes
"""
from __future__ import annotations

from plates.layering import find_violations
from plates.layering import is_shift_or_mirror
from plates.layering import layer_plates
from plates.layering import score_assignment
from plates.partition import build_plates
from plates.partition import Plate
from plates.planes import compute_planes
from plates.planes import PlaneLayout
from plates.relations import analyze_plates
from plates.relations import PlateGraph
