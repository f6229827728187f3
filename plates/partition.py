"""
partition.py - Group linkage points into rigid plates.

A plate is a set of points whose mutual distances never change while the
linkage moves, so it can be cut from a single piece of flat stock.
Plate 0 is the ground frame.

Joints are processed in declaration order:
  - rotary: a new crank plate {p0, p1}; a ground pivot joins plate 0
  - hinge: if p0 and p1 already sit on one plate their distance is fixed,
    so p2 closes a rigid triangle on that plate. Otherwise the hinge makes
    two new bar plates {p0, p2} and {p2, p1}
  - slider: the track p0 -> p2 is added to the plate holding p0 and p1,
    or to a new plate

Plates only depend on the joint graph, never on the drive angle.
"""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field

from configs.link_models import HingeJoint
from configs.link_models import Linkage
from configs.link_models import RotaryJoint
from configs.link_models import SliderJoint
from linkage_tools.mechanism import compile_linkage
from linkage_tools.mechanism import Mechanism


@dataclass
class Plate:
    """Rigid body of point handles; segments, triangles and sliders are drawable parts."""
    index: int
    points: list[int] = field(default_factory=list)
    segments: list[tuple[int, int]] = field(default_factory=list)
    triangles: list[tuple[int, int, int]] = field(default_factory=list)
    sliders: list[tuple[int, int, int]] = field(default_factory=list)

    @property
    def is_ground(self) -> bool:
        return self.index == 0

    def has(self, *handles: int) -> bool:
        return all(h in self.points for h in handles)

    def add_point(self, handle: int) -> None:
        if handle not in self.points:
            self.points.append(handle)

    def guide_points(self) -> set[int]:
        """Guide points (p1) of the sliders running on this plate."""
        return {guide for _, guide, _ in self.sliders}

    def to_dict(self, point_names: list[str]) -> dict:
        name = point_names.__getitem__
        return {
            'index': self.index,
            'points': [name(h) for h in self.points],
            'segments': [[name(a), name(b)] for a, b in self.segments],
            'triangles': [[name(h) for h in t] for t in self.triangles],
            'sliders': [[name(h) for h in s] for s in self.sliders],
        }


def _update_plate(plates: list[Plate], index: int, points: tuple, is_slider: bool = False) -> None:
    """Add points to plates[index] (appending a new plate at len(plates))."""
    if index == len(plates):
        plates.append(Plate(index=index))
    plate = plates[index]
    for h in points:
        plate.add_point(h)

    if len(points) == 2:
        plate.segments.append((points[0], points[1]))
    elif len(points) == 3:
        if is_slider:
            plate.segments.append((points[0], points[2]))
            plate.sliders.append(points)
        else:
            plate.segments.append((points[0], points[1]))
            plate.segments.append((points[1], points[2]))
            plate.triangles.append(points)


def _find_plate(plates: list[Plate], p0: int, p1: int) -> int | None:
    """First plate holding both points, skipping plates where either is a slider guide."""
    for plate in plates:
        guides = plate.guide_points()
        if p0 in guides or p1 in guides:
            continue
        if plate.has(p0, p1):
            return plate.index
    return None


def build_plates(linkage: Linkage, mechanism: Mechanism | None = None) -> list[Plate]:
    """
    Partition the linkage into rigid plates.

    Args:
        linkage: Linkage document
        mechanism: Compiled form of `linkage` (compiled here if omitted)

    Returns:
        Plates indexed by position; plates[0] is the ground plate
    """
    if mechanism is None:
        mechanism = compile_linkage(linkage)
    h = mechanism.handle
    is_ground = mechanism.is_ground

    plates = [Plate(index=0)]

    for link in linkage.links:
        if isinstance(link, RotaryJoint):
            p0, p1 = h(link.p0), h(link.p1)
            if is_ground(p0):
                _update_plate(plates, 0, (p0,))
            _update_plate(plates, len(plates), (p0, p1))

        elif isinstance(link, HingeJoint):
            p0, p1, p2 = h(link.p0), h(link.p1), h(link.p2)
            existing = _find_plate(plates, p0, p1)
            if existing is not None:
                _update_plate(plates, existing, (p0, p2, p1))
            else:
                _update_plate(plates, len(plates), (p0, p2))
                _update_plate(plates, len(plates), (p2, p1))
                if is_ground(p0):
                    _update_plate(plates, 0, (p0,))
                if is_ground(p1):
                    _update_plate(plates, 0, (p1,))

        elif isinstance(link, SliderJoint):
            p0, p1, p2 = h(link.p0), h(link.p1), h(link.p2)
            existing = _find_plate(plates, p0, p1)
            if existing is not None:
                _update_plate(plates, existing, (p0, p1, p2), is_slider=True)
            else:
                _update_plate(plates, len(plates), (p0, p1, p2), is_slider=True)
                if is_ground(p0):
                    _update_plate(plates, 0, (p0,))
                if is_ground(p1):
                    _update_plate(plates, 0, (p1,))

        else:
            raise TypeError(f"Unknown joint type: {type(link).__name__}")

    # ground frame: a bar between each consecutive pair of ground points
    ground = list(plates[0].points)
    for a, b in zip(ground, ground[1:]):
        _update_plate(plates, 0, (a, b))

    return plates
