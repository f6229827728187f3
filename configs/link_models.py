
from typing import Dict, Iterator, List, Literal, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from typing_extensions import Annotated

from linkage_tools.exceptions import MalformedLinkage


class Point(BaseModel):
    """A 2D coordinate, used for ground points and hinge local-frame offsets."""
    x: float = Field(description="x coordinate")
    y: float = Field(description="y coordinate")

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",
    }

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


class RotaryJoint(BaseModel):
    """p1 orbits p0 at radius params[len], offset by params[theta] from the drive angle."""
    type: Literal["rotary"] = "rotary"
    p0: str = Field(description="Pivot point reference")
    p1: str = Field(description="Output point reference (crank tip)")
    len: str = Field(description="Scalar param holding the crank radius")
    theta: str = Field(description="Scalar param holding the angle offset")

    model_config = {"extra": "forbid"}

    def input_points(self) -> Tuple[str, ...]:
        return (self.p0,)

    def output_point(self) -> str:
        return self.p1

    def param_refs(self) -> Dict[str, type]:
        return {self.len: float, self.theta: float}


class HingeJoint(BaseModel):
    """
    p2 keeps fixed distances to p0 and p1.

    The distances are stored indirectly: params[pt] is p2 expressed in the
    frame whose x-axis runs from p0 to p1 at authoring time, and params[l2t]
    is the p0-p1 distance at that time. The sign of pt.y selects which of the
    two circle intersections is used.
    """
    type: Literal["hinge"] = "hinge"
    p0: str = Field(description="First parent point reference")
    p1: str = Field(description="Second parent point reference")
    pt: str = Field(description="Point param holding the local-frame offset of p2")
    l2t: str = Field(description="Scalar param holding the reference p0-p1 length")
    p2: str = Field(description="Output point reference")

    model_config = {"extra": "forbid"}

    def input_points(self) -> Tuple[str, ...]:
        return (self.p0, self.p1)

    def output_point(self) -> str:
        return self.p2

    def param_refs(self) -> Dict[str, type]:
        return {self.pt: Point, self.l2t: float}


class SliderJoint(BaseModel):
    """p2 lies on the ray p0 -> p1 at distance params[len] from p0."""
    type: Literal["slider"] = "slider"
    p0: str = Field(description="Ray origin point reference")
    p1: str = Field(description="Guide point reference")
    len: str = Field(description="Scalar param holding the p0-p2 distance")
    p2: str = Field(description="Output point reference (slider tip)")

    model_config = {"extra": "forbid"}

    def input_points(self) -> Tuple[str, ...]:
        return (self.p0, self.p1)

    def output_point(self) -> str:
        return self.p2

    def param_refs(self) -> Dict[str, type]:
        return {self.len: float}


Joint = Annotated[Union[RotaryJoint, HingeJoint, SliderJoint], Field(discriminator="type")]


class Linkage(BaseModel):
    """
    Serializable linkage document: {"n": ..., "params": {...}, "links": [...]}.

    Joint order is the solve order. It is checked when the model is built,
    so a document that references a point before it is defined never loads.
    """
    n: Annotated[int, Field(ge=0, description="Counter used to mint fresh names")] = 0
    params: Dict[str, Union[Point, float]] = Field(default_factory=dict)
    links: List[Joint] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @field_validator("params")
    @classmethod
    def validate_params(cls, v):
        for key, value in v.items():
            if not key:
                raise ValueError("param names must be non-empty")
            if isinstance(value, float) and value != value:
                raise ValueError(f"param '{key}' is NaN")
        return v

    @model_validator(mode="after")
    def validate_solve_order(self):
        check_solve_order(self)
        return self

    # ------------------------------------------------------------------
    # Name minting
    # ------------------------------------------------------------------

    def mint(self, prefix: str) -> str:
        """Return a fresh unique name such as 'p7' and advance the counter."""
        name = f"{prefix}{self.n}"
        self.n += 1
        return name

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def hinge_offset_refs(self) -> set:
        return {link.pt for link in self.links if isinstance(link, HingeJoint)}

    def ground_point_refs(self) -> List[str]:
        """Point-valued params that are positions (not hinge offsets), in params order."""
        offsets = self.hinge_offset_refs()
        return [
            ref for ref, value in self.params.items()
            if isinstance(value, Point) and ref not in offsets
        ]

    def is_ground(self, ref: str) -> bool:
        return isinstance(self.params.get(ref), Point) and ref not in self.hinge_offset_refs()

    def point_refs(self) -> List[str]:
        """Every point referenced by a joint, in first-use order."""
        refs: Dict[str, None] = {}
        for link in self.links:
            for ref in (*link.input_points(), link.output_point()):
                refs.setdefault(ref, None)
        return list(refs)

    def segments(self) -> List[Tuple[str, str]]:
        """Drawable bars of every joint."""
        segments = []
        for link in self.links:
            if isinstance(link, RotaryJoint):
                segments.append((link.p0, link.p1))
            elif isinstance(link, HingeJoint):
                segments.append((link.p0, link.p2))
                segments.append((link.p1, link.p2))
            elif isinstance(link, SliderJoint):
                segments.append((link.p0, link.p2))
        return segments

    def links_for_point(self, ref: str) -> List[Joint]:
        return [
            link for link in self.links
            if ref in (*link.input_points(), link.output_point())
        ]

    def iter_joints(self) -> Iterator[Tuple[int, Joint]]:
        return enumerate(self.links)


def check_solve_order(linkage: Linkage) -> None:
    """
    Verify that joints only reference names defined before them.

    Raises:
        MalformedLinkage: on an undefined point, a missing or ill-typed param,
            or a point produced twice
    """
    offsets = linkage.hinge_offset_refs()
    defined = {
        ref for ref, value in linkage.params.items()
        if isinstance(value, Point) and ref not in offsets
    }

    for i, link in enumerate(linkage.links):
        for ref in link.input_points():
            if ref not in defined:
                raise MalformedLinkage(
                    f"Joint {i} ({link.type}) references point '{ref}' before it is defined"
                )
        for ref, kind in link.param_refs().items():
            if ref not in linkage.params:
                raise MalformedLinkage(f"Joint {i} ({link.type}) references missing param '{ref}'")
            value = linkage.params[ref]
            if kind is Point and not isinstance(value, Point):
                raise MalformedLinkage(f"Param '{ref}' of joint {i} must be a point")
            if kind is float and isinstance(value, Point):
                raise MalformedLinkage(f"Param '{ref}' of joint {i} must be a scalar")
        out = link.output_point()
        if out in defined:
            raise MalformedLinkage(f"Point '{out}' is defined more than once (joint {i})")
        defined.add(out)
