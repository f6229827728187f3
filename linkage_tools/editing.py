"""
editing.py - Authoring operations on a Linkage document.

Every operation that can break the linkage is a small transaction:
  1. snapshot the params (or joint) it touches
  2. apply the change
  3. re-evaluate at the current drive angle
  4. restore the snapshot if evaluation fails

Operations report success to the caller instead of raising for
InfeasibleConfiguration. Unknown points raise UnknownPointReference.

`points` arguments are the currently displayed positions
({name: (x, y)}); when omitted they are evaluated at `theta`.
"""
from __future__ import annotations

import logging
from typing import Union

import numpy as np

from configs.appconfig import DEFAULT_ROTARY_LENGTH
from configs.link_models import check_solve_order
from configs.link_models import HingeJoint
from configs.link_models import Joint
from configs.link_models import Linkage
from configs.link_models import Point
from configs.link_models import RotaryJoint
from configs.link_models import SliderJoint
from linkage_tools.exceptions import InfeasibleConfiguration
from linkage_tools.exceptions import MalformedLinkage
from linkage_tools.exceptions import UnknownPointReference
from linkage_tools.kinematic import _xy
from linkage_tools.kinematic import calc_hinge_params
from linkage_tools.kinematic import distance
from linkage_tools.kinematic import evaluate
from linkage_tools.kinematic import project_slider
from linkage_tools.kinematic import update_hinge_params_with_lengths

logger = logging.getLogger(__name__)

PointInput = Union[str, tuple[float, float], Point]


# =============================================================================
# Transactions
# =============================================================================

def _try_params(linkage: Linkage, theta: float, updates: dict) -> bool:
    """Apply param updates; keep them only if the linkage still evaluates at theta."""
    snapshot = {ref: linkage.params[ref] for ref in updates}
    linkage.params.update(updates)
    try:
        evaluate(linkage, theta)
    except InfeasibleConfiguration as e:
        linkage.params.update(snapshot)
        logger.debug(f'Rolled back {sorted(updates)}: {e}')
        return False
    return True


def _try_add(linkage: Linkage, theta: float, joint: Joint, new_params: dict) -> bool:
    """Append a joint with its params; remove them again if the linkage breaks."""
    linkage.params.update(new_params)
    linkage.links.append(joint)
    try:
        check_solve_order(linkage)
        evaluate(linkage, theta)
    except (InfeasibleConfiguration, MalformedLinkage) as e:
        linkage.links.pop()
        for ref in new_params:
            del linkage.params[ref]
        if isinstance(e, MalformedLinkage):
            raise
        logger.debug(f'Rejected new {joint.type} joint: {e}')
        return False
    return True


def _current_points(linkage: Linkage, theta: float, points: dict | None) -> dict:
    return points if points is not None else evaluate(linkage, theta)


def _lookup(points: dict, ref: str):
    if ref not in points:
        raise UnknownPointReference(f"Unknown point '{ref}'")
    return points[ref]


# =============================================================================
# Adding joints
# =============================================================================

def add_rotary(linkage: Linkage, p: PointInput, length: float = DEFAULT_ROTARY_LENGTH) -> RotaryJoint:
    """Add a crank pivoting on a new ground point at p, pointing along +x."""
    p0_ref = linkage.mint('p')
    p1_ref = linkage.mint('p')
    len_ref = linkage.mint('len')
    theta_ref = linkage.mint('theta')

    x, y = _xy(p)
    linkage.params[p0_ref] = Point(x=x, y=y)
    linkage.params[len_ref] = float(length)
    linkage.params[theta_ref] = 0.0

    joint = RotaryJoint(p0=p0_ref, p1=p1_ref, len=len_ref, theta=theta_ref)
    linkage.links.append(joint)
    return joint


def add_hinge(
    linkage: Linkage,
    theta: float,
    p0_ref: str,
    p1: PointInput,
    p2: PointInput,
    points: dict | None = None,
) -> HingeJoint | None:
    """
    Add a hinge whose new point p2 is held by bars to p0 and p1.

    Args:
        p0_ref: Existing point
        p1: Existing point name, or a location for a new ground point
        p2: Location of the new hinge point

    Returns:
        The new joint, or None if the linkage could not be assembled with it
    """
    points = _current_points(linkage, theta, points)
    p0 = _lookup(points, p0_ref)

    new_params: dict = {}
    if isinstance(p1, str):
        p1_ref = p1
        p1_pos = _lookup(points, p1)
    else:
        p1_ref = linkage.mint('p')
        p1_pos = _xy(p1)
        new_params[p1_ref] = Point(x=p1_pos[0], y=p1_pos[1])

    pt_ref = linkage.mint('pt')
    l2t_ref = linkage.mint('l2t')
    p2_ref = linkage.mint('p')

    try:
        pt, l2t = calc_hinge_params(p0, p1_pos, p2)
    except InfeasibleConfiguration as e:
        logger.debug(f'Cannot add hinge: {e}')
        return None
    new_params[pt_ref] = pt
    new_params[l2t_ref] = l2t

    joint = HingeJoint(p0=p0_ref, p1=p1_ref, pt=pt_ref, l2t=l2t_ref, p2=p2_ref)
    return joint if _try_add(linkage, theta, joint, new_params) else None


def add_slider(
    linkage: Linkage,
    theta: float,
    p0: PointInput,
    p1: PointInput,
    p2: PointInput,
    points: dict | None = None,
) -> SliderJoint | None:
    """
    Add a slider running from p0 through guide p1 to the projection of p2.

    p0 and p1 may be existing point names or locations for new ground
    points. Returns None, leaving the linkage untouched, when the projected
    tip would sit nearer p0 than the guide does.
    """
    points = _current_points(linkage, theta, points)
    p0_pos = _lookup(points, p0) if isinstance(p0, str) else _xy(p0)
    p1_pos = _lookup(points, p1) if isinstance(p1, str) else _xy(p1)
    if distance(p0_pos, p1_pos) == 0:
        return None

    tip = project_slider(p0_pos, p1_pos, p2)
    total_len = distance(p0_pos, tip)
    if total_len < distance(p0_pos, p1_pos):
        return None

    len_ref = linkage.mint('len')
    new_params: dict = {len_ref: total_len}
    if isinstance(p0, str):
        p0_ref = p0
    else:
        p0_ref = linkage.mint('p')
        new_params[p0_ref] = Point(x=p0_pos[0], y=p0_pos[1])
    if isinstance(p1, str):
        p1_ref = p1
    else:
        p1_ref = linkage.mint('p')
        new_params[p1_ref] = Point(x=p1_pos[0], y=p1_pos[1])
    p2_ref = linkage.mint('p')

    joint = SliderJoint(p0=p0_ref, p1=p1_ref, len=len_ref, p2=p2_ref)
    return joint if _try_add(linkage, theta, joint, new_params) else None


# =============================================================================
# Removing joints
# =============================================================================

def remove_point(linkage: Linkage, ref: str) -> bool:
    """
    Remove the joint that owns a dangling point.

    Only a point used by a single joint can be removed, and only if the
    joint's output is not used elsewhere. Params no longer referenced by
    any joint are deleted with it.

    Returns:
        True if a joint was removed
    """
    links = linkage.links_for_point(ref)
    if not links:
        raise UnknownPointReference(f"Unknown point '{ref}'")
    if len(links) > 1:
        return False
    link = links[0]

    if len(linkage.links_for_point(link.output_point())) > 1:
        return False

    params = linkage.params
    params.pop(link.output_point(), None)
    for parent in link.input_points():
        if len(linkage.links_for_point(parent)) == 1:
            params.pop(parent, None)

    if isinstance(link, RotaryJoint):
        params.pop(link.len, None)
        params.pop(link.theta, None)
    elif isinstance(link, HingeJoint):
        params.pop(link.pt, None)
        params.pop(link.l2t, None)
    elif isinstance(link, SliderJoint):
        params.pop(link.len, None)

    linkage.links = [other for other in linkage.links if other is not link]
    logger.debug(f"Removed {link.type} joint producing '{link.output_point()}'")
    return True


# =============================================================================
# Moving points and changing lengths
# =============================================================================

def move_point(
    linkage: Linkage,
    theta: float,
    ref: str,
    p: PointInput,
    points: dict | None = None,
) -> bool:
    """
    Drag a point to p, adjusting whichever params define it.

      - ground point: its coordinates
      - rotary tip: crank length and angle offset
      - slider tip: slider length
      - hinge point: the local-frame params of every hinge that uses it

    Returns:
        True if the linkage still assembles at theta, else False (unchanged)
    """
    x, y = _xy(p)

    if linkage.is_ground(ref):
        return _try_params(linkage, theta, {ref: Point(x=x, y=y)})

    points = _current_points(linkage, theta, points)

    rotary = next((l for l in linkage.links if isinstance(l, RotaryJoint) and l.p1 == ref), None)
    if rotary is not None:
        x0, y0 = _lookup(points, rotary.p0)
        new_len = float(np.hypot(x - x0, y - y0))
        new_theta = float(np.arctan2(y - y0, x - x0))
        return _try_params(linkage, theta, {
            rotary.len: new_len,
            rotary.theta: (new_theta - theta) % (2 * np.pi),
        })

    slider = next((l for l in linkage.links if isinstance(l, SliderJoint) and l.p2 == ref), None)
    if slider is not None:
        return _try_params(linkage, theta, {
            slider.len: distance((x, y), _lookup(points, slider.p0)),
        })

    updates: dict = {}
    for hinge in linkage.links:
        if not isinstance(hinge, HingeJoint) or ref not in (hinge.p0, hinge.p1, hinge.p2):
            continue
        ps = [(x, y) if r == ref else _lookup(points, r) for r in (hinge.p0, hinge.p1, hinge.p2)]
        try:
            pt, l2t = calc_hinge_params(*ps)
        except InfeasibleConfiguration as e:
            logger.debug(f"Cannot move '{ref}': {e}")
            return False
        updates[hinge.pt] = pt
        updates[hinge.l2t] = l2t

    if not updates:
        raise UnknownPointReference(f"Unknown point moved: '{ref}'")
    return _try_params(linkage, theta, updates)


def set_link_length(
    linkage: Linkage,
    theta: float,
    p0_ref: str,
    p1_ref: str,
    length: float,
    points: dict | None = None,
) -> bool:
    """
    Set the length of the bar between two points (order does not matter).

    Bars are rotary p0-p1, slider p0-p2, and hinge p0-p2 / p1-p2.

    Raises:
        UnknownPointReference: if no joint owns a bar between the points
    """
    pair = {p0_ref, p1_ref}
    for link in linkage.links:
        if isinstance(link, RotaryJoint) and pair == {link.p0, link.p1}:
            return _try_params(linkage, theta, {link.len: float(length)})

        if isinstance(link, SliderJoint) and pair == {link.p0, link.p2}:
            return _try_params(linkage, theta, {link.len: float(length)})

        if isinstance(link, HingeJoint) and pair in ({link.p0, link.p2}, {link.p1, link.p2}):
            points = _current_points(linkage, theta, points)
            side = {'l0': length} if pair == {link.p0, link.p2} else {'l1': length}
            try:
                pt, l2t = update_hinge_params_with_lengths(
                    _lookup(points, link.p0),
                    _lookup(points, link.p1),
                    linkage.params[link.pt],
                    float(linkage.params[link.l2t]),
                    **side,
                )
            except InfeasibleConfiguration as e:
                logger.debug(f'Rejected length {length} for {sorted(pair)}: {e}')
                return False
            return _try_params(linkage, theta, {link.pt: pt, link.l2t: l2t})

    raise UnknownPointReference(f"No link between '{p0_ref}' and '{p1_ref}'")


def set_ground_point(
    linkage: Linkage,
    theta: float,
    ref: str,
    x: float | None = None,
    y: float | None = None,
) -> bool:
    """Set one or both coordinates of a ground point."""
    if not linkage.is_ground(ref):
        raise UnknownPointReference(f"'{ref}' is not a ground point")
    old = linkage.params[ref]
    new = Point(
        x=old.x if x is None else x,
        y=old.y if y is None else y,
    )
    return _try_params(linkage, theta, {ref: new})


def translate_ground(linkage: Linkage, dx: float, dy: float) -> None:
    """Shift every ground point; the whole mechanism moves rigidly with them."""
    for ref in linkage.ground_point_refs():
        p = linkage.params[ref]
        linkage.params[ref] = Point(x=p.x + dx, y=p.y + dy)
