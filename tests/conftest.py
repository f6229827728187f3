"""
Shared linkage fixtures.

crank_rocker: ground a=(0,0) 'p0' and d=(3,0) 'p3', crank a->b 'p1' of
length 1, coupler b->c 'p6' of length 3, rocker d->c of length 2. Fully
rotatable.

lockup_rocker: same ground and crank, coupler 2.5, rocker 1. Cannot be
assembled where cos(theta) < -0.375.

crank_slider: crank a->b 'p1' of length 1 about a=(0,0), track of length 5
from b through the ground guide (3,0) 'p3' to 'p5'. The track sweeps over a
at theta = pi.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from configs.link_models import Linkage, Point
from linkage_tools.kinematic import calc_hinge_params


def make_crank_rocker(coupler_end, ground_d=(3.0, 0.0)) -> Linkage:
    """Crank-rocker whose coupler/rocker point sits at coupler_end when theta = 0."""
    pt, l2t = calc_hinge_params((1.0, 0.0), ground_d, coupler_end)
    return Linkage.model_validate({
        'n': 7,
        'params': {
            'p0': {'x': 0.0, 'y': 0.0},
            'len1': 1.0,
            'theta2': 0.0,
            'p3': {'x': ground_d[0], 'y': ground_d[1]},
            'pt4': pt.model_dump(),
            'l2t5': l2t,
        },
        'links': [
            {'type': 'rotary', 'p0': 'p0', 'p1': 'p1', 'len': 'len1', 'theta': 'theta2'},
            {'type': 'hinge', 'p0': 'p1', 'p1': 'p3', 'pt': 'pt4', 'l2t': 'l2t5', 'p2': 'p6'},
        ],
    })


@pytest.fixture
def crank_rocker() -> Linkage:
    return make_crank_rocker((3.25, 3.9375 ** 0.5))


@pytest.fixture
def lockup_rocker() -> Linkage:
    return make_crank_rocker((3.3125, 0.90234375 ** 0.5))


@pytest.fixture
def slider_linkage() -> Linkage:
    """Slider from ground (0,0) through ground guide (1,0), tip at distance 2."""
    return Linkage(
        n=4,
        params={'p0': Point(x=0.0, y=0.0), 'p1': Point(x=1.0, y=0.0), 'len2': 2.0},
        links=[{'type': 'slider', 'p0': 'p0', 'p1': 'p1', 'len': 'len2', 'p2': 'p3'}],
    )


@pytest.fixture
def crank_slider() -> Linkage:
    return Linkage.model_validate({
        'n': 6,
        'params': {
            'p0': {'x': 0.0, 'y': 0.0},
            'len1': 1.0,
            'theta2': 0.0,
            'p3': {'x': 3.0, 'y': 0.0},
            'len4': 5.0,
        },
        'links': [
            {'type': 'rotary', 'p0': 'p0', 'p1': 'p1', 'len': 'len1', 'theta': 'theta2'},
            {'type': 'slider', 'p0': 'p1', 'p1': 'p3', 'len': 'len4', 'p2': 'p5'},
        ],
    })


@pytest.fixture
def linkage_json_path() -> Path:
    """Path to the crank-rocker document used by the API tests."""
    return Path(__file__).parent / '4bar_linkage.json'
