from __future__ import annotations

import json
import logging
import math
import time
import traceback
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from configs.appconfig import TRACE_STEPS
from configs.appconfig import USER_DIR
from configs.link_models import Linkage
from linkage_tools.editing import move_point
from linkage_tools.editing import set_link_length
from linkage_tools.exceptions import LinkageError
from linkage_tools.kinematic import evaluate
from linkage_tools.kinematic import sample_cycle
from linkage_tools.mechanism import compile_linkage
from plates.partition import build_plates
from plates.planes import compute_planes

logger = logging.getLogger(__name__)


def sanitize_for_json(obj):
    """
    Recursively sanitize an object for JSON serialization.

    Converts inf/-inf to string "Infinity"/"-Infinity" and nan to null.
    Tuples become lists.
    """
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_for_json(item) for item in obj]
    elif isinstance(obj, bool) or isinstance(obj, int):
        return obj
    elif isinstance(obj, float):
        if math.isinf(obj):
            return 'Infinity' if obj > 0 else '-Infinity'
        elif math.isnan(obj):
            return None
        return obj
    elif hasattr(obj, '__float__'):  # numpy types
        val = float(obj)
        if math.isinf(val):
            return 'Infinity' if val > 0 else '-Infinity'
        elif math.isnan(val):
            return None
        return val
    return obj


def _linkage_from_request(request: dict) -> Linkage:
    """The linkage document is either the request itself or request['linkage']."""
    data = request.get('linkage', request)
    return Linkage.model_validate({k: data[k] for k in ('n', 'params', 'links') if k in data})


def _error(message: str, **extra) -> dict:
    return {'status': 'error', 'message': message, **extra}


app = FastAPI(title='Plate Linkage API')

# Simple CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.get('/')
def root():
    return {'message': 'Plate Linkage API is running'}


@app.get('/status')
def get_status():
    return {
        'status': 'operational',
        'message': 'Plate linkage backend is running successfully',
    }


# =============================================================================
# Kinematics
# =============================================================================

@app.post('/evaluate')
def evaluate_endpoint(request: dict):
    """
    Positions of every point at one drive angle.

    Request body:
        {"linkage": {"n": ..., "params": {...}, "links": [...]}, "theta": 0.0}

    Returns:
        {"status": "success", "points": {"p0": [x, y], ...}}
    """
    try:
        linkage = _linkage_from_request(request)
        theta = float(request.get('theta', 0.0))
        points = evaluate(linkage, theta)
        return {
            'status': 'success',
            'theta': theta,
            'points': sanitize_for_json(points),
        }
    except (ValidationError, LinkageError) as e:
        return _error(str(e))


@app.post('/traces')
def traces_endpoint(request: dict):
    """
    Motion traces of every moving point over one revolution.

    Request body:
        {"linkage": {...}, "n_steps": 100}

    Returns:
        {"status": "success", "traces": {"p1": [[[x, y], ...], ...]}, ...}
    """
    try:
        start_time = time.perf_counter()
        linkage = _linkage_from_request(request)
        n_steps = int(request.get('n_steps') or TRACE_STEPS)
        result = sample_cycle(linkage, n_steps)
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        return {
            'status': 'success',
            **sanitize_for_json(result.to_dict()),
            'execution_time_ms': execution_time_ms,
        }
    except (ValidationError, LinkageError, ValueError) as e:
        return _error(str(e))


# =============================================================================
# Plates and planes
# =============================================================================

@app.post('/plates')
def plates_endpoint(request: dict):
    """Rigid plates of the linkage, by point name."""
    try:
        linkage = _linkage_from_request(request)
        mechanism = compile_linkage(linkage)
        plates = build_plates(linkage, mechanism)
        return {
            'status': 'success',
            'plates': [plate.to_dict(mechanism.point_names) for plate in plates],
        }
    except (ValidationError, LinkageError) as e:
        return _error(str(e))


@app.post('/planes')
def planes_endpoint(request: dict):
    """
    Plates layered on the fewest fabrication planes.

    Request body:
        {"linkage": {...}, "n_steps": 100, "margin": 0.15}
    """
    try:
        start_time = time.perf_counter()
        linkage = _linkage_from_request(request)
        kwargs = {}
        if request.get('n_steps'):
            kwargs['n_steps'] = int(request['n_steps'])
        if request.get('margin') is not None:
            kwargs['margin'] = float(request['margin'])
        layout = compute_planes(linkage, **kwargs)
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        return {
            'status': 'success',
            **sanitize_for_json(layout.to_dict()),
            'execution_time_ms': execution_time_ms,
        }
    except (ValidationError, LinkageError) as e:
        return _error(str(e))
    except Exception as e:
        logger.exception('Plane layering failed')
        return _error(
            f'Failed to compute planes: {str(e)}',
            traceback=traceback.format_exc().split('\n'),
        )


# =============================================================================
# Editing
# =============================================================================

@app.post('/edit/move-point')
def move_point_endpoint(request: dict):
    """
    Drag a point and return the updated linkage.

    Request body:
        {"linkage": {...}, "theta": 0.0, "point": "p1", "x": 1.0, "y": 2.0}
    """
    try:
        linkage = _linkage_from_request(request)
        theta = float(request.get('theta', 0.0))
        ok = move_point(linkage, theta, request['point'], (float(request['x']), float(request['y'])))
        return {
            'status': 'success',
            'applied': ok,
            'linkage': linkage.model_dump(),
        }
    except KeyError as e:
        return _error(f'Unknown point or missing field: {str(e)}')
    except (ValidationError, LinkageError) as e:
        return _error(str(e))


@app.post('/edit/set-length')
def set_length_endpoint(request: dict):
    """
    Set the length of the bar between two points.

    Request body:
        {"linkage": {...}, "theta": 0.0, "p0": "p1", "p1": "p4", "length": 2.5}
    """
    try:
        linkage = _linkage_from_request(request)
        theta = float(request.get('theta', 0.0))
        ok = set_link_length(linkage, theta, request['p0'], request['p1'], float(request['length']))
        return {
            'status': 'success',
            'applied': ok,
            'linkage': linkage.model_dump(),
        }
    except KeyError as e:
        return _error(f'Unknown link or missing field: {str(e)}')
    except (ValidationError, LinkageError) as e:
        return _error(str(e))


# =============================================================================
# Persistence
# =============================================================================

@app.post('/save-linkage')
def save_linkage(request: dict):
    """Save a linkage document to the linkages directory"""
    try:
        linkage = _linkage_from_request(request)

        # Ensure USER_DIR exists first
        USER_DIR.mkdir(parents=True, exist_ok=True)
        linkages_dir = USER_DIR / 'linkages'
        linkages_dir.mkdir(parents=True, exist_ok=True)

        # Use provided name or generate timestamp
        name = Path(str(request.get('name') or 'linkage')).name or 'linkage'
        time_mark = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'{name}_{time_mark}.json'
        save_path = linkages_dir / filename

        save_data = {
            'name': name,
            'saved_at': time_mark,
            'linkage': linkage.model_dump(),
        }

        with open(save_path, 'w') as f:
            json.dump(save_data, f, indent=2)

        logger.info(f'Linkage saved to: {save_path}')

        return {
            'status': 'success',
            'message': 'Linkage saved successfully',
            'filename': filename,
            'path': str(save_path),
        }

    except (ValidationError, LinkageError) as e:
        return _error(f'Invalid linkage: {str(e)}')
    except OSError as e:
        return _error(f'Failed to save linkage: {str(e)}')


@app.get('/list-linkages')
def list_linkages():
    """List all saved linkages"""
    try:
        # Ensure USER_DIR exists first
        USER_DIR.mkdir(parents=True, exist_ok=True)
        linkages_dir = USER_DIR / 'linkages'

        if not linkages_dir.exists():
            return {
                'status': 'success',
                'files': [],
            }

        files = []
        for f in sorted(linkages_dir.glob('*.json'), key=lambda x: x.stat().st_mtime, reverse=True):
            try:
                with open(f) as fp:
                    data = json.load(fp)
                files.append({
                    'filename': f.name,
                    'name': data.get('name', f.stem),
                    'links_count': len(data.get('linkage', {}).get('links', [])),
                    'saved_at': data.get('saved_at', ''),
                })
            except (OSError, json.JSONDecodeError):
                files.append({
                    'filename': f.name,
                    'name': f.stem,
                    'error': True,
                })

        return {
            'status': 'success',
            'files': files,
        }

    except OSError as e:
        return _error(f'Failed to list linkages: {str(e)}')


@app.get('/load-linkage')
def load_linkage(filename: str = None):
    """Load a linkage from the linkages directory (most recent if no filename)"""
    try:
        # Ensure USER_DIR exists first
        USER_DIR.mkdir(parents=True, exist_ok=True)
        linkages_dir = USER_DIR / 'linkages'

        if not linkages_dir.exists():
            return _error('No linkages directory found')

        if filename:
            file_path = (linkages_dir / filename).resolve()
            if file_path.parent != linkages_dir.resolve():
                return _error(f'Invalid filename: {filename}')
            if not file_path.exists():
                return _error(f'File not found: {filename}')
        else:
            files = list(linkages_dir.glob('*.json'))
            if not files:
                return _error('No linkages found')
            file_path = max(files, key=lambda f: f.stat().st_mtime)

        with open(file_path) as f:
            data = json.load(f)

        # validate before handing it back
        linkage = Linkage.model_validate(data['linkage'])

        logger.info(f'Loaded linkage from: {file_path.name}')

        return {
            'status': 'success',
            'filename': file_path.name,
            'name': data.get('name', file_path.stem),
            'linkage': linkage.model_dump(),
        }

    except (ValidationError, LinkageError, KeyError) as e:
        return _error(f'Invalid linkage file: {str(e)}')
    except (OSError, json.JSONDecodeError) as e:
        return _error(f'Failed to load linkage: {str(e)}')
