"""
Test FastAPI endpoints in backend/query_api.py

Handlers are plain functions and are called directly:
- Health check
- Evaluate / traces / plates / planes
- Edits
- Linkage save/load
"""
import json

import pytest

import backend.query_api as query_api
from backend.query_api import (
    evaluate_endpoint,
    get_status,
    list_linkages,
    load_linkage,
    move_point_endpoint,
    planes_endpoint,
    plates_endpoint,
    sanitize_for_json,
    save_linkage,
    set_length_endpoint,
    traces_endpoint,
)


@pytest.fixture
def request_data(linkage_json_path):
    with open(linkage_json_path, 'r') as f:
        return json.load(f)


@pytest.fixture
def user_dir(tmp_path, monkeypatch):
    """Keep saved linkages out of the real user directory"""
    monkeypatch.setattr(query_api, 'USER_DIR', tmp_path)
    return tmp_path


def test_status_endpoint():
    """Test /status endpoint returns operational status"""
    result = get_status()
    assert result['status'] == 'operational', f"Status check failed: {result}"
    assert 'message' in result, "Missing message in status response"


def test_evaluate(request_data):
    result = evaluate_endpoint({**request_data, 'theta': 0.0})
    assert result['status'] == 'success', result.get('message')
    assert result['points']['p1'] == pytest.approx([1.0, 0.0])
    assert result['points']['p6'] == pytest.approx([3.25, 1.984313483298443])


def test_evaluate_infeasible(request_data):
    request_data['linkage']['params']['p3'] = {'x': 10.0, 'y': 0.0}
    result = evaluate_endpoint(request_data)
    assert result['status'] == 'error'
    assert 'triangle' in result['message']


def test_evaluate_malformed():
    result = evaluate_endpoint({'linkage': {'params': {}, 'links': [
        {'type': 'rotary', 'p0': 'p0', 'p1': 'p1', 'len': 'len2', 'theta': 'theta3'},
    ]}})
    assert result['status'] == 'error'


def test_traces(request_data):
    result = traces_endpoint({**request_data, 'n_steps': 24})
    assert result['status'] == 'success', result.get('message')
    assert result['n_samples'] == 25
    assert result['n_runs'] == 1
    assert len(result['traces']['p6'][0]) == 25


def test_plates(request_data):
    result = plates_endpoint(request_data)
    assert result['status'] == 'success'
    assert [p['points'] for p in result['plates']] == [
        ['p0', 'p3'], ['p0', 'p1'], ['p1', 'p6'], ['p6', 'p3'],
    ]


def test_planes(request_data):
    result = planes_endpoint(request_data)
    assert result['status'] == 'success', result.get('message')
    assert result['score'] == 3
    assert result['planes'] == [[0], [1, 3], [2]]
    json.dumps(result)


def test_move_point(request_data):
    result = move_point_endpoint({**request_data, 'point': 'p1', 'x': 0.0, 'y': 1.5})
    assert result['status'] == 'success'
    assert result['applied'] is True
    assert result['linkage']['params']['len1'] == pytest.approx(1.5)


def test_move_point_rejected(request_data):
    result = move_point_endpoint({**request_data, 'point': 'p3', 'x': 10.0, 'y': 0.0})
    assert result['status'] == 'success'
    assert result['applied'] is False
    assert result['linkage']['params']['p3'] == {'x': 3.0, 'y': 0.0}


def test_move_unknown_point(request_data):
    result = move_point_endpoint({**request_data, 'point': 'nope', 'x': 0.0, 'y': 0.0})
    assert result['status'] == 'error'


def test_set_length(request_data):
    result = set_length_endpoint({**request_data, 'p0': 'p0', 'p1': 'p1', 'length': 1.25})
    assert result['status'] == 'success'
    assert result['applied'] is True
    assert result['linkage']['params']['len1'] == 1.25


def test_set_length_unknown_link(request_data):
    result = set_length_endpoint({**request_data, 'p0': 'p0', 'p1': 'p3', 'length': 1.0})
    assert result['status'] == 'error'


def test_save_and_load_linkage(user_dir, request_data):
    """Test saving and loading a linkage"""
    save_result = save_linkage(request_data)
    assert save_result['status'] == 'success', f"Save failed: {save_result.get('message')}"
    filename = save_result['filename']
    assert (user_dir / 'linkages' / filename).exists()

    load_result = load_linkage(filename=filename)
    assert load_result['status'] == 'success', f"Load failed: {load_result.get('message')}"
    assert load_result['name'] == 'crank_rocker'
    assert load_result['linkage'] == request_data['linkage']

    latest = load_linkage()
    assert latest['filename'] == filename


def test_list_linkages(user_dir, request_data):
    assert list_linkages() == {'status': 'success', 'files': []}
    save_linkage(request_data)
    result = list_linkages()
    assert result['status'] == 'success'
    assert len(result['files']) == 1
    assert result['files'][0]['links_count'] == 2


def test_load_missing_file(user_dir):
    assert load_linkage(filename='nope.json')['status'] == 'error'


def test_save_invalid_linkage(user_dir):
    result = save_linkage({'linkage': {'links': [{'type': 'bogus'}]}})
    assert result['status'] == 'error'
    assert not (user_dir / 'linkages').exists()


def test_sanitize_for_json():
    assert sanitize_for_json({'a': (1.0, float('nan')), 'b': [float('inf')]}) == {
        'a': [1.0, None],
        'b': ['Infinity'],
    }


def test_save_name_stays_in_linkages_dir(user_dir, request_data):
    """Directory parts of the name are dropped"""
    result = save_linkage({**request_data, 'name': '../../escaped'})
    assert result['status'] == 'success'
    assert result['filename'].startswith('escaped_')
    assert (user_dir / 'linkages' / result['filename']).exists()
    assert not list(user_dir.parent.glob('escaped_*.json'))


def test_load_rejects_paths_outside_linkages_dir(user_dir, request_data):
    save_linkage(request_data)
    outside = user_dir / 'outside.json'
    outside.write_text(json.dumps(request_data))
    result = load_linkage(filename='../outside.json')
    assert result['status'] == 'error'
    assert 'Invalid filename' in result['message']
