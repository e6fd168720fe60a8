from unittest.mock import MagicMock, patch

import pytest

from conftest import LA, SF, FakeMapsService, make_venue
from midway.app import build_maps_service, create_app
from midway.config import Settings
from midway.errors import TransportError


VENUE_1 = make_venue('venue1', rating=4.5, lat=35.90, photo_ref='ph1')
VENUE_2 = make_venue('venue2', rating=4.2, lat=35.95)

COORD_ORIGINS = [SF.to_dict(), LA.to_dict()]


@pytest.fixture
def maps_service(half_way_route):
    return FakeMapsService(
        route=half_way_route,
        venues={'restaurant': [VENUE_1, VENUE_2], 'cafe': []},
        minutes={VENUE_1.coordinate: [10, 12], VENUE_2.coordinate: [30, 5]},
        geocodes={'1 market st, san francisco': SF, '200 spring st, los angeles': LA},
    )


@pytest.fixture
def client(maps_service, quiet_settings):
    app = create_app(maps_service=maps_service, config=quiet_settings)
    app.config['TESTING'] = True
    return app.test_client()


def test_health_check(client):
    response = client.get('/')
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'healthy'
    assert body['maps_configured'] is True
    assert 'X-Process-Time-ms' in response.headers


def test_health_check_without_api_key(quiet_settings):
    client = create_app(config=quiet_settings).test_client()
    assert client.get('/').get_json()['maps_configured'] is False
    response = client.post('/api/find-meeting-venues', json={'origins': COORD_ORIGINS})
    assert response.status_code == 500
    assert response.get_json()['success'] is False


def test_config_endpoint(client):
    data = client.get('/api/config').get_json()['data']
    assert data['mapsConfigured'] is True
    assert data['travelModes'] == ['driving', 'walking', 'bicycling', 'transit']
    assert 'restaurant' in data['categories']
    assert data['defaultMaxResults'] == 20
    assert data['defaultSearchRadius'] == 1500


def test_geocode(client):
    response = client.post('/api/geocode', json={'address': '1 market st, san francisco'})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['formatted_address'] == '1 Market St, San Francisco'
    assert data['lat'] == SF.latitude
    assert 'coordinate' not in data


@pytest.mark.parametrize("body", [{}, {'address': ''}, {'address': 42}])
def test_geocode_requires_address(client, body):
    assert client.post('/api/geocode', json=body).status_code == 400


def test_geocode_unknown_address(client):
    assert client.post('/api/geocode', json={'address': 'atlantis'}).status_code == 404


def test_geocode_provider_failure(client, maps_service):
    maps_service.geocode_address = MagicMock(side_effect=TransportError('down'))
    assert client.post('/api/geocode', json={'address': 'x'}).status_code == 502


def test_find_with_coordinates(client):
    response = client.post('/api/find-meeting-venues', json={
        'origins': COORD_ORIGINS,
        'mode': 'driving',
        'categories': ['restaurant'],
        'max_results': 20,
    })

    assert response.status_code == 200
    assert 'X-Compute-Time-ms' in response.headers
    body = response.get_json()
    assert body['success'] is True
    data = body['data']
    assert data['tier_used'] == 'optimized'
    assert data['midpoint_strategy'] == 'road'
    assert [v['id'] for v in data['venues']] == ['venue1', 'venue2']
    assert data['venues'][0]['composite_score'] == 93.8
    assert data['venues'][0]['photo_url'] == 'https://photos.test/ph1'
    assert data['origin_labels'] == [None, None]


def test_find_with_addresses(client):
    response = client.post('/api/find-meeting-venues', json={
        'origins': ['1 market st, san francisco', {'address': '200 spring st, los angeles'}],
    })
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['origin_labels'] == ['1 Market St, San Francisco', '200 Spring St, Los Angeles']
    assert data['origins'] == COORD_ORIGINS


def test_find_keeps_labels_given_with_coordinates(client):
    response = client.post('/api/find-meeting-venues', json={
        'origins': [dict(SF.to_dict(), label='Home'), '200 spring st, los angeles'],
    })
    assert response.status_code == 200
    assert response.get_json()['data']['origin_labels'] == ['Home', '200 Spring St, Los Angeles']


def test_find_accepts_address_pair(client):
    response = client.post('/api/find-meeting-venues', json={
        'address1': '1 market st, san francisco',
        'address2': '200 spring st, los angeles',
    })
    assert response.status_code == 200


def test_find_unknown_address_is_404(client):
    response = client.post('/api/find-meeting-venues', json={'origins': ['atlantis', LA.to_dict()]})
    assert response.status_code == 404
    assert 'atlantis' in response.get_json()['error']


@pytest.mark.parametrize("body", [
    None,
    {'origins': [SF.to_dict()]},
    {'origins': COORD_ORIGINS, 'mode': 'teleport'},
    {'origins': COORD_ORIGINS, 'categories': []},
    {'origins': COORD_ORIGINS, 'categories': 5},
    {'origins': COORD_ORIGINS, 'categories': ['cafe', 3]},
    {'origins': {'a': SF.to_dict(), 'b': LA.to_dict()}},
    {'origins': COORD_ORIGINS, 'max_results': 0},
    {'origins': COORD_ORIGINS, 'max_results': 500},
    {'origins': COORD_ORIGINS, 'search_radius': 10},
    {'origins': [{'lat': 100, 'lng': 0}, LA.to_dict()]},
    {'origins': ['', LA.to_dict()]},
])
def test_find_rejects_invalid_input(client, maps_service, body):
    response = client.post('/api/find-meeting-venues', json=body)
    assert response.status_code == 400
    assert response.get_json()['success'] is False
    assert maps_service.discovery.calls == []


def test_find_with_no_venues_is_empty_result(client):
    response = client.post('/api/find-meeting-venues', json={'origins': COORD_ORIGINS, 'categories': ['cafe']})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['tier_used'] == 'arithmetic_only'
    assert data['no_results'] is True
    assert data['midpoint'] is not None


def test_find_provider_unreachable_is_502(quiet_settings):
    service = FakeMapsService(route_error=TransportError('offline'),
                              venues={'restaurant': TransportError('offline')})
    client = create_app(maps_service=service, config=quiet_settings).test_client()
    response = client.post('/api/find-meeting-venues', json={'origins': COORD_ORIGINS})
    assert response.status_code == 502


def test_unknown_endpoint(client):
    response = client.get('/api/nope')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Endpoint not found'


def test_built_service_is_cleaned_up_at_exit():
    config = Settings(environ={'GOOGLE_MAPS_API_KEY': 'AIzaTest', 'LOG_FILE': ''})
    with patch('midway.app.GoogleMapsService') as service_cls, \
            patch('midway.app.atexit.register') as register:
        service = build_maps_service(config)

    assert service is service_cls.return_value
    register.assert_called_once_with(service.cleanup)


def test_no_service_without_api_key(quiet_settings):
    with patch('midway.app.atexit.register') as register:
        assert build_maps_service(quiet_settings) is None
    register.assert_not_called()
