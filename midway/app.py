import asyncio
import atexit
import json
import logging
from time import perf_counter
from typing import List, Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS

from .aio import run_sync
from .assembler import assemble_result
from .cache import ResponseCache
from .config import Settings, settings as default_settings
from .errors import InvalidInputError, MapsServiceError
from .fallback import FallbackOrchestrator
from .maps_service import GoogleMapsService
from .models import Coordinate, Origin, TravelMode

logger = logging.getLogger(__name__)

SUPPORTED_CATEGORIES = [
    'restaurant', 'cafe', 'bar', 'bakery', 'shopping_mall', 'department_store',
    'supermarket', 'book_store', 'library', 'park', 'tourist_attraction', 'gym',
]
DEFAULT_CATEGORIES = ['restaurant']
MIN_SEARCH_RADIUS = 100
MAX_SEARCH_RADIUS = 50000


def configure_logging(config: Settings) -> None:
    handlers = [logging.StreamHandler()]
    if config.LOG_FILE:
        handlers.append(logging.FileHandler(config.LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def build_maps_service(config: Settings):
    if not config.maps_configured:
        logger.warning("GOOGLE_MAPS_API_KEY not found or not configured in environment variables")
        return None
    try:
        logger.info("Initializing Google Maps service...")
        cache = ResponseCache() if config.RESPONSE_CACHE_ENABLED else None
        service = GoogleMapsService(
            config.GOOGLE_MAPS_API_KEY,
            timeout=config.MAPS_TIMEOUT_S,
            max_workers=config.MAPS_MAX_WORKERS,
            cache=cache,
        )
        atexit.register(service.cleanup)
        logger.info("Google Maps service initialized successfully")
        return service
    except ValueError as e:
        logger.error(f"Error initializing Google Maps service: {e}")
        return None


def _error(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


async def _resolve_origins(maps_service, raw_origins) -> List[Origin]:
    """Coordinates pass through; address strings are geocoded concurrently"""
    origins: List[Optional[Origin]] = [None] * len(raw_origins)
    pending = []
    for i, item in enumerate(raw_origins):
        if isinstance(item, dict) and ('lat' in item or 'latitude' in item):
            origins[i] = Origin(Coordinate.from_dict(item), label=item.get('label') or "")
        else:
            address = item.get('address') if isinstance(item, dict) else item
            if not isinstance(address, str) or not address.strip():
                raise InvalidInputError(f"Origin {i} must be coordinates or a non-empty address")
            pending.append((i, address.strip()))

    if pending:
        results = await asyncio.gather(*(maps_service.geocode_address_async(a) for _, a in pending))
        for (i, address), geocoded in zip(pending, results):
            if not geocoded:
                raise LookupError(f"Could not geocode address: {address}")
            origins[i] = Origin(geocoded['coordinate'], label=address,
                                formatted_address=geocoded.get('formatted_address', address))
    return origins


def create_app(maps_service=None, config: Settings = None) -> Flask:
    config = config or default_settings
    configure_logging(config)
    if maps_service is None:
        maps_service = build_maps_service(config)

    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes
    app.config['MIDWAY_SETTINGS'] = config

    # Per-request timing: record start time and log duration on completion
    @app.before_request
    def _start_timer():
        g._start_time = perf_counter()

    @app.after_request
    def _log_request_duration(response):
        start = getattr(g, '_start_time', None)
        if start is not None:
            duration_ms = (perf_counter() - start) * 1000.0
            response.headers['X-Process-Time-ms'] = f"{duration_ms:.1f}"
            logger.info(
                "request completed: method=%s path=%s status=%s duration_ms=%.1f remote_addr=%s",
                request.method,
                request.full_path if request.query_string else request.path,
                response.status_code,
                duration_ms,
                request.remote_addr,
            )
        return response

    @app.route('/', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        return jsonify({
            'message': 'Midway API is running!',
            'endpoints': {
                'find_meeting_venues': '/api/find-meeting-venues',
                'geocode': '/api/geocode',
                'config': '/api/config',
                'health': '/'
            },
            'maps_configured': maps_service is not None,
            'status': 'healthy'
        })

    @app.route('/api/geocode', methods=['POST'])
    def geocode_address():
        """
        Geocode a single address
        Expected JSON: {"address": "123 Main St, City, State"}
        """
        if not maps_service:
            logger.error("Google Maps API key not configured - cannot geocode")
            return _error('Google Maps API key not configured', 500)

        data = request.get_json(silent=True)
        if not data or not isinstance(data.get('address'), str) or not data['address'].strip():
            return _error('Address is required', 400)

        address = data['address'].strip()
        try:
            result = maps_service.geocode_address(address)
        except MapsServiceError as e:
            logger.warning(f"Geocoding '{address}' failed: {e}")
            return _error(f'Geocoding service error: {e}', 502)

        if not result:
            logger.warning(f"Failed to geocode address: '{address}'")
            return _error('Could not geocode the provided address', 404)
        return jsonify({
            'success': True,
            'data': {k: v for k, v in result.items() if k != 'coordinate'}
        })

    @app.route('/api/find-meeting-venues', methods=['POST'])
    def find_meeting_venues():
        """
        Find ranked meeting venues for two or more people
        Expected JSON: {
            "origins": [{"lat": 37.77, "lng": -122.41}, "456 Oak Ave, City, State"],
            "mode": "driving",                 // optional
            "categories": ["restaurant"],      // optional
            "max_results": 20,                 // optional
            "search_radius": 1500              // optional, meters
        }
        """
        logger.info("=== FIND MEETING VENUES REQUEST ===")
        if not maps_service:
            logger.error("Google Maps API key not configured - cannot process request")
            return _error('Google Maps API key not configured', 500)

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error('JSON data is required', 400)
        logger.debug(f"Request data received: {json.dumps(data)}")

        raw_origins = data.get('origins')
        if raw_origins is None and data.get('address1') and data.get('address2'):
            raw_origins = [data['address1'], data['address2']]
        if not isinstance(raw_origins, list) or len(raw_origins) < 2:
            return _error('At least two origins are required', 400)

        categories = data.get('categories', DEFAULT_CATEGORIES)
        max_results = data.get('max_results', config.DEFAULT_MAX_RESULTS)
        search_radius = data.get('search_radius', config.SEARCH_RADIUS_M)
        if isinstance(max_results, int) and max_results > config.MAX_RESULTS_LIMIT:
            return _error(f'max_results must be at most {config.MAX_RESULTS_LIMIT}', 400)
        if (isinstance(search_radius, bool) or not isinstance(search_radius, int)
                or not MIN_SEARCH_RADIUS <= search_radius <= MAX_SEARCH_RADIUS):
            return _error(f'search_radius must be between {MIN_SEARCH_RADIUS} and {MAX_SEARCH_RADIUS} meters', 400)

        try:
            mode = TravelMode.parse(data.get('mode', TravelMode.DRIVING.value))
            origins = run_sync(_resolve_origins(maps_service, raw_origins))
            orchestrator = FallbackOrchestrator(
                maps_service, maps_service, maps_service,
                search_radius=search_radius,
                batch_size=config.MATRIX_BATCH_SIZE,
            )
            _algo_start = perf_counter()
            result = orchestrator.find(origins, mode, categories, max_results)
            _compute_ms = (perf_counter() - _algo_start) * 1000.0
        except InvalidInputError as e:
            logger.warning(f"Invalid request: {e}")
            return _error(str(e), 400)
        except LookupError as e:
            return _error(str(e), 404)
        except MapsServiceError as e:
            logger.error(f"Maps provider failure: {e}")
            return _error(f'Maps service unavailable: {e}', 502)

        logger.info("Meeting search took %.1f ms (tier=%s, venues=%d)",
                    _compute_ms, result.tier_used.value, len(result.ranked_venues))

        payload = assemble_result(result, photo_url_builder=getattr(maps_service, 'photo_url', None))
        payload['origin_labels'] = [o.formatted_address or o.label or None for o in origins]
        response = jsonify({'success': True, 'data': payload})
        response.headers['X-Compute-Time-ms'] = f"{_compute_ms:.1f}"
        return response

    @app.route('/api/config', methods=['GET'])
    def get_config():
        """
        Get frontend configuration
        """
        return jsonify({
            'success': True,
            'data': {
                'mapsConfigured': maps_service is not None,
                'apiBaseUrl': request.host_url.rstrip('/'),
                'travelModes': [m.value for m in TravelMode],
                'categories': SUPPORTED_CATEGORIES,
                'defaultMaxResults': config.DEFAULT_MAX_RESULTS,
                'defaultSearchRadius': config.SEARCH_RADIUS_M,
            }
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500

    return app
