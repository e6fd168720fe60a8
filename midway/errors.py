"""Error types shared by the core and the maps service implementations.

Upstream failures are translated into these classes once, at the service
boundary. Nothing past that boundary looks at raw status strings.
"""


class MidwayError(Exception):
    """Base class for every error raised by midway"""


class InvalidInputError(MidwayError, ValueError):
    """Caller supplied malformed arguments (empty origins, bad coordinates...)"""


class NoVenuesFoundError(MidwayError):
    """Discovery ran but produced no candidate venues"""


class MapsServiceError(MidwayError):
    """Base class for failures reported by a mapping provider"""

    def __init__(self, message: str = "", status: str = None):
        super().__init__(message or status or self.__class__.__name__)
        self.status = status


class RouteNotFoundError(MapsServiceError):
    """The provider returned no route between two coordinates"""


class QuotaExceededError(MapsServiceError):
    """Request quota exhausted on the provider side"""


class InvalidRequestError(MapsServiceError):
    """The provider rejected the request parameters"""


class RequestDeniedError(MapsServiceError):
    """The provider refused the request (key invalid or restricted)"""


class TransportError(MapsServiceError):
    """Network failure, timeout or unparseable response"""


def is_transport_failure(error: BaseException) -> bool:
    return isinstance(error, TransportError)
