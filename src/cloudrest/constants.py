from enum import Enum


class RetryEnv:
    """Environment variable suffixes used to configure the retry core.

    Each name is prefixed (``CLOUDREST`` by default), e.g.
    ``CLOUDREST_MAX_RETRIES``.
    """

    MAX_RETRIES = "MAX_RETRIES"
    MAX_REDIRECTS = "MAX_REDIRECTS"
    BACKOFF_INITIAL_PERIOD = "BACKOFF_INITIAL_PERIOD"
    BACKOFF_MAX_PERIOD = "BACKOFF_MAX_PERIOD"
    BACKOFF_GROWTH_FACTOR = "BACKOFF_GROWTH_FACTOR"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    RESPECT_RETRY_AFTER = "RESPECT_RETRY_AFTER"
    TRANSIENT_CODES = "TRANSIENT_CODES"
    RETRY_RATE_LIMITS = "RETRY_RATE_LIMITS"


class RetryDefaults:
    ENV_PREFIX = "CLOUDREST"
    MAX_RETRIES = 5
    MAX_REDIRECTS = 5
    BACKOFF_INITIAL_PERIOD = 0.05
    BACKOFF_MAX_PERIOD = 5.0
    BACKOFF_GROWTH_FACTOR = 1.5
    REQUEST_TIMEOUT = 60.0
    RESPECT_RETRY_AFTER = True
    RETRY_RATE_LIMITS = False


class RequestHeader:
    HOST = "Host"
    LOCATION = "Location"
    AUTHORIZATION = "Authorization"
    RETRY_AFTER = "Retry-After"
    CONTENT_TYPE = "Content-Type"
    CONTENT_LENGTH = "Content-Length"
    CONTENT_MD5 = "Content-MD5"


class HTTPMethod(Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class HttpStatus:
    OK_RANGE = range(200, 300)
    REDIRECTS = frozenset({301, 302, 303, 307, 308})
    SEE_OTHER = 303
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    NOT_IMPLEMENTED = 501


class MimeType:
    JSON = "application/json"
    XML = "application/xml"
    TEXT_XML = "text/xml"


DEFAULT_PORTS = {"http": 80, "https": 443}
