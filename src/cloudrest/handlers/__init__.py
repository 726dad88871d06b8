from .backoff_limited import BackoffLimitedRetryHandler
from .redirection import RedirectionRetryHandler, is_redirect

__all__ = ["BackoffLimitedRetryHandler", "RedirectionRetryHandler", "is_redirect"]
