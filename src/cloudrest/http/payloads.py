import io
import logging

from requests import PreparedRequest, Response
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

_REPLAYABLE_BODY_TYPES = (bytes, bytearray, str)


def release_response(response: Response | None) -> None:
    """Drain and close a response so its connection goes back to the pool.

    Safe to call more than once, and on responses whose content was already
    read.
    """
    if response is None:
        return
    try:
        # Reading ``content`` exhausts the stream; requests caches the bytes
        response.content  # noqa: B018
    except (RequestException, OSError, RuntimeError) as e:
        logger.debug("Unable to drain response body for %s: %s", response.url, e)
    finally:
        response.close()


def is_replayable(request: PreparedRequest) -> bool:
    """Whether the request body can be sent again on a retry.

    In-memory bodies are replayable; seekable streams are rewound; iterators
    and non-seekable streams are consumed by the first attempt.
    """
    body = request.body
    if body is None or isinstance(body, _REPLAYABLE_BODY_TYPES):
        return True
    if isinstance(body, io.IOBase) and body.seekable():
        return True
    return False


def rewind_body(request: PreparedRequest) -> None:
    """Seek a stream body back to where it was when the request was prepared."""
    body = request.body
    if isinstance(body, io.IOBase) and body.seekable():
        position = getattr(request, "_body_position", None)
        body.seek(position if isinstance(position, int) else 0)


def safe_response_text(response: Response, max_length: int = 500) -> str:
    """Safely get response text with error handling and length limiting."""
    try:
        text = response.text
        if len(text) > max_length:
            return f"{text[:max_length]}... (truncated)"
        return text
    except (RequestException, OSError, RuntimeError, ValueError) as e:
        return f"<Could not read response text: {str(e)}>"
