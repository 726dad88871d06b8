"""Error body decoders turning a failed response into an ErrorDescriptor."""

import json
import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Mapping
from json import JSONDecodeError
from typing import Any

from requests import Response
from requests.exceptions import RequestException

from cloudrest.classifiers.descriptor import ErrorDescriptor
from cloudrest.constants import MimeType, RequestHeader
from cloudrest.exceptions import ErrorBodyDecodeError

logger = logging.getLogger(__name__)


def _read_body(response: Response) -> str:
    try:
        return response.text or ""
    except (RequestException, OSError, RuntimeError) as e:
        raise ErrorBodyDecodeError(
            f"Unable to read error body: {e}",
            status_code=response.status_code,
            actual_err=e,
        ) from e


def _default_message(response: Response) -> str:
    return response.reason or ""


class ErrorDecoder(ABC):
    """Decodes the body of a failed response.

    Implementations raise ``ErrorBodyDecodeError`` when the body does not
    have the expected shape; callers fall back to the HTTP status.
    """

    @abstractmethod
    def decode(self, response: Response) -> ErrorDescriptor:
        """Build the descriptor for ``response``."""

    def fallback(self, response: Response, decode_error: Exception) -> ErrorDescriptor:
        """Descriptor used when ``decode`` failed, keeping status and raw text."""
        raw_body = getattr(decode_error, "raw_body", None) or ""
        return ErrorDescriptor(
            http_status_code=response.status_code,
            message=_default_message(response),
            raw_body=raw_body,
            decode_error=str(decode_error),
            headers=dict(response.headers),
        )


class StatusOnlyDecoder(ErrorDecoder):
    """Ignores the body's structure; useful for providers without error payloads."""

    def decode(self, response: Response) -> ErrorDescriptor:
        body = _read_body(response)
        return ErrorDescriptor(
            http_status_code=response.status_code,
            message=_default_message(response),
            raw_body=body,
            headers=dict(response.headers),
        )


class XmlErrorDecoder(ErrorDecoder):
    """Decodes ``<Error><Code/><Message/></Error>`` bodies.

    The ``Error`` element may be the root (S3) or nested, e.g.
    ``<Response><Errors><Error>`` (EC2) or ``<ErrorResponse><Error>`` (query
    APIs). Other children of ``Error`` and a ``RequestId`` anywhere in the
    document end up in ``details``.
    """

    def decode(self, response: Response) -> ErrorDescriptor:
        body = _read_body(response)
        if not body.strip():
            return ErrorDescriptor(
                http_status_code=response.status_code,
                message=_default_message(response),
                headers=dict(response.headers),
            )
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            raise ErrorBodyDecodeError(
                f"Malformed XML error body: {e}",
                status_code=response.status_code,
                raw_body=body,
                actual_err=e,
            ) from e

        error = self._find_error(root)
        if error is None:
            raise ErrorBodyDecodeError(
                f"No Error element in XML body with root <{self._local(root.tag)}>",
                status_code=response.status_code,
                raw_body=body,
            )

        details: dict[str, Any] = {}
        for child in error:
            name = self._local(child.tag)
            if name not in ("Code", "Message") and child.text:
                details[name] = child.text.strip()
        for element in root.iter():
            name = self._local(element.tag)
            if name in ("RequestId", "RequestID") and element.text:
                details.setdefault("RequestId", element.text.strip())

        return ErrorDescriptor(
            http_status_code=response.status_code,
            provider_code=self._child_text(error, "Code"),
            message=self._child_text(error, "Message") or _default_message(response),
            raw_body=body,
            details=details,
            headers=dict(response.headers),
        )

    @staticmethod
    def _local(tag: str) -> str:
        return tag.rsplit("}", 1)[-1]

    def _find_error(self, root: ET.Element) -> ET.Element | None:
        for element in root.iter():
            if self._local(element.tag) == "Error":
                return element
        return None

    def _child_text(self, element: ET.Element, name: str) -> str | None:
        for child in element:
            if self._local(child.tag) == name and child.text:
                return child.text.strip()
        return None


class JsonErrorDecoder(ErrorDecoder):
    """Decodes the JSON error shapes cloud APIs commonly return.

    Handles:
    - ``{"code": ..., "message": ...}``
    - ``{"error": {"code": ..., "message": ...}}`` and ``{"error": "text"}``
    - ``{"__type": "ns#ThrottlingException", "message": ...}``
    - ``{"itemNotFound": {"code": 404, "message": ...}}`` (fault name as code)
    """

    MESSAGE_KEYS = ("message", "Message", "error_description", "detail", "details")
    CODE_KEYS = ("code", "Code", "__type", "type")

    def decode(self, response: Response) -> ErrorDescriptor:
        body = _read_body(response)
        if not body.strip():
            return ErrorDescriptor(
                http_status_code=response.status_code,
                message=_default_message(response),
                headers=dict(response.headers),
            )
        try:
            payload = json.loads(body)
        except JSONDecodeError as e:
            raise ErrorBodyDecodeError(
                f"Malformed JSON error body: {e}",
                status_code=response.status_code,
                raw_body=body,
                actual_err=e,
            ) from e
        if not isinstance(payload, Mapping):
            raise ErrorBodyDecodeError(
                f"Expected a JSON object, got {type(payload).__name__}",
                status_code=response.status_code,
                raw_body=body,
            )

        code, message, details = self._extract(payload)
        return ErrorDescriptor(
            http_status_code=response.status_code,
            provider_code=code,
            message=message or _default_message(response),
            raw_body=body,
            details=details,
            headers=dict(response.headers),
        )

    def _extract(self, payload: Mapping[str, Any]) -> tuple[str | None, str | None, dict]:
        error = payload.get("error")
        if isinstance(error, Mapping):
            return self._extract(error)
        if isinstance(error, str):
            message = self._first(payload, self.MESSAGE_KEYS) or error
            return error, message, {}

        code = self._first(payload, self.CODE_KEYS)
        message = self._first(payload, self.MESSAGE_KEYS)
        if code is not None or message is not None:
            if code and "#" in code:
                code = code.rsplit("#", 1)[-1]
            details = {
                key: value
                for key, value in payload.items()
                if key not in self.CODE_KEYS + self.MESSAGE_KEYS
            }
            return code, message, details

        # Fault wrapper: a single key naming the fault
        if len(payload) == 1:
            fault_name, fault = next(iter(payload.items()))
            if isinstance(fault, Mapping):
                details = {
                    key: value
                    for key, value in fault.items()
                    if key not in self.MESSAGE_KEYS
                }
                return fault_name, self._first(fault, self.MESSAGE_KEYS), details
        return None, None, dict(payload)

    @staticmethod
    def _first(payload: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
        for key in keys:
            value = payload.get(key)
            if value is not None and not isinstance(value, (Mapping, list)):
                return str(value)
        return None


class AutoErrorDecoder(ErrorDecoder):
    """Chooses the XML or JSON decoder from Content-Type, then by sniffing."""

    def __init__(
        self,
        xml_decoder: ErrorDecoder | None = None,
        json_decoder: ErrorDecoder | None = None,
    ) -> None:
        self.xml_decoder = xml_decoder or XmlErrorDecoder()
        self.json_decoder = json_decoder or JsonErrorDecoder()

    def decode(self, response: Response) -> ErrorDescriptor:
        content_type = response.headers.get(RequestHeader.CONTENT_TYPE, "").lower()
        if "json" in content_type:
            return self.json_decoder.decode(response)
        if MimeType.XML in content_type or MimeType.TEXT_XML in content_type:
            return self.xml_decoder.decode(response)

        body = _read_body(response).lstrip()
        if body.startswith("<"):
            return self.xml_decoder.decode(response)
        if body.startswith(("{", "[")):
            return self.json_decoder.decode(response)
        return StatusOnlyDecoder().decode(response)
