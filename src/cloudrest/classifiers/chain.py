import logging
from collections.abc import Iterable

from requests import Response

from cloudrest.classifiers.decision import RetryDecision
from cloudrest.classifiers.decoders import AutoErrorDecoder, ErrorDecoder
from cloudrest.classifiers.descriptor import ErrorDescriptor
from cloudrest.classifiers.rules import Classifier, classify_by_status
from cloudrest.constants import HttpStatus
from cloudrest.exceptions import ErrorBodyDecodeError, ExceptionKind
from cloudrest.http.payloads import safe_response_text

logger = logging.getLogger(__name__)


class ClassifierChain:
    """Ordered classifiers deciding what happens to a failed response.

    The body is decoded once; classifiers are tried in order and the first
    non-None decision wins, with ``classify_by_status`` as the fallback. A
    401 fails with AUTHORIZATION_FAILURE before any classifier is consulted.

    The chain keeps no state between calls and can be shared across threads.
    """

    def __init__(
        self,
        classifiers: Iterable[Classifier] = (),
        decoder: ErrorDecoder | None = None,
    ) -> None:
        self.classifiers = tuple(classifiers)
        self.decoder = decoder or AutoErrorDecoder()

    def describe(self, response: Response) -> ErrorDescriptor:
        """Decode the failed response, never losing its status and message."""
        try:
            return self.decoder.decode(response)
        except ErrorBodyDecodeError as e:
            logger.warning(
                "Unable to decode error body of HTTP %s from %s: %s (body: %s)",
                response.status_code,
                response.url,
                e,
                safe_response_text(response, max_length=200),
            )
            return self.decoder.fallback(response, e)

    def decide(self, descriptor: ErrorDescriptor) -> RetryDecision:
        if descriptor.http_status_code == HttpStatus.UNAUTHORIZED:
            return RetryDecision.fail(ExceptionKind.AUTHORIZATION_FAILURE)
        for classifier in self.classifiers:
            decision = classifier(descriptor)
            if decision is not None:
                return decision
        return classify_by_status(descriptor)

    def classify(self, response: Response) -> tuple[ErrorDescriptor, RetryDecision]:
        descriptor = self.describe(response)
        decision = self.decide(descriptor)
        logger.debug(
            "Classified HTTP %s [%s] as %s",
            descriptor.http_status_code,
            descriptor.provider_code,
            decision.action.value,
        )
        return descriptor, decision

    def extended(self, *classifiers: Classifier) -> "ClassifierChain":
        """New chain trying ``classifiers`` before the existing ones."""
        return ClassifierChain(classifiers + self.classifiers, self.decoder)
