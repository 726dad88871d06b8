"""Classifier chain for OpenStack style JSON fault responses.

Faults look like ``{"itemNotFound": {"code": 404, "message": "..."}}``; the
fault name becomes the provider code.
"""

import logging
from collections.abc import Iterable

from cloudrest.classifiers.chain import ClassifierChain
from cloudrest.classifiers.decision import RetryDecision
from cloudrest.classifiers.decoders import JsonErrorDecoder
from cloudrest.classifiers.descriptor import ErrorDescriptor
from cloudrest.classifiers.rules import (
    Classifier,
    CodePatternClassifier,
    CodeRule,
    MatchMode,
    transient_codes,
)
from cloudrest.config import RetrySettings
from cloudrest.exceptions import ExceptionKind

logger = logging.getLogger(__name__)

OPENSTACK_TRANSIENT_CODES = frozenset({"serviceUnavailable"})
OPENSTACK_RATE_LIMIT_CODES = frozenset({"overLimit", "rateLimit"})

OPENSTACK_CODE_RULES: tuple[CodeRule, ...] = (
    CodeRule("itemNotFound", ExceptionKind.RESOURCE_NOT_FOUND, MatchMode.EXACT),
    CodeRule("badRequest", ExceptionKind.ILLEGAL_ARGUMENT, MatchMode.EXACT),
    CodeRule("badMediaType", ExceptionKind.ILLEGAL_ARGUMENT, MatchMode.EXACT),
    CodeRule("unauthorized", ExceptionKind.AUTHORIZATION_FAILURE, MatchMode.EXACT),
    CodeRule("forbidden", ExceptionKind.AUTHORIZATION_FAILURE, MatchMode.EXACT),
    CodeRule("buildInProgress", ExceptionKind.ILLEGAL_STATE, MatchMode.EXACT),
    CodeRule("conflictingRequest", ExceptionKind.ILLEGAL_STATE, MatchMode.EXACT),
    CodeRule("resizeNotAllowed", ExceptionKind.ILLEGAL_STATE, MatchMode.EXACT),
    CodeRule("notImplemented", ExceptionKind.UNSUPPORTED_OPERATION, MatchMode.EXACT),
    # Quota faults arrive as overLimit when rate limits are not retried
    CodeRule("overLimit", ExceptionKind.INSUFFICIENT_RESOURCES, MatchMode.EXACT),
)


def _retry_after(descriptor: ErrorDescriptor) -> float | None:
    value = descriptor.details.get("retryAfter")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except (TypeError, ValueError):
        logger.debug("Ignoring non numeric retryAfter %r", value)
        return None


def rate_limit_retry(descriptor: ErrorDescriptor) -> RetryDecision | None:
    """Retry rate limit faults after the fault's own ``retryAfter``, if any."""
    if descriptor.provider_code not in OPENSTACK_RATE_LIMIT_CODES:
        return None
    return RetryDecision.retry(_retry_after(descriptor))


def openstack_classifier_chain(
    settings: RetrySettings | None = None,
    transient: Iterable[str] | None = None,
    retry_rate_limits: bool | None = None,
) -> ClassifierChain:
    """Chain for OpenStack JSON faults.

    Args:
        settings: Source of ``transient_codes`` and ``retry_rate_limits``
            when not given explicitly
        transient: Fault names retried with backoff
        retry_rate_limits: Retry ``overLimit``/``rateLimit`` after their
            ``retryAfter``; otherwise ``overLimit`` is INSUFFICIENT_RESOURCES

    Returns:
        ClassifierChain: Decoding with ``JsonErrorDecoder``
    """
    if transient is None:
        transient = (settings and settings.transient_codes) or OPENSTACK_TRANSIENT_CODES
    if retry_rate_limits is None:
        retry_rate_limits = bool(settings and settings.retry_rate_limits)

    classifiers: list[Classifier] = [transient_codes(transient)]
    if retry_rate_limits:
        classifiers.append(rate_limit_retry)
    classifiers.append(CodePatternClassifier(OPENSTACK_CODE_RULES))
    return ClassifierChain(classifiers, decoder=JsonErrorDecoder())
