"""Classifier chain for AWS style XML error responses (EC2, S3, query APIs)."""

import logging
from collections.abc import Iterable

from cloudrest.classifiers.chain import ClassifierChain
from cloudrest.classifiers.decision import RetryDecision
from cloudrest.classifiers.decoders import XmlErrorDecoder
from cloudrest.classifiers.descriptor import ErrorDescriptor
from cloudrest.classifiers.rules import (
    DEFAULT_CODE_RULES,
    Classifier,
    CodePatternClassifier,
    CodeRule,
    MatchMode,
    transient_codes,
)
from cloudrest.config import RetrySettings
from cloudrest.exceptions import ExceptionKind

logger = logging.getLogger(__name__)

AWS_TRANSIENT_CODES = frozenset(
    {
        "RequestTimeout",
        "OperationAborted",
        "SignatureDoesNotMatch",
        "RequestTimeTooSkewed",
        "InternalError",
    }
)

AWS_RATE_LIMIT_CODES = frozenset(
    {
        "RequestLimitExceeded",
        "Throttling",
        "ThrottlingException",
        "RequestThrottled",
        "SlowDown",
    }
)
AWS_RATE_LIMIT_STATUSES = frozenset({400, 429, 500, 503})

S3_REDIRECT_CODES = frozenset({"PermanentRedirect", "TemporaryRedirect"})
S3_REDIRECT_STATUSES = frozenset({301, 307})

AWS_CODE_RULES: tuple[CodeRule, ...] = DEFAULT_CODE_RULES + (
    CodeRule("NoSuch", ExceptionKind.RESOURCE_NOT_FOUND, MatchMode.PREFIX),
    CodeRule("AccessDenied", ExceptionKind.AUTHORIZATION_FAILURE, MatchMode.EXACT),
    CodeRule("InvalidAccessKeyId", ExceptionKind.AUTHORIZATION_FAILURE, MatchMode.EXACT),
    CodeRule("BucketAlreadyExists", ExceptionKind.ILLEGAL_STATE, MatchMode.EXACT),
    CodeRule("BucketAlreadyOwnedByYou", ExceptionKind.ILLEGAL_STATE, MatchMode.EXACT),
    CodeRule("BucketNotEmpty", ExceptionKind.ILLEGAL_STATE, MatchMode.EXACT),
    CodeRule("NotImplemented", ExceptionKind.UNSUPPORTED_OPERATION, MatchMode.EXACT),
)


def s3_endpoint_redirect(descriptor: ErrorDescriptor) -> RetryDecision | None:
    """Redirect a bucket request to the endpoint named in the error body.

    S3 answers a request sent to the wrong region with 301/307 and an
    ``Endpoint`` element instead of a Location header.
    """
    if descriptor.http_status_code not in S3_REDIRECT_STATUSES:
        return None
    if descriptor.provider_code not in S3_REDIRECT_CODES:
        return None
    endpoint = descriptor.details.get("Endpoint")
    if not endpoint:
        logger.warning("%s without Endpoint; cannot follow", descriptor.provider_code)
        return None
    return RetryDecision.redirect(f"//{endpoint}", keep_path=True)


def aws_classifier_chain(
    settings: RetrySettings | None = None,
    transient: Iterable[str] | None = None,
    retry_rate_limits: bool | None = None,
    extra_rules: Iterable[CodeRule] = (),
) -> ClassifierChain:
    """Chain for AWS XML errors.

    Args:
        settings: Source of ``transient_codes`` and ``retry_rate_limits``
            when not given explicitly
        transient: Codes retried with backoff; ``AWS_TRANSIENT_CODES``, or the
            settings' codes when configured, if None
        retry_rate_limits: Also retry ``AWS_RATE_LIMIT_CODES``
        extra_rules: Additional code rules, ranked with the defaults

    Returns:
        ClassifierChain: Decoding with ``XmlErrorDecoder``
    """
    if transient is None:
        transient = (settings and settings.transient_codes) or AWS_TRANSIENT_CODES
    if retry_rate_limits is None:
        retry_rate_limits = bool(settings and settings.retry_rate_limits)

    classifiers: list[Classifier] = [s3_endpoint_redirect, transient_codes(transient)]
    if retry_rate_limits:
        classifiers.append(transient_codes(AWS_RATE_LIMIT_CODES, AWS_RATE_LIMIT_STATUSES))
    classifiers.append(CodePatternClassifier(AWS_CODE_RULES + tuple(extra_rules)))
    return ClassifierChain(classifiers, decoder=XmlErrorDecoder())
