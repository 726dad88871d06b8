"""Building blocks for provider classifiers.

A classifier is any callable taking an ``ErrorDescriptor`` and returning a
``RetryDecision``, or None to let the next classifier in the chain decide.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from cloudrest.classifiers.decision import RetryDecision
from cloudrest.classifiers.descriptor import ErrorDescriptor
from cloudrest.constants import HttpStatus
from cloudrest.exceptions import ExceptionKind

logger = logging.getLogger(__name__)

Classifier = Callable[[ErrorDescriptor], RetryDecision | None]

STATUS_KINDS: dict[int, ExceptionKind] = {
    HttpStatus.BAD_REQUEST: ExceptionKind.ILLEGAL_ARGUMENT,
    HttpStatus.UNAUTHORIZED: ExceptionKind.AUTHORIZATION_FAILURE,
    HttpStatus.FORBIDDEN: ExceptionKind.AUTHORIZATION_FAILURE,
    HttpStatus.NOT_FOUND: ExceptionKind.RESOURCE_NOT_FOUND,
    HttpStatus.CONFLICT: ExceptionKind.ILLEGAL_STATE,
    HttpStatus.NOT_IMPLEMENTED: ExceptionKind.UNSUPPORTED_OPERATION,
}


def classify_by_status(descriptor: ErrorDescriptor) -> RetryDecision:
    """Last resort mapping on the status alone; anything unlisted is UNKNOWN."""
    kind = STATUS_KINDS.get(descriptor.http_status_code, ExceptionKind.UNKNOWN)
    return RetryDecision.fail(kind)


def transient_codes(
    codes: Iterable[str],
    statuses: Iterable[int] | None = None,
) -> Classifier:
    """Classifier retrying the given provider codes.

    Args:
        codes: Provider error codes treated as transient (exact match)
        statuses: Only retry when the status is one of these; any status if None

    Returns:
        Classifier returning ``RetryDecision.retry()`` on a match
    """
    code_set = frozenset(codes)
    status_set = frozenset(statuses) if statuses is not None else None

    def classify(descriptor: ErrorDescriptor) -> RetryDecision | None:
        if descriptor.provider_code not in code_set:
            return None
        if status_set is not None and descriptor.http_status_code not in status_set:
            return None
        logger.debug(
            "Code %s on HTTP %s is transient",
            descriptor.provider_code,
            descriptor.http_status_code,
        )
        return RetryDecision.retry()

    return classify


class MatchMode(Enum):
    EXACT = "EXACT"
    SUFFIX = "SUFFIX"
    PREFIX = "PREFIX"
    CONTAINS = "CONTAINS"


@dataclass(frozen=True)
class CodeRule:
    """Maps provider codes matching ``pattern`` to ``kind``.

    Attributes:
        pattern: Substring looked for in the provider code
        kind: Kind surfaced on a match
        mode: How ``pattern`` has to match
        statuses: Restrict the rule to these statuses; any status if empty
    """

    pattern: str
    kind: ExceptionKind
    mode: MatchMode = MatchMode.CONTAINS
    statuses: frozenset[int] = frozenset()

    def matches(self, descriptor: ErrorDescriptor) -> bool:
        code = descriptor.provider_code
        if not code:
            return False
        if self.statuses and descriptor.http_status_code not in self.statuses:
            return False
        if self.mode is MatchMode.EXACT:
            return code == self.pattern
        if self.mode is MatchMode.SUFFIX:
            return code.endswith(self.pattern)
        if self.mode is MatchMode.PREFIX:
            return code.startswith(self.pattern)
        return self.pattern in code

    @property
    def specificity(self) -> tuple[int, int, int]:
        # Longer patterns first, then exact over anchored over contains,
        # then status-restricted rules over open ones
        mode_rank = {
            MatchMode.EXACT: 3,
            MatchMode.SUFFIX: 2,
            MatchMode.PREFIX: 2,
            MatchMode.CONTAINS: 1,
        }[self.mode]
        return len(self.pattern), mode_rank, 1 if self.statuses else 0


DEFAULT_CODE_RULES: tuple[CodeRule, ...] = (
    CodeRule("NotFound", ExceptionKind.RESOURCE_NOT_FOUND, MatchMode.SUFFIX),
    CodeRule(".Unknown", ExceptionKind.RESOURCE_NOT_FOUND, MatchMode.SUFFIX),
    CodeRule("AuthFailure", ExceptionKind.AUTHORIZATION_FAILURE),
    CodeRule("InUse", ExceptionKind.ILLEGAL_STATE),
    CodeRule("IncorrectState", ExceptionKind.ILLEGAL_STATE),
    CodeRule("InsufficientInstanceCapacity", ExceptionKind.INSUFFICIENT_RESOURCES, MatchMode.EXACT),
    CodeRule("InstanceLimitExceeded", ExceptionKind.INSUFFICIENT_RESOURCES, MatchMode.EXACT),
    CodeRule("VolumeLimitExceeded", ExceptionKind.INSUFFICIENT_RESOURCES, MatchMode.EXACT),
    CodeRule("Unsupported", ExceptionKind.UNSUPPORTED_OPERATION),
    CodeRule("InvalidParameter", ExceptionKind.ILLEGAL_ARGUMENT, MatchMode.PREFIX),
    CodeRule("MissingParameter", ExceptionKind.ILLEGAL_ARGUMENT, MatchMode.PREFIX),
)


class CodePatternClassifier:
    """Maps ``(status, provider code)`` to an ExceptionKind.

    When several rules match, the most specific wins (see
    ``CodeRule.specificity``), so ``InvalidGroup.InUse`` and
    ``InvalidGroup.NotFound`` land on different kinds whatever the rule order.
    Descriptors without a matching rule are left to the next classifier.
    """

    def __init__(self, rules: Iterable[CodeRule] = DEFAULT_CODE_RULES) -> None:
        self.rules = tuple(sorted(rules, key=lambda rule: rule.specificity, reverse=True))

    def __call__(self, descriptor: ErrorDescriptor) -> RetryDecision | None:
        for rule in self.rules:
            if rule.matches(descriptor):
                logger.debug(
                    "Code %s matched rule %r -> %s",
                    descriptor.provider_code,
                    rule.pattern,
                    rule.kind.value,
                )
                return RetryDecision.fail(rule.kind)
        return None

    def with_rules(self, *rules: CodeRule) -> "CodePatternClassifier":
        return CodePatternClassifier(self.rules + rules)
