"""Resilient command execution for cloud provider REST APIs."""

__version__ = "0.1.0"

from cloudrest.backoff import BackoffSchedule
from cloudrest.classifiers import (
    ClassifierChain,
    CodePatternClassifier,
    CodeRule,
    ErrorDescriptor,
    RetryDecision,
    transient_codes,
)
from cloudrest.config import RetrySettings
from cloudrest.exceptions import CloudRestError, ExceptionKind, error_for_kind
from cloudrest.handlers import BackoffLimitedRetryHandler, RedirectionRetryHandler
from cloudrest.http import CommandPhase, CommandState, RequestsTransport, Transport
from cloudrest.http.executor import CommandExecutor, build_executor
from cloudrest.predicates import PollBounds, RetryablePredicate, await_condition
from cloudrest.providers import aws_classifier_chain, openstack_classifier_chain
from cloudrest.utils import CancellationToken, Clock, SystemClock


__all__ = [
    "BackoffLimitedRetryHandler",
    "BackoffSchedule",
    "CancellationToken",
    "ClassifierChain",
    "Clock",
    "CloudRestError",
    "CodePatternClassifier",
    "CodeRule",
    "CommandExecutor",
    "CommandPhase",
    "CommandState",
    "ErrorDescriptor",
    "ExceptionKind",
    "PollBounds",
    "RedirectionRetryHandler",
    "RequestsTransport",
    "RetryDecision",
    "RetrySettings",
    "RetryablePredicate",
    "SystemClock",
    "Transport",
    "await_condition",
    "aws_classifier_chain",
    "build_executor",
    "error_for_kind",
    "openstack_classifier_chain",
    "transient_codes",
]
