from .chain import ClassifierChain
from .decision import RetryAction, RetryDecision
from .decoders import (
    AutoErrorDecoder,
    ErrorDecoder,
    JsonErrorDecoder,
    StatusOnlyDecoder,
    XmlErrorDecoder,
)
from .descriptor import ErrorDescriptor
from .rules import (
    DEFAULT_CODE_RULES,
    Classifier,
    CodePatternClassifier,
    CodeRule,
    MatchMode,
    classify_by_status,
    transient_codes,
)

__all__ = [
    "AutoErrorDecoder",
    "Classifier",
    "ClassifierChain",
    "CodePatternClassifier",
    "CodeRule",
    "DEFAULT_CODE_RULES",
    "ErrorDecoder",
    "ErrorDescriptor",
    "JsonErrorDecoder",
    "MatchMode",
    "RetryAction",
    "RetryDecision",
    "StatusOnlyDecoder",
    "XmlErrorDecoder",
    "classify_by_status",
    "transient_codes",
]
