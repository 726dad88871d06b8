from .aws import (
    AWS_RATE_LIMIT_CODES,
    AWS_TRANSIENT_CODES,
    aws_classifier_chain,
    s3_endpoint_redirect,
)
from .openstack import (
    OPENSTACK_RATE_LIMIT_CODES,
    OPENSTACK_TRANSIENT_CODES,
    openstack_classifier_chain,
    rate_limit_retry,
)

__all__ = [
    "AWS_RATE_LIMIT_CODES",
    "AWS_TRANSIENT_CODES",
    "OPENSTACK_RATE_LIMIT_CODES",
    "OPENSTACK_TRANSIENT_CODES",
    "aws_classifier_chain",
    "openstack_classifier_chain",
    "rate_limit_retry",
    "s3_endpoint_redirect",
]
