"""Unit tests for error decoding and classification."""

import json

import pytest

from cloudrest.classifiers import (
    AutoErrorDecoder,
    ClassifierChain,
    CodePatternClassifier,
    CodeRule,
    ErrorDescriptor,
    JsonErrorDecoder,
    MatchMode,
    RetryDecision,
    XmlErrorDecoder,
    classify_by_status,
    transient_codes,
)
from cloudrest.exceptions import ErrorBodyDecodeError, ExceptionKind


def ec2_error(code, message="failed"):
    return (
        "<Response><Errors><Error>"
        f"<Code>{code}</Code><Message>{message}</Message>"
        "</Error></Errors><RequestID>req-1</RequestID></Response>"
    )


class TestXmlErrorDecoder:
    """Tests for XmlErrorDecoder."""

    def test_nested_ec2_error(self, make_response):
        response = make_response(400, ec2_error("InvalidGroup.NotFound", "no sg-1"))

        descriptor = XmlErrorDecoder().decode(response)

        assert descriptor.http_status_code == 400
        assert descriptor.provider_code == "InvalidGroup.NotFound"
        assert descriptor.message == "no sg-1"
        assert descriptor.details["RequestId"] == "req-1"

    def test_s3_root_error_details(self, make_response):
        body = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            "<Error><Code>PermanentRedirect</Code><Message>Use the endpoint</Message>"
            "<Bucket>photos</Bucket><Endpoint>photos.s3-eu-west-1.amazonaws.com</Endpoint>"
            "<RequestId>abc</RequestId></Error>"
        )

        descriptor = XmlErrorDecoder().decode(make_response(301, body))

        assert descriptor.provider_code == "PermanentRedirect"
        assert descriptor.details["Endpoint"] == "photos.s3-eu-west-1.amazonaws.com"
        assert descriptor.details["Bucket"] == "photos"
        assert descriptor.details["RequestId"] == "abc"

    def test_namespaced_error(self, make_response):
        body = (
            '<ErrorResponse xmlns="https://iam.amazonaws.com/doc/2010-05-08/">'
            "<Error><Type>Sender</Type><Code>NoSuchEntity</Code>"
            "<Message>missing</Message></Error></ErrorResponse>"
        )

        descriptor = XmlErrorDecoder().decode(make_response(404, body))

        assert descriptor.provider_code == "NoSuchEntity"
        assert descriptor.details["Type"] == "Sender"

    def test_empty_body_uses_reason(self, make_response):
        descriptor = XmlErrorDecoder().decode(make_response(503))

        assert descriptor.provider_code is None
        assert descriptor.message == "Service Unavailable"

    @pytest.mark.parametrize("body", ["<html><body>oops", "<html><body>oops</body></html>"])
    def test_undecodable_body(self, make_response, body):
        with pytest.raises(ErrorBodyDecodeError) as exc_info:
            XmlErrorDecoder().decode(make_response(500, body))

        assert exc_info.value.raw_body == body
        assert exc_info.value.status_code == 500


class TestJsonErrorDecoder:
    """Tests for JsonErrorDecoder."""

    def test_fault_wrapper(self, make_response):
        body = {"itemNotFound": {"code": 404, "message": "Instance could not be found"}}

        descriptor = JsonErrorDecoder().decode(make_response(404, json.dumps(body)))

        assert descriptor.provider_code == "itemNotFound"
        assert descriptor.message == "Instance could not be found"
        assert descriptor.details["code"] == 404

    def test_nested_error_object(self, make_response):
        body = {"error": {"code": "BadArgument", "message": "size must be positive"}}

        descriptor = JsonErrorDecoder().decode(make_response(400, json.dumps(body)))

        assert descriptor.provider_code == "BadArgument"
        assert descriptor.message == "size must be positive"

    def test_error_string(self, make_response):
        body = {"error": "invalid_grant", "error_description": "token expired"}

        descriptor = JsonErrorDecoder().decode(make_response(400, json.dumps(body)))

        assert descriptor.provider_code == "invalid_grant"
        assert descriptor.message == "token expired"

    def test_type_namespace_stripped(self, make_response):
        body = {"__type": "com.amazon.coral#ThrottlingException", "message": "Rate exceeded"}

        descriptor = JsonErrorDecoder().decode(make_response(400, json.dumps(body)))

        assert descriptor.provider_code == "ThrottlingException"

    @pytest.mark.parametrize("body", ["{not json", "[1, 2]"])
    def test_undecodable_body(self, make_response, body):
        with pytest.raises(ErrorBodyDecodeError):
            JsonErrorDecoder().decode(make_response(500, body))


class TestAutoErrorDecoder:
    """Tests for AutoErrorDecoder."""

    def test_content_type_json(self, make_response):
        response = make_response(
            400,
            json.dumps({"code": "Bad", "message": "bad"}),
            headers={"Content-Type": "application/json; charset=utf-8"},
        )

        assert AutoErrorDecoder().decode(response).provider_code == "Bad"

    @pytest.mark.parametrize(
        ("body", "code"),
        [
            (ec2_error("AuthFailure"), "AuthFailure"),
            ('{"code": "Bad", "message": "bad"}', "Bad"),
            ("plain text failure", None),
        ],
    )
    def test_sniffs_body(self, make_response, body, code):
        assert AutoErrorDecoder().decode(make_response(400, body)).provider_code == code


class TestCodePatternClassifier:
    """Tests for the default code rules."""

    @pytest.mark.parametrize(
        ("code", "kind"),
        [
            ("InvalidGroup.NotFound", ExceptionKind.RESOURCE_NOT_FOUND),
            ("InvalidAMIID.Unknown", ExceptionKind.RESOURCE_NOT_FOUND),
            ("AuthFailure", ExceptionKind.AUTHORIZATION_FAILURE),
            ("InvalidGroup.InUse", ExceptionKind.ILLEGAL_STATE),
            ("IncorrectState", ExceptionKind.ILLEGAL_STATE),
            ("InsufficientInstanceCapacity", ExceptionKind.INSUFFICIENT_RESOURCES),
            ("InstanceLimitExceeded", ExceptionKind.INSUFFICIENT_RESOURCES),
            ("VolumeLimitExceeded", ExceptionKind.INSUFFICIENT_RESOURCES),
            ("UnsupportedOperation", ExceptionKind.UNSUPPORTED_OPERATION),
            ("InvalidParameterValue", ExceptionKind.ILLEGAL_ARGUMENT),
            ("MissingParameter", ExceptionKind.ILLEGAL_ARGUMENT),
        ],
    )
    def test_default_rules(self, code, kind):
        decision = CodePatternClassifier()(ErrorDescriptor(400, provider_code=code))

        assert decision == RetryDecision.fail(kind)

    @pytest.mark.parametrize("code", [None, "SomethingElse", "VolumeLimitExceededSoon"])
    def test_no_match_defers(self, code):
        assert CodePatternClassifier()(ErrorDescriptor(400, provider_code=code)) is None

    def test_longest_pattern_wins_regardless_of_order(self):
        classifier = CodePatternClassifier(
            [
                CodeRule("Group", ExceptionKind.ILLEGAL_ARGUMENT),
                CodeRule("Group.InUse", ExceptionKind.ILLEGAL_STATE),
            ]
        )

        decision = classifier(ErrorDescriptor(400, provider_code="InvalidGroup.InUse"))

        assert decision.kind is ExceptionKind.ILLEGAL_STATE

    def test_status_restricted_rule(self):
        classifier = CodePatternClassifier(
            [CodeRule("Busy", ExceptionKind.ILLEGAL_STATE, MatchMode.EXACT, frozenset({409}))]
        )

        assert classifier(ErrorDescriptor(409, provider_code="Busy")) is not None
        assert classifier(ErrorDescriptor(400, provider_code="Busy")) is None

    def test_with_rules(self):
        classifier = CodePatternClassifier().with_rules(
            CodeRule("Frozen", ExceptionKind.ILLEGAL_STATE)
        )

        decision = classifier(ErrorDescriptor(400, provider_code="AccountFrozen"))

        assert decision.kind is ExceptionKind.ILLEGAL_STATE


class TestTransientCodes:
    """Tests for the transient_codes factory."""

    def test_exact_match_retries(self):
        classify = transient_codes({"OperationAborted"})

        assert classify(ErrorDescriptor(409, provider_code="OperationAborted")).is_retry
        assert classify(ErrorDescriptor(409, provider_code="OperationAbortedSoon")) is None

    def test_status_restriction(self):
        classify = transient_codes({"SlowDown"}, statuses={503})

        assert classify(ErrorDescriptor(503, provider_code="SlowDown")).is_retry
        assert classify(ErrorDescriptor(400, provider_code="SlowDown")) is None


class TestClassifyByStatus:
    """Tests for the status fallback."""

    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (400, ExceptionKind.ILLEGAL_ARGUMENT),
            (401, ExceptionKind.AUTHORIZATION_FAILURE),
            (403, ExceptionKind.AUTHORIZATION_FAILURE),
            (404, ExceptionKind.RESOURCE_NOT_FOUND),
            (409, ExceptionKind.ILLEGAL_STATE),
            (501, ExceptionKind.UNSUPPORTED_OPERATION),
            (500, ExceptionKind.UNKNOWN),
            (503, ExceptionKind.UNKNOWN),
            (418, ExceptionKind.UNKNOWN),
        ],
    )
    def test_status_mapping(self, status, kind):
        assert classify_by_status(ErrorDescriptor(status)) == RetryDecision.fail(kind)


class TestClassifierChain:
    """Tests for ClassifierChain."""

    def test_first_non_none_wins(self, make_response):
        chain = ClassifierChain(
            [
                lambda descriptor: None,
                lambda descriptor: RetryDecision.retry(3.0),
                lambda descriptor: RetryDecision.fail(ExceptionKind.UNKNOWN),
            ]
        )

        _, decision = chain.classify(make_response(500, ec2_error("Whatever")))

        assert decision == RetryDecision.retry(3.0)

    def test_falls_back_to_status(self, make_response):
        descriptor, decision = ClassifierChain().classify(make_response(404, "not here"))

        assert decision.kind is ExceptionKind.RESOURCE_NOT_FOUND
        assert descriptor.raw_body == "not here"

    def test_unauthorized_never_retried(self, make_response):
        """A 401 fails before any classifier is consulted."""
        chain = ClassifierChain([transient_codes({"RequestTimeout"})])

        _, decision = chain.classify(make_response(401, ec2_error("RequestTimeout")))

        assert decision == RetryDecision.fail(ExceptionKind.AUTHORIZATION_FAILURE)

    def test_decode_failure_keeps_status_and_message(self, make_response):
        chain = ClassifierChain(decoder=XmlErrorDecoder())

        descriptor, decision = chain.classify(make_response(403, "<html><body>denied"))

        assert descriptor.http_status_code == 403
        assert descriptor.message == "Forbidden"
        assert descriptor.raw_body == "<html><body>denied"
        assert "Malformed XML" in descriptor.decode_error
        assert decision.kind is ExceptionKind.AUTHORIZATION_FAILURE
        summary = descriptor.summary()
        assert summary.startswith("HTTP 403: Forbidden")
        assert "could not be decoded" in summary

    def test_extended_prepends(self, make_response):
        chain = ClassifierChain([CodePatternClassifier()]).extended(
            transient_codes({"InvalidGroup.InUse"})
        )

        _, decision = chain.classify(make_response(400, ec2_error("InvalidGroup.InUse")))

        assert decision.is_retry

    def test_same_response_same_decision(self, make_response):
        """Classification depends only on the response."""
        chain = ClassifierChain([CodePatternClassifier()])

        decisions = {
            chain.classify(make_response(400, ec2_error("InvalidGroup.NotFound")))[1]
            for _ in range(3)
        }

        assert decisions == {RetryDecision.fail(ExceptionKind.RESOURCE_NOT_FOUND)}
