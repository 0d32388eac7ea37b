import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from backend.errors import (
    ErrorReport,
    NoImageDataError,
    UnsupportedModelError,
    classify_error,
)


def client_error(code, message):
    return ClientError({"Error": {"Code": code, "Message": message}}, "InvokeModel")


def test_validation_cfg_scale_names_family_range():
    err = client_error("ValidationException", "cfgScale must be <= 10")
    report = classify_error(err, cfg_max=10)
    assert report.error == "CFG Scale value is invalid"
    assert "1-10" in report.suggestion
    assert report.status_code == 500

    report = classify_error(client_error("ValidationException", "cfg_scale: too high"), cfg_max=20)
    assert "1-20" in report.suggestion


@pytest.mark.parametrize("message,expected", [
    ("width must be one of 512, 768", "Image dimensions are invalid"),
    ("Invalid height", "Image dimensions are invalid"),
    ("steps out of range", "Steps value is invalid"),
    ("malformed input request", "Invalid parameters provided"),
])
def test_validation_targeted_messages(message, expected):
    assert classify_error(client_error("ValidationException", message)).error == expected


def test_validation_recognized_from_text_only():
    report = classify_error(Exception("Validation error: width is not supported"))
    assert report.error == "Image dimensions are invalid"


@pytest.mark.parametrize("error,expected", [
    (client_error("AccessDeniedException", "You don't have access to the model"), "Access denied to AI model"),
    (client_error("ThrottlingException", "Too many requests"), "Request rate limit exceeded"),
    (client_error("ServiceQuotaExceededException", "Too many tokens"), "Service quota exceeded"),
    (client_error("ResourceNotFoundException", "Could not resolve the foundation model"), "AI model not available"),
    (client_error("UnrecognizedClientException", "The security token is invalid"), "AWS authentication failed"),
    (NoCredentialsError(), "AWS authentication failed"),
    (Exception("Access Denied for principal"), "Access denied to AI model"),
    (Exception("rate limit hit"), "Request rate limit exceeded"),
    (Exception("daily quota reached"), "Service quota exceeded"),
    (Exception("model xyz not found"), "AI model not available"),
    (Exception("The request signature we calculated does not match"), "AWS authentication failed"),
])
def test_upstream_error_categories(error, expected):
    report = classify_error(error)
    assert report.error == expected
    assert report.suggestion
    assert report.status_code == 500


def test_on_demand_throughput():
    err = client_error(
        "ValidationException",
        "Invocation of model ID stability.sd3-large-v1:0 with on-demand throughput isn't supported.",
    )
    report = classify_error(err)
    assert report.error == "Model requires provisioned throughput"
    assert "provisioned throughput" in report.suggestion


def test_unknown_error_falls_back():
    report = classify_error(EndpointConnectionError(endpoint_url="https://bedrock-runtime.us-east-1.amazonaws.com"))
    assert report.error == "Image generation failed"
    assert "bedrock-runtime" in report.details

    assert classify_error(RuntimeError("boom")).error == "Image generation failed"


def test_package_errors_keep_their_category():
    report = classify_error(UnsupportedModelError("Unsupported model type: foo"))
    assert report.status_code == 400
    assert report.error == "Unsupported model type: foo"

    report = classify_error(NoImageDataError("No image data received from model"))
    assert report.status_code == 500
    assert report.error == "No image data received from model"


def test_error_report_response_shape():
    report = ErrorReport(error="e", details="d", suggestion="s", status_code=400)
    assert report.to_response() == {"success": False, "error": "e", "details": "d", "suggestion": "s"}
