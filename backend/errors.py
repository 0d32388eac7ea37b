import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

logger = logging.getLogger(__name__)


class ImageGenerationError(Exception):
    """Base class for every failure surfaced by the image generation flow."""

    status_code = 500
    message = "Image generation failed"
    suggestion = "Please try again with different parameters or contact support if the issue persists"


class UnsupportedModelError(ImageGenerationError):
    """Model id matches no provider family, or the prompt is empty."""

    status_code = 400
    message = "Unsupported model type"
    suggestion = "Select a Stability, Titan or Nova Canvas model and provide a prompt"


class InvalidInputImageError(ImageGenerationError):
    status_code = 400
    message = "Input image is invalid"
    suggestion = "Please upload a JPEG, PNG or WebP image"


class NoImageDataError(ImageGenerationError):
    """Provider answered successfully but returned no image artifact."""

    message = "No image data received from model"
    suggestion = "The request may have been blocked by content filters. Try rephrasing your prompt"


class ValidationError(ImageGenerationError):
    message = "Invalid parameters provided"
    suggestion = "Please check your parameter values (CFG scale, dimensions, etc.) and try again"


class AccessError(ImageGenerationError):
    message = "Access denied to AI model"
    suggestion = "Please check your AWS Bedrock model access permissions in the AWS console"


class ThrottlingError(ImageGenerationError):
    message = "Request rate limit exceeded"
    suggestion = "Please wait a moment and try again"


class QuotaError(ImageGenerationError):
    message = "Service quota exceeded"
    suggestion = "You may have reached your AWS Bedrock usage limits. Check your AWS console for quota information"


class ModelUnavailableError(ImageGenerationError):
    message = "AI model not available"
    suggestion = (
        "The selected model may not be available in your region. "
        "Try refreshing the model list or selecting a different model"
    )


class CredentialsError(ImageGenerationError):
    message = "AWS authentication failed"
    suggestion = "Please check your AWS credentials configuration"


@dataclass
class ErrorReport:
    """User-facing description of a failed generation request."""

    error: str
    details: str
    suggestion: str
    status_code: int = 500

    def to_response(self) -> Dict:
        body = asdict(self)
        body.pop("status_code")
        body["success"] = False
        return body


# Bedrock error codes that identify a category without looking at the text
_ERROR_CODES = {
    "ValidationException": ValidationError,
    "AccessDeniedException": AccessError,
    "UnrecognizedClientException": CredentialsError,
    "ThrottlingException": ThrottlingError,
    "ServiceQuotaExceededException": QuotaError,
    "ResourceNotFoundException": ModelUnavailableError,
}


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code")
    return None


def _validation_report(text: str, details: str, cfg_max: int) -> ErrorReport:
    if "cfgscale" in text or "cfg_scale" in text:
        return ErrorReport(
            error="CFG Scale value is invalid",
            details=details,
            suggestion=f"CFG Scale must be between 1-{cfg_max} for this model. Current value may be too high",
        )
    if "width" in text or "height" in text:
        return ErrorReport(
            error="Image dimensions are invalid",
            details=details,
            suggestion="Please check that width and height are supported values (typically 512, 768, 1024, or 1536)",
        )
    if "steps" in text:
        return ErrorReport(
            error="Steps value is invalid",
            details=details,
            suggestion="Steps must be between 10-50 for Stability models",
        )
    return ErrorReport(error=ValidationError.message, details=details, suggestion=ValidationError.suggestion)


def _report_for(kind, details: str) -> ErrorReport:
    return ErrorReport(error=kind.message, details=details, suggestion=kind.suggestion, status_code=kind.status_code)


def classify_error(error: Exception, cfg_max: int = 10) -> ErrorReport:
    """Translate any exception raised while generating into an ErrorReport.

    Errors raised by this package carry their own category. Upstream botocore
    errors are matched first on the Bedrock error code and then on substrings
    of the error text.

    Args:
        error (Exception): The exception to classify
        cfg_max (int, optional): Upper CFG scale bound of the active model family. Defaults to 10.

    Returns:
        ErrorReport: Message, details, suggestion and HTTP status
    """
    details = str(error) or error.__class__.__name__

    if isinstance(error, ImageGenerationError):
        return ErrorReport(
            error=error.message if error.status_code >= 500 else details,
            details=details,
            suggestion=error.suggestion,
            status_code=error.status_code,
        )

    if isinstance(error, NoCredentialsError):
        return _report_for(CredentialsError, details)

    text = details.lower()
    kind = _ERROR_CODES.get(_error_code(error))

    # Bedrock reports this as a ValidationException
    if "on-demand throughput" in text:
        return ErrorReport(
            error="Model requires provisioned throughput",
            details=details,
            suggestion=(
                "This model is not available for on-demand use. Please select a different model "
                "or configure provisioned throughput in AWS Bedrock"
            ),
        )
    if kind is ValidationError or (kind is None and "validation" in text):
        return _validation_report(text, details, cfg_max)
    if kind is not None:
        return _report_for(kind, details)

    if "access denied" in text or "unauthorized" in text:
        return _report_for(AccessError, details)
    if "throttling" in text or "rate limit" in text:
        return _report_for(ThrottlingError, details)
    if "quota" in text or "limit exceeded" in text:
        return _report_for(QuotaError, details)
    if "model" in text and "not found" in text:
        return _report_for(ModelUnavailableError, details)
    if "credentials" in text or "signature" in text:
        return _report_for(CredentialsError, details)

    if not isinstance(error, (ClientError, BotoCoreError)):
        logger.warning(f"Unrecognized error type during image generation: {error.__class__.__name__}")
    return _report_for(ImageGenerationError, details)
