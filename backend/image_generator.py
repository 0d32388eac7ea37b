import json
import boto3
import logging
from typing import Dict, Optional

from backend.config import AppConfig
from backend.request_adapter import (
    CanonicalGenerationRequest,
    CanonicalImageResult,
    ProviderPayload,
    build_payload,
    classify,
    extract_image,
    resolve_model_id,
)

logger = logging.getLogger(__name__)


class BedrockImageGenerator:
    """Bedrock image generator for Stability, Titan and Nova Canvas models."""

    def __init__(self, config: Optional[AppConfig] = None, client=None):
        """Initialize the Bedrock Image Generator.

        Args:
            config (AppConfig, optional): Region and timeouts. Defaults to AppConfig().
            client (optional): Pre-built bedrock-runtime client, used instead of creating one.
        """
        logger.info("Initializing BedrockImageGenerator...")

        self.config = config or AppConfig()
        self.bedrock_runtime = client or boto3.client(
            service_name="bedrock-runtime",
            region_name=self.config.region,
            config=self.config.botocore_config()
        )

        logger.info(f"BedrockImageGenerator initialized successfully (region: {self.config.region})")

    def _invoke_model(self, payload: ProviderPayload) -> Dict:
        """Invoke the Bedrock model with the given payload.

        Args:
            payload (ProviderPayload): Model id and request body

        Returns:
            Dict: The decoded response body
        """
        try:
            logger.info(f"Calling Bedrock API for image generation with model {payload.model_id}...")
            response = self.bedrock_runtime.invoke_model(
                body=json.dumps(payload.body),
                modelId=payload.model_id,
                accept="application/json",
                contentType="application/json"
            )
            return json.loads(response.get("body").read())

        except Exception as e:
            logger.error(f"Model invocation failed: {str(e)}", exc_info=True)
            raise

    def generate(self, request: CanonicalGenerationRequest) -> CanonicalImageResult:
        """Generate one image for a canonical request.

        Args:
            request (CanonicalGenerationRequest): The generation request

        Returns:
            CanonicalImageResult: The first generated image

        Raises:
            UnsupportedModelError: If the model or prompt is rejected
            NoImageDataError: If the model returned no image
            botocore.exceptions.ClientError: If Bedrock rejected the call
        """
        try:
            model_id = resolve_model_id(request.model or "")
            logger.info(
                f"Starting image generation: model={model_id}, "
                f"mode={'image-to-image' if request.input_image else 'text-to-image'}"
            )
            logger.debug(f"Using prompt: {request.positive_prompt}")

            payload = build_payload(request, classify(model_id))
            family = payload.family

            image_config = payload.body.get("imageGenerationConfig", payload.body)
            logger.info(
                f"CFG Scale adjusted for {family.value} model: "
                f"{request.cfg_scale} -> {image_config.get('cfgScale', image_config.get('cfg_scale'))}"
            )

            response_body = self._invoke_model(payload)
            result = extract_image(response_body, family)

            logger.info("Image generated successfully")
            return result

        except Exception as e:
            logger.error(f"Failed to generate image: {str(e)}", exc_info=True)
            raise
