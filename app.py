import logging
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.config import AppConfig, configure_logging
from backend.errors import ImageGenerationError, UnsupportedModelError, classify_error
from backend.image_generator import BedrockImageGenerator
from backend.image_input import normalize_input_image
from backend.request_adapter import (
    CanonicalGenerationRequest,
    ProviderFamily,
    classify,
    resolve_model_id,
)

logger = logging.getLogger(__name__)


class GenerateImageRequest(BaseModel):
    """Body of POST /api/generate-image, field names as posted by the form"""
    model: str = ""
    positivePrompt: str = ""
    negativePrompt: Optional[str] = None
    cfgScale: Optional[float] = Field(default=None, allow_inf_nan=False)
    steps: Optional[int] = Field(default=None, ge=0)
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    seed: Optional[int] = Field(default=None, ge=0)
    inputImage: Optional[str] = None
    imageStrength: Optional[float] = Field(default=None, ge=0, le=1)

    def to_canonical(self, input_image: Optional[str]) -> CanonicalGenerationRequest:
        return CanonicalGenerationRequest(
            model=self.model,
            positive_prompt=self.positivePrompt,
            negative_prompt=self.negativePrompt,
            cfg_scale=self.cfgScale,
            steps=self.steps,
            width=self.width,
            height=self.height,
            seed=self.seed,
            input_image=input_image,
            image_strength=self.imageStrength,
        )


def _cfg_max(model: str) -> int:
    """Upper CFG bound quoted in validation suggestions for this model"""
    try:
        return classify(resolve_model_id(model)).cfg_range[1]
    except UnsupportedModelError:
        return ProviderFamily.NOVA.cfg_range[1]


def get_generator(request: Request) -> BedrockImageGenerator:
    return request.app.state.generator


def create_app(config: Optional[AppConfig] = None, generator: Optional[BedrockImageGenerator] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config (AppConfig, optional): Service configuration. Loaded from the environment when omitted.
        generator (BedrockImageGenerator, optional): Generator to serve requests with. Built from config when omitted.
    """
    config = config or AppConfig.from_env()
    configure_logging(config)

    app = FastAPI(title="Bedrock Image Studio")
    app.state.config = config
    app.state.generator = generator or BedrockImageGenerator(config)

    @app.get("/api/health")
    def health():
        return {"status": "ok", "region": config.region}

    # Sync route: the boto3 call blocks, FastAPI runs it in its thread pool
    @app.post("/api/generate-image")
    def generate_image(body: GenerateImageRequest, generator: BedrockImageGenerator = Depends(get_generator)):
        logger.info(
            f"Request received: model={body.model}, hasInputImage={bool(body.inputImage)}, "
            f"imageStrength={body.imageStrength}, cfgScale={body.cfgScale}, "
            f"size={body.width}x{body.height}, steps={body.steps}, seed={body.seed}"
        )

        if not body.model or not body.positivePrompt.strip():
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Model and positive prompt are required"},
            )

        try:
            input_image = normalize_input_image(body.inputImage)
            result = generator.generate(body.to_canonical(input_image))
        except Exception as e:
            report = classify_error(e, cfg_max=_cfg_max(body.model))
            if isinstance(e, ImageGenerationError) and report.status_code < 500:
                logger.warning(f"Rejected image generation request: {report.details}")
            else:
                logger.error(f"Error generating image: {report.error} ({report.details})")
            return JSONResponse(status_code=report.status_code, content=report.to_response())

        return {"success": True, "image": result.data_url}

    return app


def main():
    config = AppConfig.from_env()
    app = create_app(config)
    logger.info(f"Starting server on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
