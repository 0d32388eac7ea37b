"""
Request shaping for the Bedrock text-to-image model families.

One canonical generation request is translated into the payload expected by
Stability, Titan or Nova Canvas models, and each family's response is
normalized back into a single image result. Nothing here performs I/O.
"""
import base64
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from backend.errors import NoImageDataError, UnsupportedModelError

# Short aliases kept for older clients that post the form's select value.
# Entries containing a dot are never looked up, resolve_model_id returns them as is.
MODEL_IDS = {
    "sd3-large": "stability.sd3-large-v1:0",
    "sd3.5-large": "stability.stable-diffusion-xl-v1:0",
    "stable-ultra-v1.0": "stability.stable-image-ultra-v1:0",
    "stable-ultra-v1.1": "stability.stable-image-ultra-v1:0",
    "stable-core-v1.0": "stability.stable-image-core-v1:0",
    "stable-core-v1.1": "stability.stable-image-core-v1:0",
    "titan-g1": "amazon.titan-image-generator-v1",
    "titan-g1-v2": "amazon.titan-image-generator-v1",
    "nova-canvas": "amazon.nova-canvas-v1:0",
}

STABILITY_ALIASES = ("sd3-large", "sd3.5-large")

DEFAULT_CFG_SCALE = 7
DEFAULT_STEPS = 30
DEFAULT_DIMENSION = 1024
DEFAULT_IMAGE_STRENGTH = 0.7
MAX_RANDOM_SEED = 999999


class ProviderFamily(Enum):
    STABILITY = "stability"
    TITAN = "titan"
    NOVA = "nova"

    @property
    def cfg_range(self):
        """Valid (min, max) CFG scale for the family."""
        if self is ProviderFamily.STABILITY:
            return 1, 20
        return 1, 10


@dataclass
class CanonicalGenerationRequest:
    """Provider independent image generation request."""

    model: str
    positive_prompt: str
    negative_prompt: Optional[str] = None
    cfg_scale: Optional[float] = None
    steps: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    seed: Optional[int] = None
    input_image: Optional[str] = None
    image_strength: Optional[float] = None


@dataclass
class ProviderPayload:
    """Request body for one provider family, keyed by the concrete model id."""

    family: ProviderFamily
    model_id: str
    body: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CanonicalImageResult:
    image_base64: str

    @property
    def image_bytes(self) -> bytes:
        return base64.b64decode(self.image_base64.encode("ascii"))

    @property
    def data_url(self) -> str:
        return f"data:image/png;base64,{self.image_base64}"


def resolve_model_id(model_value: str) -> str:
    """Return the fully qualified model id for a form value.

    Values that already look qualified (contain '.' or ':') are used as is,
    otherwise the alias table is consulted. Unknown aliases pass through.
    """
    if "." in model_value or ":" in model_value:
        return model_value
    return MODEL_IDS.get(model_value, model_value)


def classify(model_id: str) -> ProviderFamily:
    """Determine which provider family a model id belongs to.

    Raises:
        UnsupportedModelError: If the id matches no known family
    """
    if model_id.startswith("stability.") or model_id.startswith("stable") or model_id in STABILITY_ALIASES:
        return ProviderFamily.STABILITY
    if model_id.startswith("amazon.titan"):
        return ProviderFamily.TITAN
    if model_id.startswith("amazon.nova"):
        return ProviderFamily.NOVA
    raise UnsupportedModelError(f"Unsupported model type: {model_id}")


def clamp_cfg_scale(value: Optional[float], family: ProviderFamily) -> float:
    low, high = family.cfg_range
    # NaN slips through min/max, treat it as missing
    if value is None or math.isnan(value):
        value = DEFAULT_CFG_SCALE
    return min(max(value, low), high)


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _build_stability(request: CanonicalGenerationRequest, family: ProviderFamily, rng) -> Dict:
    text_prompts = [{"text": request.positive_prompt, "weight": 1}]
    if _has_text(request.negative_prompt):
        text_prompts.append({"text": request.negative_prompt, "weight": -1})

    body = {
        "text_prompts": text_prompts,
        "cfg_scale": clamp_cfg_scale(request.cfg_scale, family),
        "steps": request.steps or DEFAULT_STEPS,
        "seed": request.seed if request.seed is not None else rng.randint(0, MAX_RANDOM_SEED),
        "width": request.width or DEFAULT_DIMENSION,
        "height": request.height or DEFAULT_DIMENSION,
    }

    if request.input_image:
        # Stability's image_strength is how much the init image may change,
        # the form's strength is how much of it to keep
        strength = request.image_strength if request.image_strength is not None else DEFAULT_IMAGE_STRENGTH
        body["init_image"] = request.input_image
        body["image_strength"] = round(1.0 - strength, 6)

    return body


def _build_titan_nova(request: CanonicalGenerationRequest, family: ProviderFamily, rng) -> Dict:
    image_config = {
        "numberOfImages": 1,
        "height": request.height or DEFAULT_DIMENSION,
        "width": request.width or DEFAULT_DIMENSION,
        "cfgScale": clamp_cfg_scale(request.cfg_scale, family),
    }
    # No seed key at all lets the provider pick one
    if request.seed is not None:
        image_config["seed"] = request.seed

    params = {"text": request.positive_prompt}
    if _has_text(request.negative_prompt):
        params["negativeText"] = request.negative_prompt

    if request.input_image:
        params["images"] = [request.input_image]
        params["similarityStrength"] = (
            request.image_strength if request.image_strength is not None else DEFAULT_IMAGE_STRENGTH
        )
        return {
            "taskType": "IMAGE_VARIATION",
            "imageVariationParams": params,
            "imageGenerationConfig": image_config,
        }

    return {
        "taskType": "TEXT_IMAGE",
        "textToImageParams": params,
        "imageGenerationConfig": image_config,
    }


def build_payload(
    request: CanonicalGenerationRequest,
    family: Optional[ProviderFamily] = None,
    rng: Optional[random.Random] = None,
) -> ProviderPayload:
    """Build the provider request body for a canonical request.

    Args:
        request (CanonicalGenerationRequest): The canonical request
        family (ProviderFamily, optional): Family of the resolved model. Classified from the model when omitted.
        rng (random.Random, optional): Source for random Stability seeds. Defaults to the module RNG.

    Returns:
        ProviderPayload: Family, concrete model id and JSON body

    Raises:
        UnsupportedModelError: If the prompt is empty or the model has no family
    """
    if not _has_text(request.positive_prompt):
        raise UnsupportedModelError("Model and positive prompt are required")

    model_id = resolve_model_id(request.model or "")
    if family is None:
        family = classify(model_id)

    builder = _BUILDERS[family]
    body = builder(request, family, rng or random)
    return ProviderPayload(family=family, model_id=model_id, body=body)


def _extract_stability(response: Dict) -> Optional[str]:
    artifacts = response.get("artifacts") or []
    if not artifacts:
        return None
    first = artifacts[0]
    return first.get("base64") if isinstance(first, dict) else None


def _extract_titan_nova(response: Dict) -> Optional[str]:
    images = response.get("images") or []
    if not images:
        return None
    first = images[0]
    return first if isinstance(first, str) else None


def extract_image(response: Dict, family: ProviderFamily) -> CanonicalImageResult:
    """Pull the first generated image out of a provider response.

    Raises:
        NoImageDataError: If the response carries no image
    """
    image_base64 = _EXTRACTORS[family](response)
    if not image_base64:
        provider_error = response.get("error")
        if provider_error:
            raise NoImageDataError(f"No image data received from model: {provider_error}")
        raise NoImageDataError("No image data received from model")
    return CanonicalImageResult(image_base64=image_base64)


_BUILDERS: Dict[ProviderFamily, Callable] = {
    ProviderFamily.STABILITY: _build_stability,
    ProviderFamily.TITAN: _build_titan_nova,
    ProviderFamily.NOVA: _build_titan_nova,
}

_EXTRACTORS: Dict[ProviderFamily, Callable] = {
    ProviderFamily.STABILITY: _extract_stability,
    ProviderFamily.TITAN: _extract_titan_nova,
    ProviderFamily.NOVA: _extract_titan_nova,
}
