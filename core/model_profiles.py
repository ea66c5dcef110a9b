"""
Supported prediction models and how each one wants its input shaped.

Every profile pairs a pinned provider version with a pure ``build_input``
function; the registry below is the allowlist the media endpoint enforces.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

MEDIA_IMAGE = "image"
MEDIA_VIDEO = "video"

# First (smallest) entry of the admin resolution presets for each ratio.
RESOLUTION_PRESETS: Dict[str, Tuple[int, int]] = {
    "1:1": (1024, 1024),
    "16:9": (1024, 576),
    "4:3": (1024, 768),
    "3:2": (1024, 683),
    "2:3": (683, 1024),
    "3:4": (768, 1024),
    "9:16": (576, 1024),
    "21:9": (1024, 437),
}
DEFAULT_ASPECT_RATIO = "1:1"
MAX_IMAGES = 9

InputBuilder = Callable[[Mapping[str, Any]], Dict[str, Any]]


def pick(payload: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    """First non-empty value among camelCase/snake_case spellings of a field."""
    for name in names:
        value = payload.get(name)
        if value is not None and value != "":
            return value
    return default


def aspect_ratio_of(payload: Mapping[str, Any], default: str = DEFAULT_ASPECT_RATIO) -> str:
    return str(pick(payload, "aspectRatio", "aspect_ratio", default=default))


def dimensions_for(aspect_ratio: str) -> Tuple[int, int]:
    return RESOLUTION_PRESETS.get(aspect_ratio, RESOLUTION_PRESETS[DEFAULT_ASPECT_RATIO])


def requested_image_count(payload: Mapping[str, Any]) -> Optional[int]:
    raw = pick(payload, "numberOfImages", "number_of_images", "numOutputs", "num_outputs")
    if raw is None:
        return None
    try:
        count = int(raw)
    except (TypeError, ValueError):
        return None
    return max(1, min(MAX_IMAGES, count))


def _round_to_64(value: float) -> int:
    return int(round(value / 64.0)) * 64


def _with_optional(body: Dict[str, Any], payload: Mapping[str, Any], mapping: Mapping[str, Tuple[str, ...]]):
    for target, names in mapping.items():
        value = pick(payload, *names)
        if value is not None:
            body[target] = value
    return body


def build_imagen_4(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "prompt": payload["prompt"],
        "aspect_ratio": aspect_ratio_of(payload),
        "safety_filter_level": pick(payload, "safetyFilterLevel", "safety_filter_level", default="block_only_high"),
    }


def build_imagen_3_fast(payload: Mapping[str, Any]) -> Dict[str, Any]:
    body = {"prompt": payload["prompt"], "aspect_ratio": aspect_ratio_of(payload)}
    return _with_optional(
        body,
        payload,
        {
            "negative_prompt": ("negativePrompt", "negative_prompt"),
            "safety_filter_level": ("safetyFilterLevel", "safety_filter_level"),
        },
    )


def build_minimax_image(payload: Mapping[str, Any]) -> Dict[str, Any]:
    body = {"prompt": payload["prompt"], "aspect_ratio": aspect_ratio_of(payload)}
    count = requested_image_count(payload)
    if count is not None:
        body["number_of_images"] = count
    return _with_optional(
        body,
        payload,
        {
            "prompt_optimizer": ("promptOptimizer", "prompt_optimizer"),
            "subject_reference": ("subjectReference", "subject_reference"),
        },
    )


def build_sana(payload: Mapping[str, Any]) -> Dict[str, Any]:
    ratio = aspect_ratio_of(payload)
    try:
        ratio_w, ratio_h = (float(part) for part in ratio.split(":"))
    except ValueError:
        ratio_w, ratio_h = 1.0, 1.0
    base = 1024
    if ratio_w >= ratio_h:
        width, height = base, base * ratio_h / ratio_w
    else:
        width, height = base * ratio_w / ratio_h, base
    body = {"prompt": payload["prompt"], "width": _round_to_64(width), "height": _round_to_64(height)}
    return _with_optional(body, payload, {"negative_prompt": ("negativePrompt", "negative_prompt")})


def build_sized_image(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Width/height from the resolution table; used by SDXL and any model without its own builder."""
    width, height = dimensions_for(aspect_ratio_of(payload))
    body = {
        "prompt": payload["prompt"],
        "width": int(pick(payload, "width", default=width)),
        "height": int(pick(payload, "height", default=height)),
    }
    return _with_optional(
        body,
        payload,
        {
            "negative_prompt": ("negativePrompt", "negative_prompt"),
            "num_inference_steps": ("numInferenceSteps", "num_inference_steps"),
            "guidance_scale": ("guidanceScale", "guidance_scale"),
            "seed": ("seed",),
        },
    )


def _video_base(payload: Mapping[str, Any], prompt: str) -> Dict[str, Any]:
    body: Dict[str, Any] = {"prompt": prompt, "aspect_ratio": aspect_ratio_of(payload, "16:9")}
    return _with_optional(
        body,
        payload,
        {
            "negative_prompt": ("negativePrompt", "negative_prompt"),
            "duration": ("duration", "durationSeconds", "duration_seconds"),
            "fps": ("fps",),
            "first_frame_image": ("firstFrameImage", "first_frame_image"),
        },
    )


def build_veo_2(payload: Mapping[str, Any]) -> Dict[str, Any]:
    body = _video_base(payload, payload["prompt"])
    return _with_optional(body, payload, {"seed": ("seed",)})


def build_video_director(payload: Mapping[str, Any]) -> Dict[str, Any]:
    prompt = payload["prompt"]
    movements = pick(payload, "cameraMovements", "camera_movements") or []
    if isinstance(movements, str):
        movements = [movements]
    movements = [str(item) for item in movements][:3]
    if movements:
        prompt = f"[{', '.join(movements)}] {prompt}"
    body = _video_base(payload, prompt)
    body.setdefault("fps", 25)
    return _with_optional(body, payload, {"prompt_optimizer": ("promptOptimizer", "prompt_optimizer")})


def build_minimax_video(payload: Mapping[str, Any]) -> Dict[str, Any]:
    body = _video_base(payload, payload["prompt"])
    body.setdefault("fps", 25)
    return _with_optional(
        body,
        payload,
        {
            "image_url": ("imageUrl", "image_url"),
            "subject_reference": ("subjectReference", "subject_reference"),
            "prompt_optimizer": ("promptOptimizer", "prompt_optimizer"),
        },
    )


@dataclass(frozen=True)
class ModelProfile:
    key: str
    version: str
    media_type: str
    build_input: InputBuilder = build_sized_image

    @property
    def identifier(self) -> str:
        return f"{self.key}:{self.version}"


MODEL_PROFILES: Dict[str, ModelProfile] = {
    profile.key: profile
    for profile in (
        ModelProfile(
            "google/imagen-4",
            "9e3ce855e6437b594a6716d54a8c7d0eaa10c28a8ada83c52ee84bde3b98f88d",
            MEDIA_IMAGE,
            build_imagen_4,
        ),
        ModelProfile("google/imagen-3-fast", "swntzryxznrm80cmvc1aqbnqgg", MEDIA_IMAGE, build_imagen_3_fast),
        ModelProfile("minimax/image-01", "w4agaakfhnrme0cnbhgtyfmstc", MEDIA_IMAGE, build_minimax_image),
        ModelProfile(
            "nvidia/sana",
            "c6b5d2b7459910fec94432e9e1203c3cdce92d6db20f714f1355747990b52fa6",
            MEDIA_IMAGE,
            build_sana,
        ),
        ModelProfile(
            "stability-ai/sdxl",
            "39ed52f2a78e934b3ba6e2a89f5b1c712de7dfea535525255b1aa35c5565e08b",
            MEDIA_IMAGE,
        ),
        ModelProfile("google/veo-2", "tjqhsk4eddrma0cn7w38c91tq8", MEDIA_VIDEO, build_veo_2),
        ModelProfile(
            "minimax/video-01-director",
            "654gq25cfxrmc0cmyjev7cz4rg",
            MEDIA_VIDEO,
            build_video_director,
        ),
        ModelProfile("minimax/video-01", "15eyanar9xrg80ckd3ytdz0hhr", MEDIA_VIDEO, build_minimax_video),
    )
}


def resolve_profile(model_identifier: str) -> Optional[ModelProfile]:
    """Look up ``owner/name`` or ``owner/name:version``; a version must match the pinned one."""
    key, _, version = str(model_identifier or "").strip().partition(":")
    profile = MODEL_PROFILES.get(key)
    if profile is None or (version and version != profile.version):
        return None
    return profile


def known_model_keys() -> list:
    return sorted(MODEL_PROFILES)
