"""
Image and video generation through the prediction API.

``MediaGenerationService.generate`` validates a request, submits it to the
provider, polls until a terminal state and re-hosts image outputs in blob
storage. Videos are returned with the provider URL as-is.
"""

from __future__ import annotations

import re
import time
from typing import Any, Dict, Mapping, Optional

import requests

from core.blob_storage import MediaLibrary, extension_for
from core.model_profiles import (
    MEDIA_IMAGE,
    MEDIA_VIDEO,
    ModelProfile,
    aspect_ratio_of,
    dimensions_for,
    known_model_keys,
    requested_image_count,
    resolve_profile,
)
from core.prediction_client import (
    TERMINAL_FAILURE,
    TERMINAL_SUCCESS,
    PredictionAPIError,
    PredictionClient,
    PredictionNetworkError,
)
from utils.logger import setup_logger

REQUIRED_FIELDS = ("mediaType", "modelIdentifier", "prompt")


class MediaGenerationError(RuntimeError):
    def __init__(self, status: int, error: str, message: Optional[str] = None, details: Any = None) -> None:
        super().__init__(message or error)
        self.status = status
        self.error = error
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        if self.details is not None:
            payload["details"] = self.details
        return payload


class MediaGenerationService:
    def __init__(
        self,
        prediction_client: PredictionClient,
        media_library: Optional[MediaLibrary] = None,
        *,
        poll_interval: float = 5,
        max_attempts: int = 60,
        download_session: Optional[requests.Session] = None,
        download_timeout: float = 60,
        logger=None,
    ) -> None:
        self.prediction_client = prediction_client
        self.media_library = media_library
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.download_session = download_session or requests.Session()
        self.download_timeout = download_timeout
        self.logger = logger or setup_logger(self.__class__.__name__)

    def generate(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        media_type, profile = self._validate(payload)
        model_input = profile.build_input(payload)
        self.logger.info("Generating %s with %s", media_type, profile.key)

        prediction = self._submit(profile, model_input)
        prediction = self._wait(prediction)
        output = prediction.get("output")

        if media_type == MEDIA_VIDEO:
            video_url = output[0] if isinstance(output, list) and output else output
            if not video_url:
                raise MediaGenerationError(500, "Prediction returned no output")
            return {"success": True, "videoUrl": video_url}

        return self._image_response(profile, payload, model_input, output)

    def _validate(self, payload: Mapping[str, Any]):
        missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
        if missing:
            raise MediaGenerationError(400, "Missing required parameters", f"Missing: {', '.join(missing)}")

        media_type = payload["mediaType"]
        if media_type not in (MEDIA_IMAGE, MEDIA_VIDEO):
            raise MediaGenerationError(400, "Invalid media type specified", f"Unsupported mediaType '{media_type}'")

        profile = resolve_profile(payload["modelIdentifier"])
        if profile is None:
            raise MediaGenerationError(
                400,
                "Invalid model identifier",
                f"Unknown model '{payload['modelIdentifier']}'. Supported models: {', '.join(known_model_keys())}",
            )
        if profile.media_type != media_type:
            raise MediaGenerationError(
                400,
                "Model does not support this media type",
                f"{profile.key} generates {profile.media_type}, not {media_type}",
            )
        return media_type, profile

    def _submit(self, profile: ModelProfile, model_input: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            return self.prediction_client.create(profile.version, model_input)
        except PredictionNetworkError as exc:
            self.logger.error("Prediction request for %s failed: %s", profile.key, exc)
            raise MediaGenerationError(500, "Failed to start prediction", str(exc)) from exc
        except PredictionAPIError as exc:
            self.logger.error("Prediction API rejected %s with HTTP %s", profile.key, exc.status)
            raise MediaGenerationError(exc.status, "Prediction API error", str(exc), exc.body) from exc

    def _wait(self, prediction: Dict[str, Any]) -> Dict[str, Any]:
        attempts = 0
        while True:
            status = prediction.get("status")
            if status == TERMINAL_SUCCESS:
                return prediction
            if status in TERMINAL_FAILURE:
                self.logger.error("Prediction %s %s: %s", prediction.get("id"), status, prediction.get("error"))
                raise MediaGenerationError(500, "Prediction failed", str(prediction.get("error") or status))
            if attempts >= self.max_attempts:
                self.logger.error("Prediction %s still %s after %d polls", prediction.get("id"), status, attempts)
                raise MediaGenerationError(504, "Prediction timed out", f"No result after {attempts} status checks")

            time.sleep(self.poll_interval)
            attempts += 1
            try:
                prediction = self.prediction_client.get(prediction["id"])
            except (PredictionNetworkError, PredictionAPIError) as exc:
                self.logger.error("Polling prediction %s failed: %s", prediction.get("id"), exc)
                raise MediaGenerationError(500, "Failed to poll prediction", str(exc)) from exc

    def _image_response(
        self,
        profile: ModelProfile,
        payload: Mapping[str, Any],
        model_input: Mapping[str, Any],
        output: Any,
    ) -> Dict[str, Any]:
        if isinstance(output, list):
            count = requested_image_count(payload) or len(output)
            provider_urls = [str(url) for url in output[:count] if url]
        else:
            provider_urls = [str(output)] if output else []
        if not provider_urls:
            raise MediaGenerationError(500, "Prediction returned no output")

        urls = [
            self._rehost(url, profile, payload, model_input, index)
            for index, url in enumerate(provider_urls)
        ]
        return {
            "success": True,
            "url": urls[0],
            "imageUrl": urls[0],
            "imageUrls": urls,
            "count": len(urls),
        }

    def _rehost(
        self,
        url: str,
        profile: ModelProfile,
        payload: Mapping[str, Any],
        model_input: Mapping[str, Any],
        index: int,
    ) -> str:
        """Copy one provider image into blob storage; any failure keeps the provider URL."""
        if not self.media_library:
            return url
        prompt = str(payload["prompt"])
        try:
            response = self.download_session.get(url, timeout=self.download_timeout)
            response.raise_for_status()
            content_type = response.headers.get("content-type") or "image/png"
            default_width, default_height = dimensions_for(aspect_ratio_of(payload))
            safe_prompt = re.sub(r"[^a-zA-Z0-9]", "-", prompt[:30])
            return self.media_library.upload_image(
                response.content,
                filename=f"img-{profile.key.replace('/', '-')}-{safe_prompt}-{index + 1}.{extension_for(content_type)}",
                content_type=content_type,
                title=prompt[:100],
                alt_tag=f"AI-generated image: {prompt[:100]} (Model: {profile.key})",
                description=prompt,
                width=model_input.get("width", default_width),
                height=model_input.get("height", default_height),
            )
        except Exception as exc:
            self.logger.warning("Keeping provider URL for image %d: %s", index + 1, exc)
            return url


def describe_endpoint() -> Dict[str, Any]:
    """Static usage document served on GET."""
    return {
        "endpoint": "/api/admin/ai-tools/generate-media",
        "methods": {
            "POST": "Generate an image or video. Body: {mediaType, modelIdentifier, prompt, ...model options}",
            "HEAD": "Availability check",
            "OPTIONS": "CORS preflight",
            "GET": "This description",
        },
        "mediaTypes": [MEDIA_IMAGE, MEDIA_VIDEO],
        "models": known_model_keys(),
    }
