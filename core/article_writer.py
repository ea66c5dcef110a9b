"""LLM-backed article writing behind the generate-article endpoint."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Sequence

from slugify import slugify

from utils.logger import setup_logger

HEADING = re.compile(r"^#\s+(.+)$", re.MULTILINE)

SYSTEM_PROMPT = (
    "You are an expert content writer specializing in creating high-quality, engaging articles. "
    "Write in a {tone} tone and style. Include a compelling title, introduction, well-structured body "
    "with headers, and a conclusion. The content should be original, informative, and valuable to readers."
)
USER_PROMPT = (
    'Write a comprehensive article about "{topic}" {keywords_text}. '
    "The article should be approximately {word_count} words long. Use markdown formatting for headers "
    "and structure. Do NOT include a title at the beginning - start directly with the introduction. "
    "Use ## for main sections and ### for subsections. Focus on creating engaging, well-structured content."
)
IMAGE_PROMPT = (
    "Professional, high-quality blog featured image about {topic}. Modern, clean, visually appealing "
    "design. Corporate style, professional photography aesthetic. Relevant icons, graphics, or abstract "
    "representation. Bright, vibrant colors. No text overlays. Suitable for a technology blog header."
)


class ArticleWriter:
    def __init__(
        self,
        client,
        *,
        model: str = "gpt-4o",
        media_service=None,
        image_model: str = "google/imagen-4",
        logger=None,
    ) -> None:
        self.client = client
        self.model = model
        self.media_service = media_service
        self.image_model = image_model
        self.logger = logger or setup_logger(self.__class__.__name__)

    def write(
        self,
        topic: str,
        keywords: Sequence[str] = (),
        tone: str = "informative",
        word_count: int = 800,
        include_image: bool = True,
    ) -> Dict[str, Any]:
        keywords_text = f"including these keywords: {', '.join(keywords)}" if keywords else ""
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT.format(tone=tone)},
            {
                "role": "user",
                "content": USER_PROMPT.format(topic=topic, keywords_text=keywords_text, word_count=word_count),
            },
        ]
        self.logger.info("Writing article about: %s", topic)
        completion = self.client.chat.completions.create(model=self.model, messages=messages)
        content = completion.choices[0].message.content or ""

        heading = HEADING.search(content)
        title = heading.group(1).strip() if heading else topic
        return {
            "title": title,
            "content": content,
            "slug": slugify(title),
            "imageUrl": self._cover_image(topic) if include_image else None,
        }

    def _cover_image(self, topic: str) -> Optional[str]:
        if not self.media_service:
            return None
        try:
            result = self.media_service.generate(
                {
                    "mediaType": "image",
                    "modelIdentifier": self.image_model,
                    "prompt": IMAGE_PROMPT.format(topic=topic),
                    "aspectRatio": "16:9",
                }
            )
        except Exception as exc:
            self.logger.error("Error generating article image: %s", exc)
            return None
        return result.get("imageUrl")
