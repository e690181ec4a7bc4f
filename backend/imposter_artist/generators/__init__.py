from __future__ import annotations

import logging

from .base import Generator
from .local import LocalGenerator

logger = logging.getLogger(__name__)


def build_generator(config) -> Generator:
    kind = getattr(config, "GENERATOR", "local")
    if kind == "openai":
        if not getattr(config, "OPENAI_API_KEY", ""):
            logger.warning("GENERATOR=openai but OPENAI_API_KEY is empty, using the local generator")
            return LocalGenerator()

        from .openai_generator import OpenAIGenerator

        return OpenAIGenerator(
            api_key=config.OPENAI_API_KEY,
            model=config.OPENAI_MODEL,
            image_model=config.OPENAI_IMAGE_MODEL,
        )

    return LocalGenerator()


__all__ = ["Generator", "LocalGenerator", "build_generator"]
