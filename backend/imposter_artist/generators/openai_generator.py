from __future__ import annotations

import logging
import re

from openai import OpenAI, OpenAIError

from .base import Generator

logger = logging.getLogger(__name__)

COLOR_NAMES = {
    "#ef4444": "bright red",
    "#3b82f6": "dark blue",
    "#22c55e": "dark green",
    "#eab308": "dark gold",
    "#a855f7": "purple",
    "#ec4899": "pink",
    "#14b8a6": "teal",
    "#f97316": "orange",
}

WORD_PROMPT = (
    "Generate a single common noun that is easy to draw (e.g., apple, cat, house, tree). "
    "Output ONLY the word, nothing else. No numbers, no spaces."
)

IMPOSTER_DRAWING_PROMPT = (
    "Draw a single, simple, abstract {color} line stroke on a white background. "
    "It should look like a random squiggle made with a {color} marker. Minimalist. "
    "Do not fill the page. Just one or two lines. Do not use any other colors."
)

ARTIST_DRAWING_PROMPT = (
    "Draw a SINGLE PART or STROKE of a {word} on a white background using a {color} marker. "
    "Do NOT draw the entire {word}. Draw only a simple curve, line, or shape that is PART of the object. "
    "The style should be simple {color} line art. Do not include text. Do not use any other colors."
)

CHAT_PROMPT = """You are playing a collaborative drawing game called Imposter Artist.
Roles: Artists (know word), Imposter (doesn't know word).
Everyone draws on the SAME canvas in their own color.

Your Name: {name}
Your Role: {role}
The Word: {word}

Game Context:
{log}

Instructions:
- Write a short chat message (1 sentence).
- If you are Imposter: Try to blend in. Mention the colors or lines.
- If you are Artist: Comment on how the drawing is coming together.
- Be casual."""

VOTE_PROMPT = """You are {name} ({role}).
Vote for who you think is the Imposter.

Candidates:
{candidates}

Game Log:
{log}

Return ONLY the ID of the player you want to vote for."""


class OpenAIGenerator(Generator):
    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        image_model: str = "gpt-image-1",
        client: OpenAI | None = None,
    ) -> None:
        self.model = model
        self.image_model = image_model
        self.client = client or OpenAI(api_key=api_key or None)

    def _complete(self, prompt: str, max_tokens: int | None = None) -> str:
        kwargs = {"max_tokens": max_tokens} if max_tokens else {}
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return (response.choices[0].message.content or "").strip()

    def suggest_word(self) -> str:
        try:
            text = self._complete(WORD_PROMPT, max_tokens=10)
        except OpenAIError as e:
            logger.warning("Word generation failed: %s", e)
            return "tree"
        word = re.sub(r"[^a-z]", "", text.lower())
        return word or "tree"

    def generate_drawing(self, word, is_imposter, round, color):
        color_name = COLOR_NAMES.get(color, "black")
        if is_imposter or not word:
            prompt = IMPOSTER_DRAWING_PROMPT.format(color=color_name)
        else:
            prompt = ARTIST_DRAWING_PROMPT.format(word=word, color=color_name)

        try:
            response = self.client.images.generate(model=self.image_model, prompt=prompt, size="1536x1024")
        except OpenAIError as e:
            logger.warning("Drawing generation failed: %s", e)
            return None

        for item in response.data or []:
            if getattr(item, "b64_json", None):
                return f"data:image/png;base64,{item.b64_json}"
        return None

    def generate_chat(self, player_name, role, word, log):
        prompt = CHAT_PROMPT.format(
            name=player_name,
            role=role,
            word="UNKNOWN" if role == "IMPOSTER" else word,
            log="\n".join(log),
        )
        try:
            return self._complete(prompt, max_tokens=50) or "Thinking..."
        except OpenAIError as e:
            logger.warning("Chat generation failed: %s", e)
            return "Thinking..."

    def generate_vote(self, player_name, role, candidates, log):
        prompt = VOTE_PROMPT.format(
            name=player_name,
            role=role,
            candidates="\n".join(f"- {c['name']} (ID: {c['id']})" for c in candidates),
            log="\n".join(log[-10:]),
        )
        try:
            answer = self._complete(prompt)
        except OpenAIError as e:
            logger.warning("Vote generation failed: %s", e)
            return candidates[0]["id"]

        for c in candidates:
            if c["id"] in answer or c["name"] in answer:
                return c["id"]
        return candidates[0]["id"]
