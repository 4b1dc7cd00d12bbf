from __future__ import annotations

import logging

import openai

logger = logging.getLogger(__name__)

HINT_FALLBACK = "¡Un regalo especial espera por ti!"
EMPTY_HINT_FALLBACK = "¡Que la magia de la Navidad ilumine tu regalo!"

DEFAULT_MODEL = "gpt-4o-mini"


def build_prompt(receiver_name: str, language: str) -> str:
    return (
        f'Generate a short, festive, rhyming Secret Santa hint for a person named "{receiver_name}". '
        "It should be 2 lines long. Do not mention specific gifts, just a vague, magical holiday blessing. "
        f"Language: {language}."
    )


class HintService:
    """
    Decorative hint for the result page. ``generate_hint`` never raises:
    any failure comes back as HINT_FALLBACK.
    """

    def __init__(self, api_key: str | None = None, model: str = DEFAULT_MODEL,
                 language: str = "Spanish", client=None):
        self.api_key = api_key
        self.model = model
        self.language = language
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def generate_hint(self, receiver_name: str) -> str:
        if self._client is None and not self.api_key:
            logger.info("OPENAI_API_KEY not set; using fallback hint")
            return HINT_FALLBACK
        try:
            resp = self._get_client().chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": build_prompt(receiver_name, self.language)}],
                temperature=0.7,
            )
            content = (resp.choices[0].message.content or "").strip()
        except Exception as exc:
            logger.error(f"Hint generation failed: {exc}")
            return HINT_FALLBACK
        return content or EMPTY_HINT_FALLBACK
