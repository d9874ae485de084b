from __future__ import annotations

import logging

import litellm

litellm.drop_params = True

logger = logging.getLogger(__name__)


class LLMClient:
    """Thin async wrapper over litellm for single-turn document generation."""

    def __init__(self, model: str, num_retries: int = 2) -> None:
        self.model = model
        self.num_retries = num_retries

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.7,
    ) -> str:
        response = await litellm.acompletion(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
            num_retries=self.num_retries,
        )
        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                "%s usage: %s prompt / %s completion tokens",
                self.model,
                usage.prompt_tokens,
                usage.completion_tokens,
            )
        return response.choices[0].message.content or ""
