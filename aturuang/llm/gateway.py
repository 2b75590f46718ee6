import base64
from datetime import date, timedelta

import requests
from loguru import logger
from openai import OpenAI, OpenAIError

from aturuang.errors import EmptyResponseError, TransportError
from aturuang.llm.prompts import RECEIPT_PROMPT, SYSTEM_PROMPT, reference_block
from aturuang.models.schemas import CreditBalance


class ExpenseGateway:
    """Sends user turns to the model and hands back its raw text."""

    def __init__(
        self,
        api_key: str,
        text_model: str,
        vision_model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        client: OpenAI | None = None,
    ):
        self.client = client or OpenAI(base_url=base_url, api_key=api_key, max_retries=0)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.text_model = text_model
        self.vision_model = vision_model

    def extract_from_text(self, message: str, reference_date: date) -> str:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"{_references(reference_date)}\n\nPesan user:\n{message}",
            },
        ]
        return self._complete(self.text_model, messages, json_mode=True)

    def extract_from_image(
        self,
        image_bytes: bytes,
        caption: str | None = None,
        reference_date: date | None = None,
        mime_type: str = "image/jpeg",
    ) -> str:
        reference_date = reference_date or date.today()
        text = _references(reference_date)
        if caption:
            text += f"\n\nCaption user:\n{caption}"

        data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        messages = [
            {"role": "system", "content": RECEIPT_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": text},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            },
        ]
        return self._complete(self.vision_model, messages, json_mode=False)

    def _complete(self, model: str, messages: list[dict], json_mode: bool) -> str:
        kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=0.1,
                **kwargs,
            )
        except OpenAIError as e:
            logger.error("LLM request to {} failed: {}", model, e)
            raise TransportError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.warning("LLM {} returned an empty response", model)
            raise EmptyResponseError(f"no content from {model}")

        logger.debug("LLM raw response: {}", content)
        return content

    def get_credits(self) -> CreditBalance | None:
        """Remaining OpenRouter credit, or None when it cannot be read."""
        try:
            resp = requests.get(
                f"{self.base_url}/credits",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=10,
            )
            resp.raise_for_status()
            data = resp.json()["data"]
            total = float(data["total_credits"])
            used = float(data["total_usage"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.warning("Credit balance unavailable: {}", e)
            return None
        return CreditBalance(total=total, used=used, remaining=total - used)


def _references(today: date) -> str:
    yesterday = today - timedelta(days=1)
    return reference_block(today.isoformat(), yesterday.isoformat())
