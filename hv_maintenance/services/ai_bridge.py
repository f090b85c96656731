import base64
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from hv_maintenance.config import Settings
from hv_maintenance.domain import plain_value
from hv_maintenance.exceptions import AIUnavailable, NoImageProduced

logger = logging.getLogger(__name__)

MIN_IMPROVABLE_LENGTH = 3


def _record_digest(record) -> Dict[str, Any]:
    """Compact view of a record for prompts (no image payloads)."""
    return {
        "id": record.id,
        "date": record.date.isoformat() if record.date else None,
        "municipality_id": record.municipality_id,
        "title": record.title,
        "nature": record.nature,
        "status": plain_value(record.status),
        "technician": record.technician,
        "description": record.description,
        "stages": [
            {"name": stage.name, "description": stage.description}
            for stage in record.stages
        ],
    }


class GeminiBridge:
    """
    Client for the Gemini ``generateContent`` REST endpoint.

    Every failure surfaces as ``AIUnavailable`` (or ``NoImageProduced``);
    callers treat both as non-fatal.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        text_model: str,
        image_model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.text_model = text_model
        self.image_model = image_model
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiBridge":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            base_url=settings.GEMINI_BASE_URL,
            text_model=settings.GEMINI_TEXT_MODEL,
            image_model=settings.GEMINI_IMAGE_MODEL,
            timeout=settings.AI_TIMEOUT_SECONDS,
        )

    # --- Transport ---

    async def _generate(self, model: str, parts: List[dict], generation_config: Optional[dict] = None) -> dict:
        if not self.api_key:
            raise AIUnavailable("GEMINI_API_KEY is not configured")

        payload = {"contents": [{"parts": parts}]}
        if generation_config:
            payload["generationConfig"] = generation_config

        url = f"{self.base_url}/models/{model}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("AI request to %s failed: %s", model, e)
            raise AIUnavailable(f"AI service unreachable: {e}") from e

        if response.status_code != 200:
            logger.warning("AI request to %s returned %s", model, response.status_code)
            raise AIUnavailable(f"AI service returned status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise AIUnavailable("AI service returned a malformed response") from e

    @staticmethod
    def _parts(body: dict) -> List[dict]:
        candidates = body.get("candidates") or []
        if not candidates:
            return []
        return (candidates[0].get("content") or {}).get("parts") or []

    def _text(self, body: dict) -> str:
        return "".join(part.get("text", "") for part in self._parts(body)).strip()

    # --- Capabilities ---

    async def analyze_image(self, image_bytes: bytes, context_text: str, mime_type: str = "image/jpeg") -> str:
        prompt = (
            "You are a senior inspector of high-voltage substations. "
            "Describe the technical condition visible in this maintenance photo, "
            "point out anomalies (soot on insulators, loose connections, leaks, corrosion) "
            "and answer in Brazilian Portuguese in at most five short sentences.\n\n"
            f"Activity context: {context_text}"
        )
        body = await self._generate(self.text_model, [
            {"text": prompt},
            {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(image_bytes).decode("ascii")}},
        ], {"temperature": 0.4})
        return self._text(body)

    async def improve_text(self, text: str) -> str:
        # Too short to be worth a round trip
        if not text or len(text.strip()) < MIN_IMPROVABLE_LENGTH:
            return text

        prompt = (
            "You are a technical reviewer specialised in electrical engineering and substation maintenance. "
            "Fix spelling, grammar and punctuation of the following Brazilian Portuguese text. "
            "Keep a professional, technical tone and correct misspelled technical terms "
            "(e.g. fuzivel -> fusível, dijuntor -> disjuntor). "
            "RETURN ONLY THE CORRECTED TEXT, without explanations.\n\n"
            f'Text: "{text}"'
        )
        body = await self._generate(self.text_model, [{"text": prompt}], {"temperature": 0.2})
        return self._text(body) or text

    async def generate_image(self, prompt_text: str) -> Tuple[bytes, str]:
        prompt = (
            "Create a high-quality technical image for an electrical maintenance report: "
            f"{prompt_text}. Style: realistic photo, field lighting, detailed."
        )
        body = await self._generate(self.image_model, [{"text": prompt}], {
            "responseModalities": ["TEXT", "IMAGE"],
            "imageConfig": {"aspectRatio": "16:9"},
        })

        for part in self._parts(body):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return base64.b64decode(inline["data"]), mime

        raise NoImageProduced("The AI service returned no image")

    async def generate_summary(self, records: Sequence) -> str:
        digest = json.dumps([_record_digest(r) for r in records], ensure_ascii=False)
        prompt = (
            "Write a professional executive summary for a maintenance supervisor, in Brazilian Portuguese. "
            f"Consider the following records: {digest}. "
            "Focus on statistics (pending vs completed), technical highlights and strategic "
            "recommendations for the Amazonas region."
        )
        body = await self._generate(self.text_model, [{"text": prompt}])
        return self._text(body)
