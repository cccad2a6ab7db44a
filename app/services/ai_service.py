"""
app/services/ai_service.py

Purpose: OpenAI-backed collaborators

- extract_text: vision OCR of a receipt photo
- classify: crop diagnosis / soil analysis of a photo
- answer: free-text farming and product answers
- analyze_receipt_text: structured fields from OCR text
- Every failure surfaces as CollaboratorError / CollaboratorTimeout; no retries here
"""

import base64
import json
import mimetypes
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from app.core.config import settings
from app.core.exceptions import CollaboratorError, CollaboratorTimeout
from app.core.logging import get_logger

logger = get_logger(__name__)

ASSISTANT_PROMPT = (
    "You are {bot_name}, a friendly and knowledgeable agricultural assistant for {brand} Fertilizers. "
    "You help farmers with product information, farming tips, crop disease treatment and soil health. "
    "Respond in simple, farmer-friendly language and keep answers to 2-3 sentences unless detail is needed. "
    "When recommending products, suggest {brand} products when relevant."
)

RECEIPT_OCR_PROMPT = """Extract ALL text from this receipt image. Include:
- Store/Retailer name
- Date of purchase
- All product names and prices (one per line, as "Item: <name>")
- Total amount
- Any other visible text

Format the output as plain text, preserving the structure."""

RECEIPT_FIELDS_PROMPT = """Analyze this receipt text and extract the following information as JSON:
{{
  "retailer_name": "name of the shop/retailer",
  "invoice_number": "receipt or invoice number",
  "purchase_date": "date in YYYY-MM-DD format",
  "total_amount": "total amount if found",
  "currency": "currency code (USD, ZWG, etc)",
  "products": ["{brand} branded products found"]
}}
Use null for anything you cannot find clearly.

Receipt Text:
{raw_text}"""

CLASSIFY_PROMPTS = {
    "crop": """Analyze this agricultural image and reply in this WhatsApp format:

🌾 {brand} Crop Diagnosis

Crop: [crop name or general type]
Issue Detected: [disease/pest/issue, or "Healthy"]
AI Confidence: [70-99]%

DETAILED ANALYSIS:
[2-4 sentences on the visible symptoms]

IMMEDIATE CONTROL ACTIONS:
• [action]
• [action]

{brand} FERTILIZER RECOMMENDATION:
[1-2 products from the list below with rates and timing]

PREVENTION MEASURES:
• [tip]
• [tip]

Base the diagnosis strictly on visible symptoms.

Available {brand} Products:
{catalog}""",
    "soil": """Analyze this soil image (test report, sample photo or field) and reply in this WhatsApp format:

🌱 {brand} Soil Analysis Report

Soil Type: [Sandy/Loamy/Clay/Mixed]
Overall Health: [Excellent/Good/Fair/Poor]
AI Confidence: [70-99]%

NUTRIENT ANALYSIS:
• Nitrogen (N): [value or Low/Medium/High]
• Phosphorus (P): [value or Low/Medium/High]
• Potassium (K): [value or Low/Medium/High]
• pH Level: [value or Acidic/Neutral/Alkaline]

KEY FINDINGS:
• [finding]
• [finding]

{brand} FERTILIZER RECOMMENDATIONS:
[1-3 products from the list below with rates per hectare]

Available {brand} Products:
{catalog}""",
}

LABEL_PATTERNS = {
    "crop": re.compile(r"Issue Detected:\s*(.+)", re.IGNORECASE),
    "soil": re.compile(r"Overall Health:\s*(.+)", re.IGNORECASE),
}
CONFIDENCE_PATTERN = re.compile(r"AI Confidence:\s*(\d{1,3})\s*%?", re.IGNORECASE)


@dataclass
class Classification:
    label: str
    confidence: float
    narrative: str


class AIService:
    """
    Thin wrapper over the OpenAI chat completions API.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.model = settings.OPENAI_MODEL
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise CollaboratorError("OpenAI API key not configured")
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._client

    async def _complete(self, messages: List[Dict[str, Any]], max_tokens: int, temperature: float = 0.7) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as e:
            logger.error("⏱️ OpenAI request timed out")
            raise CollaboratorTimeout("AI service timed out") from e
        except openai.OpenAIError as e:
            logger.error(f"❌ OpenAI error: {e}")
            raise CollaboratorError(f"AI service failed: {e}") from e

        content = completion.choices[0].message.content
        if not content:
            raise CollaboratorError("AI service returned an empty response")
        return content.strip()

    @staticmethod
    def _image_part(image_path: str) -> Dict[str, Any]:
        mime_type = mimetypes.guess_type(image_path)[0] or "image/jpeg"
        try:
            with open(image_path, "rb") as fh:
                encoded = base64.b64encode(fh.read()).decode("ascii")
        except OSError as e:
            raise CollaboratorError(f"Could not read image: {e}") from e
        return {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}}

    async def extract_text(self, image_path: str) -> str:
        """
        Reads all visible text from a receipt photo.
        """
        logger.info("📄 Starting vision OCR on receipt image")
        text = await self._complete(
            [{
                "role": "user",
                "content": [
                    {"type": "text", "text": RECEIPT_OCR_PROMPT},
                    self._image_part(image_path),
                ],
            }],
            max_tokens=1000,
            temperature=0,
        )
        logger.debug(f"📝 Extracted text: {text[:200]}")
        return text

    async def classify(self, image_path: str, context: str = "crop", catalog: str = "") -> Classification:
        """
        Diagnoses a crop photo or analyses a soil photo.

        Args:
            image_path: Local image file
            context: "crop" or "soil"
            catalog: Product list the recommendation may draw from

        Returns:
            Classification with the headline label, a 0-1 confidence and the
            full WhatsApp-ready narrative
        """
        kind = context if context in CLASSIFY_PROMPTS else "crop"
        prompt = CLASSIFY_PROMPTS[kind].format(brand=settings.BRAND_KEYWORD, catalog=catalog or "(none)")

        narrative = await self._complete(
            [
                {
                    "role": "system",
                    "content": f"You are an expert agricultural consultant for {settings.BRAND_KEYWORD} Fertilizers.",
                },
                {
                    "role": "user",
                    "content": [{"type": "text", "text": prompt}, self._image_part(image_path)],
                },
            ],
            max_tokens=1500,
        )

        label_match = LABEL_PATTERNS[kind].search(narrative)
        label = label_match.group(1).strip() if label_match else "Agricultural Analysis"

        confidence = 0.8
        confidence_match = CONFIDENCE_PATTERN.search(narrative)
        if confidence_match:
            confidence = min(int(confidence_match.group(1)), 100) / 100

        logger.info(f"🌿 {kind} analysis: {label} ({confidence:.0%})")
        return Classification(label=label, confidence=confidence, narrative=narrative)

    async def answer(self, question: str, context: str = "") -> str:
        system = ASSISTANT_PROMPT.format(bot_name=settings.BOT_NAME, brand=settings.BRAND_KEYWORD)
        if context:
            system += f"\n\nAdditional Context: {context}"
        return await self._complete(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": question},
            ],
            max_tokens=500,
        )

    async def analyze_receipt_text(self, raw_text: str) -> Dict[str, Any]:
        """
        Pulls structured fields out of OCR text.

        Returns:
            Dict with retailer_name, invoice_number, purchase_date, total_amount,
            currency and products (missing values are None)

        Raises:
            CollaboratorError: on API failure or when no JSON object comes back
        """
        response = await self._complete(
            [
                {
                    "role": "system",
                    "content": "You are a receipt analyzer. Extract information accurately and return only valid JSON.",
                },
                {
                    "role": "user",
                    "content": RECEIPT_FIELDS_PROMPT.format(brand=settings.BRAND_KEYWORD, raw_text=raw_text),
                },
            ],
            max_tokens=300,
            temperature=0.3,
        )

        match = re.search(r"\{[\s\S]*\}", response)
        if not match:
            raise CollaboratorError("Receipt analysis returned no JSON")
        try:
            fields = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise CollaboratorError("Receipt analysis returned invalid JSON") from e

        if not isinstance(fields, dict):
            raise CollaboratorError("Receipt analysis returned unexpected JSON")
        return fields


_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
