"""
Receipt Scanner using Gemini

DESIGN DECISION: The Gemini model is built once at process start
(create_gemini_model) and handed to ReceiptScanner. Nothing in this
module creates a client on import, so tests pass a fake model and
production code decides when credentials are read.

This service handles:
1. Checking the upload (MIME type, size)
2. Sending the image and extraction prompt to Gemini
3. Parsing the JSON reply into a ScannedReceipt

CRITICAL: The reply is untrusted text. Anything that is not the JSON
object we asked for raises ExtractionFormatError - we never crash on it
and never guess. An empty object means "this is not a receipt".
"""

import json
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPIError
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import AppSettings, GeminiSettings, get_settings
from finance_tracker.models.ledger import CENT, MAX_AMOUNT
from finance_tracker.models.receipt import ReceiptCategory, ScannedReceipt


class ReceiptScanError(Exception):
    """Base exception for receipt scanning errors."""
    pass


class ReceiptRejectedError(ReceiptScanError):
    """Upload is not something we send to the extractor (type or size)."""
    pass


class ExtractionFormatError(ReceiptScanError):
    """The extractor replied with something other than the expected JSON."""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        self.raw_response = raw_response
        super().__init__(message)


class ExtractionServiceError(ReceiptScanError):
    """The extractor could not be reached or failed after retries."""
    pass


RECEIPT_PROMPT = f"""Analyze this receipt image and extract the following information in JSON format:
- Total amount (just the number)
- Date (in ISO format)
- Description or items purchased (brief summary)
- Merchant/store name
- Suggested category (one of: {','.join(c.value for c in ReceiptCategory)})

Only respond with valid JSON in this exact format:
{{
    "amount": number,
    "date": "ISO date string",
    "description": "string",
    "merchantName": "string",
    "category": "string"
}}

If it is not a receipt, return an empty object."""

_CODE_FENCE = re.compile(r"```(?:json)?\n?")


def create_gemini_model(settings: Optional[GeminiSettings] = None) -> genai.GenerativeModel:
    """
    Configure Gemini and build the model used for receipt scanning.

    Call once at process start and inject the result into ReceiptScanner.
    """
    settings = settings or get_settings().gemini
    genai.configure(api_key=settings.api_key)
    return genai.GenerativeModel(
        model_name=settings.model_name,
        generation_config={
            "temperature": settings.temperature,
            "max_output_tokens": settings.max_tokens,
        },
    )


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def _parse_amount(value: Any, raw: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ExtractionFormatError("Receipt amount missing or not a number", raw)
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except InvalidOperation:
        raise ExtractionFormatError(f"Receipt amount is not a number: {value!r}", raw) from None
    if not amount.is_finite() or amount < 0 or amount > MAX_AMOUNT:
        raise ExtractionFormatError(f"Receipt amount out of range: {value!r}", raw)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _parse_date(value: Any, raw: str) -> date:
    if not isinstance(value, str) or not value.strip():
        raise ExtractionFormatError("Receipt date missing", raw)
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
    except ValueError:
        raise ExtractionFormatError(f"Receipt date is not ISO formatted: {value!r}", raw) from None


def _parse_category(value: Any) -> ReceiptCategory:
    if not isinstance(value, str):
        return ReceiptCategory.OTHER_EXPENSE
    try:
        return ReceiptCategory(value.strip().lower())
    except ValueError:
        return ReceiptCategory.OTHER_EXPENSE


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_receipt_response(text: Optional[str]) -> Optional[ScannedReceipt]:
    """
    Turn the model's reply into a ScannedReceipt.

    Returns:
        The scanned receipt, or None when the model returned {} (not a receipt)

    Raises:
        ExtractionFormatError: reply is not a JSON object of the expected shape
    """
    raw = text or ""
    cleaned = _CODE_FENCE.sub("", raw).strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        raise ExtractionFormatError("Invalid response format from Gemini", raw) from None

    if not isinstance(data, dict):
        raise ExtractionFormatError("Gemini response is not a JSON object", raw)
    if not data:
        return None

    try:
        return ScannedReceipt(
            amount=_parse_amount(data.get("amount"), raw),
            date=_parse_date(data.get("date"), raw),
            description=_optional_text(data.get("description")),
            merchant_name=_optional_text(data.get("merchantName")),
            category=_parse_category(data.get("category")),
        )
    except ValidationError as e:
        raise ExtractionFormatError(f"Receipt fields failed validation: {e}", raw) from e


# =============================================================================
# SCANNER
# =============================================================================

class ReceiptScanner:
    """
    Best-effort receipt field extraction.

    IMPORTANT BOUNDARIES:
    1. This service ONLY proposes fields - it never creates transactions
    2. Malformed replies are surfaced as ExtractionFormatError, not retried
    3. Only the network call is retried
    """

    def __init__(
        self,
        model: genai.GenerativeModel,
        app_settings: Optional[AppSettings] = None,
    ):
        self._model = model
        self._app_settings = app_settings or get_settings().app

    def check_upload(self, image_bytes: bytes, mime_type: str) -> None:
        """
        Raises:
            ReceiptRejectedError: unsupported type, empty, or too large
        """
        allowed = self._app_settings.supported_receipt_types_list
        if (mime_type or "").lower() not in allowed:
            raise ReceiptRejectedError(
                f"Unsupported image type: {mime_type}. Allowed: {', '.join(allowed)}"
            )
        if not image_bytes:
            raise ReceiptRejectedError("Image is empty")
        if len(image_bytes) > self._app_settings.max_receipt_size_bytes:
            raise ReceiptRejectedError(
                f"File size should be less than {self._app_settings.max_receipt_size_mb}MB"
            )

    @retry(
        retry=retry_if_exception_type(GoogleAPIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, image_bytes: bytes, mime_type: str) -> str:
        response = await self._model.generate_content_async([
            {"mime_type": mime_type.lower(), "data": image_bytes},
            RECEIPT_PROMPT,
        ])
        return response.text

    async def scan(self, image_bytes: bytes, mime_type: str) -> Optional[ScannedReceipt]:
        """
        Extract amount, date, description, merchant and category from a receipt.

        Returns:
            ScannedReceipt, or None if the image is not a receipt

        Raises:
            ReceiptRejectedError: upload failed the type/size check
            ExtractionFormatError: model reply could not be parsed
            ExtractionServiceError: Gemini failed after retries
        """
        self.check_upload(image_bytes, mime_type)

        try:
            text = await self._generate(image_bytes, mime_type)
        except GoogleAPIError as e:
            raise ExtractionServiceError(f"Failed to scan receipt: {e}") from e
        except ValueError as e:
            # response.text raises ValueError when the reply was blocked
            raise ExtractionFormatError(f"Gemini returned no text: {e}") from e

        return parse_receipt_response(text)
