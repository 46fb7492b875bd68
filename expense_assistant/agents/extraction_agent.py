"""
AI Extraction Agent for the Expense Assistant

DESIGN DECISION: Both AI paths (free-text description and receipt photo)
go through one Gemini model and one response contract: a ParsedSuggestion
holding only the fields the model returned AND that passed sanitisation.

CRITICAL BOUNDARIES:
- CAN: Propose values for category, project, title, date, currency,
  amount and comment
- CANNOT: Propose employee identity (ignored if present)
- CANNOT: Fail the whole call because one field is malformed;
  bad fields are dropped, the rest is kept

The agent never touches form state. It returns a suggestion and the
form controller decides what to do with it.
"""

import json
import math
import re
from typing import Any, Optional

import google.generativeai as genai
import structlog

from expense_assistant.config import AppSettings, GeminiSettings, get_settings
from expense_assistant.models.expense import (
    EXPENSE_CATEGORIES,
    ExpenseCategory,
    ParsedSuggestion,
    format_amount,
    normalize_date,
)


logger = structlog.get_logger(__name__)


class ExtractionError(Exception):
    """Base exception for AI extraction errors."""
    pass


class InputInvalidError(ExtractionError):
    """User-supplied text or file fails a precondition."""
    pass


class ServiceUnavailableError(ExtractionError):
    """The remote AI call itself failed."""
    pass


class ResponseUnparseableError(ExtractionError):
    """The AI answered, but not with a JSON object."""
    pass


RECEIPT_PARSED_FALLBACK = (
    "AI parsed the receipt. Please review the fields below "
    "or describe the expense manually."
)

# Field schema sent to the model (wire names, as the webhook uses them)
EXPENSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "expenseCategory": {
            "type": "string",
            "description": "The category of the expense.",
            "enum": [category.value for category in EXPENSE_CATEGORIES],
        },
        "project": {
            "type": "string",
            "description": "The project or cost center to charge the expense to.",
        },
        "expenseTitle": {
            "type": "string",
            "description": "A concise title or description of the expense (e.g., Merchant name).",
        },
        "expenseDate": {
            "type": "string",
            "description": "The date of the expense in YYYY-MM-DD format.",
        },
        "currency": {
            "type": "string",
            "description": "The currency code of the expense (e.g., INR, USD).",
        },
        "amount": {
            "type": "number",
            "description": "The total amount of the expense.",
        },
        "comment": {
            "type": "string",
            "description": "Any additional comments or notes about the expense.",
        },
    },
    "required": ["expenseTitle", "expenseDate", "amount", "currency", "expenseCategory"],
}

_TEXT_FIELDS = {
    "project": "project",
    "expenseTitle": "expense_title",
    "comment": "comment",
}

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$")


# =============================================================================
# PRECONDITIONS
# =============================================================================

def check_description(description: str, max_chars: int = 500) -> str:
    """Reject blank or over-long descriptions before any AI call."""
    if not description or not description.strip():
        raise InputInvalidError("Please enter a description.")
    if len(description) > max_chars:
        raise InputInvalidError(
            f"Input is too long. Please keep it under {max_chars} characters."
        )
    return description


def check_receipt_upload(mime_type: str, size_bytes: int, max_bytes: int) -> None:
    """Only images, and only up to the configured size."""
    if not mime_type or not mime_type.lower().startswith("image/"):
        raise InputInvalidError("Only image files are supported.")
    if size_bytes > max_bytes:
        max_mb = max_bytes // (1024 * 1024)
        raise InputInvalidError(
            f"File is too large. Please upload an image under {max_mb}MB."
        )


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def sanitize_fields(data: dict[str, Any]) -> ParsedSuggestion:
    """
    Keep only declared fields whose values fit their domain.

    Anything else is dropped silently; partial success is the norm.
    Dates lose any time component, currencies are uppercased, and
    negative amounts (refunds) are dropped.
    """
    clean: dict[str, Any] = {}

    category = data.get("expenseCategory")
    if isinstance(category, str) and category in {c.value for c in ExpenseCategory}:
        clean["expense_category"] = ExpenseCategory(category)

    for wire_name, attr_name in _TEXT_FIELDS.items():
        value = data.get(wire_name)
        if isinstance(value, str):
            clean[attr_name] = value

    expense_date = data.get("expenseDate")
    if isinstance(expense_date, str):
        clean["expense_date"] = normalize_date(expense_date)

    currency = data.get("currency")
    if isinstance(currency, str):
        clean["currency"] = currency.upper()

    amount = data.get("amount")
    if (
        isinstance(amount, (int, float))
        and not isinstance(amount, bool)
        and math.isfinite(amount)
        and amount >= 0
    ):
        clean["amount"] = float(amount)

    return ParsedSuggestion(**clean)


def parse_suggestion_response(text: str) -> ParsedSuggestion:
    """
    Turn raw model output into a ParsedSuggestion.

    The model may wrap its JSON in a markdown code fence.
    Raises ResponseUnparseableError if no JSON object comes out.
    """
    cleaned = _FENCE_PATTERN.sub("", (text or "").strip())
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("ai_response_unparseable", error=str(e), preview=cleaned[:200])
        raise ResponseUnparseableError(
            "Could not understand the AI's response. Please try again or enter manually."
        ) from e

    if not isinstance(data, dict):
        logger.warning("ai_response_not_object", kind=type(data).__name__)
        raise ResponseUnparseableError(
            "Could not understand the AI's response. Please try again or enter manually."
        )

    return sanitize_fields(data)


def summarize_suggestion(suggestion: ParsedSuggestion) -> str:
    """
    One-sentence description of what was read from a receipt.

    Written back into the description box so the user can see (and
    tweak and re-run) what the AI understood.
    """
    parts = []

    if suggestion.amount:
        parts.append(
            f"Spent {format_amount(suggestion.amount)} {suggestion.currency or ''}".strip()
        )
    if suggestion.expense_title:
        parts.append(f"at {suggestion.expense_title}")
    if suggestion.expense_date:
        parts.append(f"on {suggestion.expense_date}")
    if suggestion.project:
        parts.append(f"for project {suggestion.project}")
    if suggestion.expense_category:
        parts.append(f"(category: {suggestion.expense_category.value})")

    if not parts:
        return RECEIPT_PARSED_FALLBACK

    sentence = " ".join(parts) + "."
    return sentence[0].upper() + sentence[1:]


# =============================================================================
# AGENT
# =============================================================================

class ExpenseExtractionAgent:
    """
    AI agent that turns a description or a receipt photo into a suggestion.

    RESPONSIBILITIES:
    - Build the prompt and call Gemini
    - Parse and sanitise the JSON answer

    BOUNDARIES:
    - NEVER mutates the form
    - NEVER retries; one call per user action
    - Holds no per-request state, so text and image calls may overlap
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        """
        Args:
            model: Anything with an async generate_content_async(contents).
                   Built from GeminiSettings when omitted.
        """
        self._app_settings = app_settings or get_settings().app
        if model is None:
            self._settings = settings or get_settings().gemini
            self._configure_genai()
        else:
            self._model = model

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    def _text_prompt(self, description: str) -> str:
        schema = json.dumps(EXPENSE_SCHEMA, indent=2)
        return f"""You are an intelligent assistant for parsing expense reports.

Extract expense details from the user's text into a JSON object matching this schema:
{schema}

Rules:
- The 'amount' is a numerical value and might not have a currency symbol.
- Infer the 'currency' from symbols (e.g., ₹, Rs) or context; default to 'INR' if it's ambiguous or missing.
- For 'expenseDate', use YYYY-MM-DD format.
- If a value isn't found, omit its key from the JSON.

Parse the following expense description: "{description}"

Respond with ONLY the JSON object."""

    def _image_prompt(self) -> str:
        schema = json.dumps(EXPENSE_SCHEMA, indent=2)
        return f"""You are an expert at extracting information from receipts.

Analyze this receipt. Extract the merchant name for 'expenseTitle', the date for 'expenseDate' (in YYYY-MM-DD format), the total amount, and the currency.
Based on the items, suggest the most likely 'expenseCategory' from the allowed options.

Return a JSON object matching this schema:
{schema}

If a value isn't found, omit it from the JSON. Respond with ONLY the JSON object."""

    async def _generate(self, contents: Any, failure_message: str) -> str:
        try:
            response = await self._model.generate_content_async(contents)
            return response.text
        except Exception as e:
            logger.error("gemini_call_failed", error=str(e))
            raise ServiceUnavailableError(failure_message) from e

    async def extract_from_text(self, description: str) -> ParsedSuggestion:
        """
        Parse a natural-language expense description.

        Raises:
            InputInvalidError: blank or over-long description
            ServiceUnavailableError: the Gemini call failed
            ResponseUnparseableError: the answer was not a JSON object
        """
        check_description(description, self._app_settings.max_description_chars)

        text = await self._generate(
            self._text_prompt(description),
            "Failed to process your request. The AI service may be unavailable.",
        )
        suggestion = parse_suggestion_response(text)
        logger.info("description_extracted", fields=sorted(suggestion.applied_fields()))
        return suggestion

    async def extract_from_image(
        self,
        image_bytes: bytes,
        mime_type: str,
    ) -> ParsedSuggestion:
        """
        Read a receipt photo.

        Raises the same errors as extract_from_text; InputInvalidError
        covers non-image types and oversized payloads.
        """
        check_receipt_upload(
            mime_type,
            len(image_bytes),
            self._app_settings.max_upload_size_bytes,
        )

        image_part = {
            "mime_type": mime_type,
            "data": image_bytes,
        }
        text = await self._generate(
            [image_part, self._image_prompt()],
            "Failed to read the receipt. The AI service may be unavailable.",
        )
        suggestion = parse_suggestion_response(text)
        logger.info("receipt_extracted", fields=sorted(suggestion.applied_fields()))
        return suggestion
