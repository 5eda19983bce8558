"""Map natural-language generator output onto :class:`QueryParams`."""
import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .query_params import DEFAULT_PARAMS, normalize_fields
from .schemas import QUERY_FIELDS, QueryParams
from .services.contracts import QueryGenerator

logger = logging.getLogger(__name__)

RECOGNIZED_KEYS = QUERY_FIELDS + ("readPreference",)

_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$")


class NoCollectionSelected(ValueError):
    def __init__(self):
        super().__init__("Please select a collection before asking Query Helper to generate a query.")


class GenerationKind(str, Enum):
    SUCCESS = "success"
    EMPTY_PROMPT = "empty_prompt"
    BACKEND_ERROR = "backend_error"
    INVALID_JSON = "invalid_json"
    NO_QUERY = "no_query"
    COMMUNICATION = "communication"


@dataclass(frozen=True)
class GenerationResult:
    kind: GenerationKind
    params: Optional[QueryParams] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is GenerationKind.SUCCESS


def _strip_fence(text: str) -> str:
    text = text.strip()
    m = _FENCE_RE.match(text)
    return m.group(1) if m else text


def parse_generated_query(text: str) -> QueryParams:
    """Parse generator output. Raises ``ValueError`` if it is not usable JSON.

    Only recognized keys are kept; each may hold a JSON string or a structure.
    """
    parsed = json.loads(_strip_fence(text))
    if not isinstance(parsed, dict):
        raise ValueError("expected a JSON object")
    fields: Dict[str, Any] = {k: v for k, v in parsed.items() if k in RECOGNIZED_KEYS}
    dropped = sorted(set(parsed) - set(fields))
    if dropped:
        logger.debug("Dropping unrecognized generated keys: %s", dropped)
    result = normalize_fields(fields)
    if not result.ok:
        detail = "; ".join(f"{k}: {v}" for k, v in result.errors.items())
        raise ValueError(detail)
    return result.params


class QueryHelper:
    def __init__(self, generator: QueryGenerator, notify: Optional[Callable[[str], None]] = None):
        self.generator = generator
        self.notify = notify

    def _status(self, message: str):
        logger.info(message)
        if self.notify:
            self.notify(message)

    def generate(self, prompt: str, collection: Optional[str], share_samples: bool = False) -> GenerationResult:
        if not collection:
            raise NoCollectionSelected()
        prompt = (prompt or "").strip()
        if not prompt:
            return GenerationResult(
                GenerationKind.EMPTY_PROMPT,
                message='Please provide a description for the Query Helper (e.g., "find users older than 30, sorted by name").',
            )

        self._status("Generating query...")
        try:
            response = self.generator.generate_query(prompt, collection, share_samples)
        except Exception as e:
            logger.exception("Query Helper request failed")
            self._status("Failed to communicate with Query Helper.")
            return GenerationResult(
                GenerationKind.COMMUNICATION,
                message=f"Failed to communicate with Query Helper: {e}",
            )

        if response.error:
            self._status(f"Query Helper generation failed: {response.error}")
            return GenerationResult(GenerationKind.BACKEND_ERROR, message=f"Query Helper Error: {response.error}")

        if not response.generated_query or not response.generated_query.strip():
            self._status("Query Helper generation failed: No query returned.")
            return GenerationResult(
                GenerationKind.NO_QUERY,
                message="Query Helper did not return a query. Please try rephrasing your request.",
            )

        try:
            params = parse_generated_query(response.generated_query)
        except ValueError as e:
            logger.warning("Query Helper returned invalid JSON: %s", e)
            self._status("Query Helper generated invalid JSON. Manual correction might be needed.")
            return GenerationResult(
                GenerationKind.INVALID_JSON,
                params=DEFAULT_PARAMS,
                message=f"Query Helper generated invalid JSON: {e}. Please check the Query Helper's output.",
            )

        self._status("Query Helper generated query successfully!")
        return GenerationResult(GenerationKind.SUCCESS, params=params)
