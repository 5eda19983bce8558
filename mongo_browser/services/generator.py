import json
import logging
from typing import Optional

from ..config import Settings
from ..schemas import GeneratedQuery
from .mongo import MongoDataSource

logger = logging.getLogger(__name__)

try:
    import google.generativeai as genai
except ImportError:
    genai = None

SYSTEM_INSTRUCTION = (
    "You generate strict JSON for MongoDB queries. Return a single JSON object that may contain the keys "
    "\"query\", \"sort\", \"filter\", \"projection\", \"collation\", \"hint\" (each a JSON object), "
    "\"pipeline\" (an array of aggregation stage objects) and \"readPreference\" "
    "(primary|primaryPreferred|secondary|secondaryPreferred|nearest). "
    "Use ISODate(\"...\") strings for dates and ObjectId(\"...\") strings for ids. No commentary. Use only JSON."
)


class GeminiQueryGenerator:
    """Natural language -> query JSON via Gemini, with optional collection context."""

    def __init__(self, data_source: Optional[MongoDataSource] = None, settings: Optional[Settings] = None) -> None:
        self.data_source = data_source
        self.settings = settings or Settings.from_env()

    def _context(self, collection: str, share_samples: bool) -> str:
        if self.data_source is None:
            return f"Collection: {collection}"
        samples, summary = self.data_source.schema_and_samples(collection, 2)
        parts = [f"Collection: {collection}", summary]
        if share_samples and samples:
            parts.append("Sample documents:\n" + json.dumps(samples, ensure_ascii=False, default=str, indent=2))
        return "\n\n".join(parts)

    def generate_query(self, prompt: str, collection: str, share_samples: bool) -> GeneratedQuery:
        api_key = self.settings.gemini_api_key
        if not api_key:
            return GeneratedQuery(error="Query Helper is not configured (GEMINI_API_KEY is not set).")
        if genai is None:
            return GeneratedQuery(error="Query Helper is unavailable (google-generativeai is not installed).")

        try:
            context = self._context(collection, share_samples)
        except Exception as e:
            logger.warning("Could not build Query Helper context for %s: %s", collection, e)
            context = f"Collection: {collection}"

        try:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(self.settings.gemini_model, system_instruction=SYSTEM_INSTRUCTION)
            user = f"{context}\n\nPrompt: {prompt}. Output strict JSON only."
            resp = model.generate_content(user)
            text = (resp.text or "").strip()
        except Exception as e:
            logger.exception("Gemini request failed")
            return GeneratedQuery(error=str(e))
        logger.debug("Gemini output for %s: %s", collection, text)
        return GeneratedQuery(generatedQuery=text or None)
