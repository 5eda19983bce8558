"""Turn loosely-typed query form input into a canonical :class:`QueryParams`.

Every field is parsed on its own: a syntax error in ``sort`` is reported
against ``sort`` and does not stop ``query`` from being read.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from .schemas import QUERY_FIELDS, QueryParams, RawQueryFields, ReadPreference

logger = logging.getLogger(__name__)

DEFAULT_PARAMS = QueryParams()


class QueryFieldError(ValueError):
    """One or more query fields failed to parse. ``errors`` maps field -> message."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(f"Invalid JSON in query parameters: {detail}")


@dataclass
class NormalizedQuery:
    params: QueryParams
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return all(_is_blank(v) for v in value)
    return False


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"{e.msg} (line {e.lineno}, column {e.colno})") from e


def _parse_object(name: str, value: Any) -> Union[Dict[str, Any], str]:
    parsed = _loads(value) if isinstance(value, str) else value
    if isinstance(parsed, dict):
        return parsed
    if name == "hint" and isinstance(parsed, str):
        # index name, e.g. "_id_"
        return parsed
    raise ValueError("expected a JSON object")


def _parse_pipeline(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            entries = _loads(text)
            if not isinstance(entries, list):
                raise ValueError("expected a JSON array of stages")
        else:
            entries = [line for line in text.splitlines() if line.strip()]
    elif isinstance(value, (list, tuple)):
        entries = [v for v in value if not _is_blank(v)]
    else:
        raise ValueError("expected one JSON object per line")

    stages: List[Dict[str, Any]] = []
    for i, entry in enumerate(entries, start=1):
        try:
            stage = _loads(entry) if isinstance(entry, str) else entry
        except ValueError as e:
            raise ValueError(f"stage {i}: {e}") from e
        if not isinstance(stage, dict):
            raise ValueError(f"stage {i}: expected a JSON object")
        stages.append(stage)
    return stages


def parse_read_preference(value: Optional[Any]) -> ReadPreference:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ReadPreference.PRIMARY
    if isinstance(value, ReadPreference):
        return value
    try:
        return ReadPreference(str(value).strip())
    except ValueError:
        allowed = ", ".join(p.value for p in ReadPreference)
        raise ValueError(f"unknown read preference {value!r} (expected one of: {allowed})") from None


def _as_mapping(raw: Union[RawQueryFields, Mapping[str, Any], None]) -> Dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, RawQueryFields):
        return raw.model_dump(by_alias=True)
    return dict(raw)


def normalize_fields(raw: Union[RawQueryFields, QueryParams, Mapping[str, Any], None]) -> NormalizedQuery:
    """Parse each non-empty field independently; collect per-field errors."""
    if isinstance(raw, QueryParams):
        return NormalizedQuery(params=raw)
    data = _as_mapping(raw)
    values: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for name in QUERY_FIELDS:
        value = data.get(name)
        if _is_blank(value):
            continue
        try:
            if name == "pipeline":
                stages = _parse_pipeline(value)
                if stages:
                    values[name] = stages
            else:
                values[name] = _parse_object(name, value)
        except ValueError as e:
            errors[name] = str(e)

    try:
        values["readPreference"] = parse_read_preference(data.get("readPreference", data.get("read_preference")))
    except ValueError as e:
        errors["readPreference"] = str(e)

    if errors:
        logger.debug("Query field errors: %s", errors)
    return NormalizedQuery(params=QueryParams(**values), errors=errors)


def is_empty(params: QueryParams) -> bool:
    """True when nothing but the read preference is set."""
    return all(getattr(params, name) is None for name in QUERY_FIELDS)


def prepare_execution(raw: Union[RawQueryFields, QueryParams, Mapping[str, Any], None]) -> QueryParams:
    """Normalize for a run. An empty form means "match all": ``query = {}``."""
    result = normalize_fields(raw)
    if not result.ok:
        raise QueryFieldError(result.errors)
    if is_empty(result.params):
        return result.params.model_copy(update={"query": {}})
    return result.params
