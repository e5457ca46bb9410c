"""
Response Normalizer

Every provider's parsed JSON arrives here tagged with the provider that
produced it, and leaves as one canonical ``DiagnosisResult``.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from app.models import DiagnosisResult, Severity
from app.services.diagnosis.errors import ErrorKind, ProviderError, SchemaValidationError

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")

DEFAULT_DESCRIPTION = "No description provided"

_CONFIDENCE_WORDS = {
    "very high": 0.95,
    "high": 0.9,
    "medium": 0.6,
    "moderate": 0.6,
    "low": 0.3,
    "very low": 0.1,
}

_SEVERITY_WORDS = {
    "low": Severity.LOW,
    "mild": Severity.LOW,
    "minor": Severity.LOW,
    "none": Severity.LOW,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "high": Severity.HIGH,
    "severe": Severity.HIGH,
    "critical": Severity.HIGH,
}


class Provider(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"
    PERPLEXITY = "perplexity"
    DEEPSEEK = "deepseek"
    PLANT_DATABASE = "plant-database"


@dataclass(frozen=True)
class FieldMap:
    """Where each canonical field lives in one provider's raw JSON (first key wins)."""
    disease: Tuple[str, ...]
    confidence: Tuple[str, ...]
    severity: Tuple[str, ...] = ("severity",)
    description: Tuple[str, ...] = ("description",)
    symptoms: Tuple[str, ...] = ("symptoms",)
    possible_causes: Tuple[str, ...] = ("possibleCauses",)
    organic_treatments: Tuple[str, ...] = ("organicTreatments",)
    chemical_treatments: Tuple[str, ...] = ("chemicalTreatments",)
    preventive_measures: Tuple[str, ...] = ("preventiveMeasures",)
    urgency: Tuple[str, ...] = ("urgency",)


CANONICAL_FIELDS = FieldMap(disease=("disease",), confidence=("confidence",))

FIELD_MAPS: Dict[Provider, FieldMap] = {
    Provider.OPENAI: FieldMap(
        disease=("diseaseName",),
        confidence=("confidenceScore",),
    ),
    Provider.CLAUDE: CANONICAL_FIELDS,
    Provider.PERPLEXITY: FieldMap(
        disease=("disease_name", "identified_disease_name"),
        confidence=("confidence_level", "confidence"),
        severity=("severity_level", "severity"),
        symptoms=("symptoms",),
        possible_causes=("possible_causes",),
        organic_treatments=("organic_treatment_options", "organic_treatments"),
        chemical_treatments=("chemical_treatment_options", "chemical_treatments"),
        preventive_measures=("preventive_measures",),
        urgency=("urgency",),
    ),
    Provider.DEEPSEEK: FieldMap(
        disease=("disease_name",),
        confidence=("confidence",),
        possible_causes=("possible_causes",),
        organic_treatments=("organic_treatments",),
        chemical_treatments=("chemical_treatments",),
        preventive_measures=("preventive_measures",),
    ),
    Provider.PLANT_DATABASE: CANONICAL_FIELDS,
}


@dataclass
class ProviderOutput:
    """Raw parsed output of one provider, tagged with its origin."""
    provider: Provider
    raw: Dict[str, Any] = field(default_factory=dict)


# ============================================================================#
# Coercion helpers
# ============================================================================#

def _first(raw: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def coerce_confidence(value: Any) -> float:
    """Normalise a 0-1 fraction, a 0-100 percentage, or a word into [0, 1].

    Raises ``SchemaValidationError`` when the value cannot be read as a confidence.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise SchemaValidationError(f"confidence must be numeric, got {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if text in _CONFIDENCE_WORDS:
            return _CONFIDENCE_WORDS[text]
        match = _NUMBER.search(text)
        if not match:
            raise SchemaValidationError(f"confidence must be numeric, got {value!r}")
        number = float(match.group())
        if "%" in text:
            number = number / 100
    else:
        raise SchemaValidationError(f"confidence must be numeric, got {type(value).__name__}")

    if number > 1:
        number = number / 100
    return min(max(number, 0.0), 1.0)


def coerce_severity(value: Any, default: Severity = Severity.MEDIUM) -> Severity:
    if isinstance(value, Severity):
        return value
    if not isinstance(value, str) or not value.strip():
        return default
    text = value.strip().lower()
    if text in _SEVERITY_WORDS:
        return _SEVERITY_WORDS[text]
    for word, severity in _SEVERITY_WORDS.items():
        if text.startswith(word):
            return severity
    return default


def coerce_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return [str(value)]

    items = []
    for item in value:
        if item is None:
            continue
        if isinstance(item, dict):
            name = item.get("name") or item.get("treatment") or ""
            detail = item.get("application") or item.get("description") or ""
            text = f"{name}: {detail}" if name and detail else (name or detail)
        else:
            text = str(item)
        text = text.strip()
        if text:
            items.append(text)
    return items


def extract_json(text: Optional[str]) -> Dict[str, Any]:
    """Parse a model's text reply into a JSON object.

    Handles markdown code fences and surrounding prose by falling back to the
    outermost ``{...}`` span.
    """
    if not text or not text.strip():
        raise ProviderError(ErrorKind.INVALID_RESPONSE, detail="empty response")

    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(cleaned)
        if not match:
            raise ProviderError(ErrorKind.INVALID_RESPONSE, detail="no JSON object in response")
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError as e:
            raise ProviderError(ErrorKind.INVALID_RESPONSE, detail=f"invalid JSON: {e}")

    if not isinstance(data, dict):
        raise ProviderError(ErrorKind.INVALID_RESPONSE, detail="response JSON is not an object")
    return data


# ============================================================================#
# Normalisation
# ============================================================================#

def _field_map_for(provider: Provider) -> FieldMap:
    fields = FIELD_MAPS.get(provider)
    if fields is None:
        raise ValueError(f"Unknown provider: {provider!r}")
    return fields


def normalize(output: ProviderOutput) -> DiagnosisResult:
    """Shape one provider's raw output into a complete ``DiagnosisResult``."""
    fields = _field_map_for(output.provider)
    raw = output.raw

    if not isinstance(raw, dict):
        raise SchemaValidationError(f"{output.provider.value} output is not an object")

    disease = _first(raw, fields.disease)
    if not isinstance(disease, str) or not disease.strip():
        raise SchemaValidationError(
            f"{output.provider.value} output is missing a disease name ({', '.join(fields.disease)})"
        )

    confidence = coerce_confidence(_first(raw, fields.confidence))
    severity = coerce_severity(_first(raw, fields.severity))
    urgency = coerce_severity(_first(raw, fields.urgency), default=severity)

    description = _first(raw, fields.description)
    if not isinstance(description, str) or not description.strip():
        description = DEFAULT_DESCRIPTION

    return DiagnosisResult(
        disease=disease.strip(),
        confidence=confidence,
        severity=severity,
        description=description.strip(),
        symptoms=coerce_list(_first(raw, fields.symptoms)),
        possible_causes=coerce_list(_first(raw, fields.possible_causes)),
        organic_treatments=coerce_list(_first(raw, fields.organic_treatments)),
        chemical_treatments=coerce_list(_first(raw, fields.chemical_treatments)),
        preventive_measures=coerce_list(_first(raw, fields.preventive_measures)),
        urgency=urgency,
    )
