from app.services.diagnosis.dispatch import DiagnosisService, resolve_provider
from app.services.diagnosis.errors import ErrorKind, ProviderError, SchemaValidationError
from app.services.diagnosis.mock import MOCK_CATALOGUE, get_mock_diagnosis
from app.services.diagnosis.normalizer import Provider, ProviderOutput, extract_json, normalize

__all__ = [
    "DiagnosisService",
    "resolve_provider",
    "ErrorKind",
    "ProviderError",
    "SchemaValidationError",
    "MOCK_CATALOGUE",
    "get_mock_diagnosis",
    "Provider",
    "ProviderOutput",
    "extract_json",
    "normalize",
]
