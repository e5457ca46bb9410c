"""
Pesticide research lookup.

Queries the FAO AGRIS search and the EU Agri-Food data portal in parallel
and mines the results for treatments (product, dosage, method, efficacy)
and IPM hints. Either source failing just contributes nothing.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from app.config import AGRIS_SEARCH_URL, EU_AGRI_DATA_URL, RESEARCH_USER_AGENT
from app.models import PesticideResearchData, ResearchTreatment

logger = logging.getLogger(__name__)

TIMEOUT = httpx.Timeout(30.0, connect=10.0)
HEADERS = {"Accept": "application/json", "User-Agent": RESEARCH_USER_AGENT}

MAX_TREATMENTS = 10

DOSAGE_PATTERNS = [
    re.compile(r"(\d+(?:\.\d+)?)\s*(g|kg|ml|l)/ha", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*(g|ml)/l", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*ppm", re.IGNORECASE),
]

EFFICACY_PATTERNS = [
    re.compile(r"(\d+)%\s*control", re.IGNORECASE),
    re.compile(r"(\d+)%\s*reduction", re.IGNORECASE),
    re.compile(r"(\d+)%\s*efficacy", re.IGNORECASE),
]

COMMON_PESTICIDES = [
    "mancozeb", "azoxystrobin", "tebuconazole", "propiconazole",
    "copper", "bordeaux", "sulfur", "bacillus", "trichoderma",
]

APPLICATION_METHODS = ["foliar spray", "soil drench", "seed treatment", "fumigation"]

# (trigger phrases, recommendation)
IPM_HINTS = [
    (("resistant varieties", "resistance"), "Use resistant varieties when available"),
    (("crop rotation",), "Implement crop rotation"),
    (("biological control", "biocontrol"), "Consider biological control agents"),
    (("cultural practices", "sanitation"), "Maintain good field sanitation"),
    (("monitoring", "scouting"), "Regular field monitoring and scouting"),
]

DEFAULT_SAFETY_DATA = {"phi": 14, "rei": 24, "toxicity": "Moderate"}

# AGRIS HTML results page
TITLE_PATTERN = re.compile(r"\b(?:title|heading|research)\b[:\s]*([^.]+)", re.IGNORECASE)
ABSTRACT_PATTERN = re.compile(r"\b(?:abstract|summary|description)\b[:\s]*([^.]{50,500})", re.IGNORECASE)
YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")
SENTENCE_SPLIT = re.compile(r"[.!?]+")
MAX_HTML_RECORDS = 10
MAX_FALLBACK_SENTENCES = 5

AGRICULTURAL_TERMS = (
    "crop", "plant", "disease", "pest", "fungus", "treatment", "control", "spray", "application",
)

# (terms, points per term present)
RELEVANCE_TERMS = (
    (("pesticide", "fungicide", "herbicide", "insecticide", "treatment", "control", "disease", "crop"), 2),
    (("dosage", "rate", "application", "spray", "g/ha", "ml/l", "ppm"), 3),
    (("study", "trial", "experiment", "research", "field", "greenhouse"), 1),
)


async def _get(http_client: Optional[httpx.AsyncClient], url: str, params: Dict[str, Any]) -> httpx.Response:
    if http_client is not None:
        response = await http_client.get(url, params=params, headers=HEADERS)
    else:
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            response = await client.get(url, params=params, headers=HEADERS)
    response.raise_for_status()
    return response


async def _get_json(http_client: Optional[httpx.AsyncClient], url: str, params: Dict[str, Any]) -> Any:
    return (await _get(http_client, url, params)).json()


async def search_agris(
    crop: str,
    disease: str,
    pesticide: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[Dict[str, Any]]:
    """Search AGRIS for treatment papers; returns [] on any failure.

    AGRIS sometimes ignores ``format=json`` and serves its HTML results
    page; that is mined with ``parse_agris_html`` instead.
    """
    terms = "+".join(t for t in (crop, disease, pesticide, "treatment", "dosage") if t)
    try:
        response = await _get(http_client, AGRIS_SEARCH_URL, {"source": "AGRIS", "q": terms, "format": "json"})
    except httpx.HTTPError as e:
        logger.error(f"AGRIS API error: {e}")
        return []

    if "html" in response.headers.get("content-type", ""):
        results = parse_agris_html(response.text)
        logger.info(f"Found {len(results)} AGRIS results (HTML)")
        return results

    try:
        data = response.json()
    except ValueError as e:
        logger.error(f"AGRIS API error: {e}")
        return []

    records = data.get("records") if isinstance(data, dict) else None
    if not isinstance(records, list):
        return []

    results = [
        {
            "title": r.get("title") or "Unknown Title",
            "authors": r.get("authors") or [],
            "publicationDate": r.get("date") or "Unknown Date",
            "abstract": r.get("abstract") or "",
            "source": r.get("source") or "AGRIS",
            "url": r.get("url"),
            "keywords": r.get("keywords") or [],
        }
        for r in records
        if isinstance(r, dict)
    ]
    logger.info(f"Found {len(results)} AGRIS results")
    return results


async def search_eu_agri_data(
    crop: str,
    region: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[Dict[str, Any]]:
    """Crop-level pesticide usage from the EU portal; returns [] on any failure."""
    params = {"crop": crop}
    if region:
        params["region"] = region
    try:
        data = await _get_json(http_client, EU_AGRI_DATA_URL, params)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"EU Agri-Data API error: {e}")
        return []

    rows = data.get("data") if isinstance(data, dict) else None
    if not isinstance(rows, list):
        return []

    results = [
        {
            "crop": r.get("crop") or crop,
            "pesticide": r.get("pesticide") or "Unknown",
            "dosage": r.get("dosage") or "Not specified",
            "region": r.get("region") or region or "EU",
            "year": r.get("year"),
            "applicationMethod": r.get("method") or "Foliar spray",
        }
        for r in rows
        if isinstance(r, dict)
    ]
    logger.info(f"Found {len(results)} EU Agri-Data results")
    return results


# ============================================================================#
# Text mining helpers
# ============================================================================#

def extract_pesticide_name(title: str, abstract: str) -> str:
    text = f"{title} {abstract}".lower()
    for name in COMMON_PESTICIDES:
        if name in text:
            return name.capitalize()
    return "Unknown pesticide"


def extract_application_method(text: str) -> str:
    lower = text.lower()
    for method in APPLICATION_METHODS:
        if method in lower:
            return method
    return "Foliar spray"


def extract_efficacy(text: str) -> str:
    for pattern in EFFICACY_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return "Effective"


def extract_dosages(text: str) -> List[str]:
    """First dosage mention for each dosage pattern that matches."""
    dosages = []
    for pattern in DOSAGE_PATTERNS:
        match = pattern.search(text)
        if match:
            dosages.append(match.group(0))
    return dosages


def extract_ipm_recommendations(results: List[Dict[str, Any]]) -> List[str]:
    found = []
    for result in results:
        text = f"{result.get('title', '')} {result.get('abstract', '')}".lower()
        for triggers, recommendation in IPM_HINTS:
            if recommendation not in found and any(t in text for t in triggers):
                found.append(recommendation)
    return found


# ============================================================================#
# AGRIS HTML results page
# ============================================================================#

def _unique(values) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def relevance_score(text: str) -> int:
    lower = text.lower()
    return sum(weight for terms, weight in RELEVANCE_TERMS for term in terms if term in lower)


def _html_record(title: str, abstract: str) -> Dict[str, Any]:
    year = YEAR_PATTERN.search(f"{title} {abstract}")
    return {
        "title": title,
        "authors": [],
        "publicationDate": year.group(0) if year else "Unknown Date",
        "abstract": abstract,
        "source": "AGRIS FAO",
        "url": None,
        "keywords": [],
        "relevanceScore": relevance_score(f"{title} {abstract}"),
    }


def parse_agris_html(html: str) -> List[Dict[str, Any]]:
    """Pull research records out of an AGRIS HTML results page.

    Labelled titles/abstracts are paired up in page order. Pages without
    labels fall back to agricultural sentences from the body text.
    Records come back most relevant first.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = " ".join(soup.get_text(separator=" ").split())

    titles = [
        t for t in _unique(m.group(1).strip() for m in TITLE_PATTERN.finditer(text))
        if 10 < len(t) < 200
    ]
    abstracts = [
        a for a in _unique(m.group(1).strip() for m in ABSTRACT_PATTERN.finditer(text))
        if len(a) > 50
    ]

    records = [
        _html_record(title, abstracts[i] if i < len(abstracts) else "")
        for i, title in enumerate(titles[:MAX_HTML_RECORDS])
    ]

    if not records:
        sentences = [s.strip() for s in SENTENCE_SPLIT.split(text) if len(s.strip()) > 50]
        for sentence in sentences[:MAX_FALLBACK_SENTENCES]:
            if any(term in sentence.lower() for term in AGRICULTURAL_TERMS):
                records.append(_html_record(sentence[:100] + "...", sentence))

    return sorted(records, key=lambda r: r["relevanceScore"], reverse=True)


async def get_pesticide_research_data(
    crop: str,
    disease: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PesticideResearchData:
    logger.info(f"Researching treatments for {disease} in {crop}")

    agris_results, eu_results = await asyncio.gather(
        search_agris(crop, disease, http_client=http_client),
        search_eu_agri_data(crop, http_client=http_client),
    )

    treatments: List[ResearchTreatment] = []
    for result in agris_results:
        abstract = result["abstract"].lower()
        for dosage in extract_dosages(abstract):
            treatments.append(ResearchTreatment(
                pesticide=extract_pesticide_name(result["title"], result["abstract"]),
                dosage=dosage,
                method=extract_application_method(result["abstract"]),
                efficacy=extract_efficacy(result["abstract"]),
                source=f"{result['source']} - {result['title'][:50]}...",
            ))

    for result in eu_results:
        year = result["year"] or ""
        treatments.append(ResearchTreatment(
            pesticide=result["pesticide"],
            dosage=result["dosage"],
            method=result["applicationMethod"],
            efficacy="Field-tested",
            source=f"EU Agri-Data {year} - {result['region']}".replace("  ", " "),
        ))

    return PesticideResearchData(
        disease=disease,
        crop=crop,
        treatments=treatments[:MAX_TREATMENTS],
        ipm_recommendations=extract_ipm_recommendations(agris_results),
        safety_data=dict(DEFAULT_SAFETY_DATA),
    )
