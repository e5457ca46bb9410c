"""
Static Plant Disease Database

Zero-configuration provider: keyword-matches an image against a small
reference catalogue without any network call. It is also the fallback
target when no provider is selected.

Usage:
    diseases = search_diseases(["white", "powdery"], plant_type="tomato")
    raw, matches, keywords = diagnose_from_database(base64_image, "tomato")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from app.models import Severity

logger = logging.getLogger(__name__)

_SEVERITY_ORDER = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


@dataclass(frozen=True)
class Treatment:
    name: str
    application: str
    timing: str
    frequency: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class PlantDisease:
    id: str
    name: str
    common_names: List[str]
    plant_types: List[str]
    symptoms: List[str]
    causes: List[str]
    severity: Severity
    seasonality: List[str]
    organic_treatments: List[Treatment]
    chemical_treatments: List[Treatment]
    preventive_measures: List[str]
    image_keywords: List[str] = field(default_factory=list)


PLANT_DISEASES: List[PlantDisease] = [
    # Fungal diseases
    PlantDisease(
        id="powdery-mildew",
        name="Powdery Mildew",
        common_names=["White Mold", "Powdery Fungus"],
        plant_types=["tomato", "grape", "cucumber", "zucchini", "pepper", "eggplant"],
        symptoms=[
            "White powdery coating on leaves",
            "Yellowing of affected leaves",
            "Stunted plant growth",
            "Distorted leaf shape",
            "Premature leaf drop",
        ],
        causes=[
            "High humidity (60-80%)",
            "Poor air circulation",
            "Overcrowded plants",
            "Moderate temperatures (20-26°C)",
            "Shaded conditions",
        ],
        severity=Severity.MEDIUM,
        seasonality=["spring", "summer", "fall"],
        organic_treatments=[
            Treatment("Baking Soda Spray", "1 tsp baking soda + 1 quart water + few drops dish soap",
                      "Early morning or evening", "Every 7-10 days"),
            Treatment("Neem Oil", "Spray all plant surfaces", "Evening to avoid leaf burn", "Every 7-14 days"),
            Treatment("Milk Spray", "1 part milk to 10 parts water", "Morning application", "Weekly"),
        ],
        chemical_treatments=[
            Treatment("Myclobutanil Fungicide", "Follow label instructions", "At first sign of disease",
                      "Every 14 days"),
            Treatment("Sulfur Fungicide", "Dust or spray application", "Before temperature exceeds 29°C",
                      "Every 10-14 days"),
        ],
        preventive_measures=[
            "Improve air circulation between plants",
            "Avoid overhead watering",
            "Space plants properly",
            "Remove affected plant debris",
            "Choose resistant varieties",
        ],
        image_keywords=["white", "powdery", "coating", "mildew", "fungus", "dusty"],
    ),
    PlantDisease(
        id="early-blight",
        name="Early Blight",
        common_names=["Target Spot", "Alternaria Blight"],
        plant_types=["tomato", "potato", "pepper", "eggplant"],
        symptoms=[
            "Dark brown spots with concentric rings",
            "Target-like lesions on leaves",
            "Yellowing around spots",
            "Lower leaves affected first",
            "Stem cankers near soil line",
        ],
        causes=[
            "Alternaria solani fungus",
            "Warm, humid weather",
            "Water stress",
            "Poor nutrition",
            "Overhead irrigation",
        ],
        severity=Severity.HIGH,
        seasonality=["summer", "fall"],
        organic_treatments=[
            Treatment("Copper Fungicide", "Spray all plant surfaces", "At first sign of disease",
                      "Every 7-10 days"),
            Treatment("Compost Tea", "Foliar spray and soil drench", "Weekly preventive", "Weekly"),
        ],
        chemical_treatments=[
            Treatment("Chlorothalonil", "Thorough coverage of foliage", "Preventive or at first symptoms",
                      "Every 7-14 days"),
            Treatment("Mancozeb", "Spray to runoff", "Before disease establishment", "Every 10-14 days"),
        ],
        preventive_measures=[
            "Rotate crops annually",
            "Remove plant debris",
            "Mulch around plants",
            "Water at soil level",
            "Maintain proper plant nutrition",
        ],
        image_keywords=["brown", "spots", "rings", "target", "concentric", "blight"],
    ),
    PlantDisease(
        id="late-blight",
        name="Late Blight",
        common_names=["Potato Blight", "Tomato Blight"],
        plant_types=["tomato", "potato"],
        symptoms=[
            "Water-soaked lesions on leaves",
            "White fuzzy growth on leaf undersides",
            "Brown to black lesions",
            "Rapid plant collapse",
            "Fruit rot with firm, brown areas",
        ],
        causes=[
            "Phytophthora infestans",
            "Cool, wet weather",
            "High humidity",
            "Temperature 15-21°C",
            "Poor air circulation",
        ],
        severity=Severity.HIGH,
        seasonality=["late summer", "fall"],
        organic_treatments=[
            Treatment("Copper Sulfate", "Preventive spray program", "Before symptoms appear",
                      "Every 5-7 days in wet weather"),
        ],
        chemical_treatments=[
            Treatment("Metalaxyl + Mancozeb", "Systemic and contact protection", "Preventive application",
                      "Every 7-10 days"),
            Treatment("Cymoxanil + Famoxadone", "Curative and preventive", "At first symptoms",
                      "Every 7-14 days"),
        ],
        preventive_measures=[
            "Choose resistant varieties",
            "Improve air circulation",
            "Avoid overhead irrigation",
            "Remove volunteer plants",
            "Monitor weather conditions",
        ],
        image_keywords=["water-soaked", "fuzzy", "white", "collapse", "blight", "rot"],
    ),
    # Bacterial diseases
    PlantDisease(
        id="bacterial-spot",
        name="Bacterial Spot",
        common_names=["Bacterial Speck", "Leaf Spot"],
        plant_types=["tomato", "pepper"],
        symptoms=[
            "Small, dark brown spots on leaves",
            "Yellow halos around spots",
            "Spots on fruit",
            "Leaf yellowing and drop",
            "Raised, scab-like fruit lesions",
        ],
        causes=[
            "Xanthomonas bacteria",
            "Warm, humid conditions",
            "Overhead watering",
            "Contaminated seeds",
            "Splashing water",
        ],
        severity=Severity.MEDIUM,
        seasonality=["summer"],
        organic_treatments=[
            Treatment("Copper Hydroxide", "Spray to coverage", "Preventive or early symptoms", "Every 7-10 days"),
            Treatment("Streptomycin", "Antibiotic spray (where legal)", "At first symptoms", "Every 5-7 days"),
        ],
        chemical_treatments=[
            Treatment("Copper + Mancozeb", "Tank mix for broad protection", "Preventive program",
                      "Every 7-14 days"),
        ],
        preventive_measures=[
            "Use certified disease-free seeds",
            "Avoid overhead irrigation",
            "Sanitize tools between plants",
            "Remove infected plant debris",
            "Rotate crops",
        ],
        image_keywords=["bacterial", "spots", "brown", "halos", "yellow", "scab"],
    ),
    # Viral diseases
    PlantDisease(
        id="mosaic-virus",
        name="Mosaic Virus",
        common_names=["Tobacco Mosaic", "Cucumber Mosaic"],
        plant_types=["tomato", "pepper", "cucumber", "tobacco"],
        symptoms=[
            "Mottled yellow and green leaves",
            "Distorted leaf growth",
            "Stunted plant development",
            "Reduced fruit production",
            "Mosaic pattern on leaves",
        ],
        causes=[
            "Viral infection",
            "Aphid transmission",
            "Contaminated tools",
            "Infected plant material",
            "Mechanical transmission",
        ],
        severity=Severity.HIGH,
        seasonality=["spring", "summer"],
        organic_treatments=[
            Treatment("Remove Infected Plants", "Complete plant removal", "Immediately upon detection",
                      "As needed"),
            Treatment("Insecticidal Soap", "Control aphid vectors", "Weekly during aphid season", "Weekly"),
        ],
        chemical_treatments=[
            Treatment("Systemic Insecticides", "Control aphid vectors", "Preventive application", "As per label"),
        ],
        preventive_measures=[
            "Use virus-free transplants",
            "Control aphid populations",
            "Sanitize tools with bleach",
            "Remove weeds that harbor virus",
            "Choose resistant varieties",
        ],
        image_keywords=["mosaic", "mottled", "yellow", "green", "distorted", "virus"],
    ),
    # Nutrient deficiencies
    PlantDisease(
        id="nitrogen-deficiency",
        name="Nitrogen Deficiency",
        common_names=["N Deficiency", "Yellowing"],
        plant_types=["tomato", "pepper", "cucumber", "grape", "all vegetables"],
        symptoms=[
            "Yellowing of older leaves first",
            "Stunted growth",
            "Pale green coloration",
            "Reduced fruit production",
            "Premature leaf drop",
        ],
        causes=[
            "Insufficient nitrogen in soil",
            "Leaching from heavy rains",
            "Poor soil organic matter",
            "High carbon materials",
            "Cold soil temperatures",
        ],
        severity=Severity.MEDIUM,
        seasonality=["spring", "summer"],
        organic_treatments=[
            Treatment("Compost Application", "2-4 inches around plants", "Early season and mid-season",
                      "Twice per season"),
            Treatment("Fish Emulsion", "Dilute according to label", "Every 2-3 weeks", "Bi-weekly"),
            Treatment("Blood Meal", "Work into soil around plants", "Early season", "Once per season"),
        ],
        chemical_treatments=[
            Treatment("Balanced Fertilizer (10-10-10)", "Side-dress around plants", "Early season and mid-season",
                      "Monthly"),
            Treatment("Urea (46-0-0)", "Dissolve in water for quick uptake", "When deficiency appears",
                      "As needed"),
        ],
        preventive_measures=[
            "Regular soil testing",
            "Add organic matter annually",
            "Use slow-release fertilizers",
            "Maintain proper soil pH",
            "Avoid over-watering",
        ],
        image_keywords=["yellow", "pale", "stunted", "deficiency", "chlorosis"],
    ),
]

NO_MATCH_DIAGNOSIS: Dict[str, Any] = {
    "disease": "Unable to identify specific issue",
    "confidence": 0.3,
    "severity": "Low",
    "description": (
        "No specific disease pattern detected. Plant appears relatively healthy "
        "or issue may require closer inspection."
    ),
    "symptoms": ["No clear disease symptoms visible"],
    "possibleCauses": ["Environmental stress", "Minor nutrient deficiency", "Normal plant variation"],
    "organicTreatments": ["Monitor plant closely", "Ensure proper watering", "Check soil drainage"],
    "chemicalTreatments": ["No chemical treatment recommended at this time"],
    "preventiveMeasures": ["Maintain good garden hygiene", "Proper spacing", "Regular monitoring"],
    "urgency": "Low",
}


def search_diseases(keywords: List[str], plant_type: Optional[str] = None) -> List[PlantDisease]:
    """Find diseases whose keywords, symptoms or names contain any search term.

    Results are filtered by plant type when given and ordered by severity
    (High first); equal severities keep catalogue order.
    """
    terms = [k.lower() for k in keywords if k]
    plant = plant_type.lower() if plant_type else None

    matches = []
    for disease in PLANT_DISEASES:
        if plant and plant not in disease.plant_types:
            continue
        haystack = [
            text.lower()
            for text in (*disease.image_keywords, *disease.symptoms, disease.name, *disease.common_names)
        ]
        if any(term in text for term in terms for text in haystack):
            matches.append(disease)

    return sorted(matches, key=lambda d: _SEVERITY_ORDER[d.severity], reverse=True)


def get_disease_by_id(disease_id: str) -> Optional[PlantDisease]:
    for disease in PLANT_DISEASES:
        if disease.id == disease_id:
            return disease
    return None


def get_diseases_for_plant(plant_type: str) -> List[PlantDisease]:
    plant = plant_type.lower()
    return [d for d in PLANT_DISEASES if plant in d.plant_types]


def _string_hash(text: str) -> int:
    """32-bit rolling hash over the first 100 characters (stable across runs)."""
    h = 0
    for ch in text[:100]:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def analyze_image_keywords(image_b64: str, month: Optional[int] = None) -> List[str]:
    """Guess visual keywords for an image.

    There is no vision model behind this: the keyword family is picked from a
    hash of the encoded image so the same photo always gives the same answer,
    then seasonal hints are added for the current month (1-12).
    """
    bucket = _string_hash(image_b64) % 10
    if bucket < 3:
        keywords = ["spots", "brown", "circular"]
    elif bucket < 6:
        keywords = ["white", "powdery", "coating"]
    elif bucket < 8:
        keywords = ["yellow", "pale", "deficiency"]
    else:
        keywords = ["water-soaked", "blight", "dark"]

    if month is None:
        month = datetime.now().month
    if 6 <= month <= 9:
        keywords += ["fungal", "humid"]
    elif 3 <= month <= 5:
        keywords += ["bacterial", "wet"]
    return keywords


def calculate_confidence(disease: PlantDisease, keywords: List[str], plant_type: Optional[str] = None) -> float:
    confidence = 0.5
    if plant_type and plant_type.lower() in disease.plant_types:
        confidence += 0.2

    if keywords:
        matching = [
            kw for kw in keywords
            if any(dk.lower() in kw.lower() or kw.lower() in dk.lower() for dk in disease.image_keywords)
        ]
        confidence += (len(matching) / len(keywords)) * 0.3

    return min(max(confidence, 0.1), 0.95)


def disease_to_raw(disease: PlantDisease, confidence: float) -> Dict[str, Any]:
    """Canonical-shape dict for a catalogue entry, ready for the normalizer."""
    return {
        "disease": disease.name,
        "confidence": confidence,
        "severity": disease.severity.value,
        "description": (
            f"{disease.name} is commonly found in {', '.join(disease.plant_types)} plants. "
            f"{disease.symptoms[0]}."
        ),
        "symptoms": list(disease.symptoms),
        "possibleCauses": list(disease.causes),
        "organicTreatments": [f"{t.name}: {t.application}" for t in disease.organic_treatments],
        "chemicalTreatments": [f"{t.name}: {t.application}" for t in disease.chemical_treatments],
        "preventiveMeasures": list(disease.preventive_measures),
        "urgency": disease.severity.value,
    }


def diagnose_from_database(
    image_b64: str,
    plant_type: Optional[str] = None,
    month: Optional[int] = None,
) -> Tuple[Dict[str, Any], List[PlantDisease], List[str]]:
    """Run the keyword lookup for one image.

    Returns the raw canonical diagnosis, every matching disease (best first)
    and the keywords that were searched.
    """
    keywords = analyze_image_keywords(image_b64, month=month)
    matches = search_diseases(keywords, plant_type)
    logger.info(f"Plant database: keywords={keywords} matches={len(matches)}")

    if not matches:
        return dict(NO_MATCH_DIAGNOSIS), matches, keywords

    best = matches[0]
    return disease_to_raw(best, calculate_confidence(best, keywords, plant_type)), matches, keywords
