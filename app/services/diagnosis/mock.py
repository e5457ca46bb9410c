"""
Mock diagnoses returned whenever a real provider result is unavailable.

The UI always gets a complete, stable-shaped payload; responses built from
this catalogue are flagged ``mockResponse: true`` by the adapters.
"""

import random

from app.models import DiagnosisResult, Severity

MOCK_CATALOGUE = (
    DiagnosisResult(
        disease="Powdery Mildew",
        confidence=0.87,
        severity=Severity.MEDIUM,
        description="White powdery fungal growth on leaves, common in humid conditions",
        symptoms=["White powdery coating on leaves", "Yellowing of affected areas", "Stunted growth"],
        possible_causes=["High humidity", "Poor air circulation", "Overcrowding"],
        organic_treatments=[
            "Baking soda spray (1 tsp per quart water)",
            "Neem oil application",
            "Milk spray (1:10 ratio)",
        ],
        chemical_treatments=["Fungicide with myclobutanil", "Sulfur-based fungicide"],
        preventive_measures=["Improve air circulation", "Avoid overhead watering", "Space plants properly"],
        urgency=Severity.MEDIUM,
    ),
    DiagnosisResult(
        disease="Leaf Spot Disease",
        confidence=0.82,
        severity=Severity.LOW,
        description="Circular brown spots on leaves, typically caused by bacterial or fungal infection",
        symptoms=["Brown circular spots", "Yellow halos around spots", "Leaf yellowing"],
        possible_causes=["Wet leaves", "Poor sanitation", "Infected plant debris"],
        organic_treatments=["Copper fungicide", "Remove affected leaves", "Improve drainage"],
        chemical_treatments=["Chlorothalonil fungicide", "Mancozeb application"],
        preventive_measures=["Water at soil level", "Remove plant debris", "Rotate crops"],
        urgency=Severity.LOW,
    ),
)

MOCK_DISEASE_NAMES = tuple(entry.disease for entry in MOCK_CATALOGUE)


def get_mock_diagnosis(rng=random) -> DiagnosisResult:
    """Pick one catalogue entry uniformly at random."""
    return rng.choice(MOCK_CATALOGUE)
