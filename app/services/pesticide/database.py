"""
Pesticide reference data and dosage calculators.

A small curated catalogue of registered products and integrated pest
management (IPM) programmes. Lookups are case-insensitive substring
matches, so "blight" finds every blight entry.
"""

import logging
from typing import List, Optional

from app.models import (
    ApplicationRate,
    DosageRecommendation,
    EnvironmentalImpact,
    IPMRecommendation,
    PesticideDosage,
)

logger = logging.getLogger(__name__)

PESTICIDE_DOSAGES: List[PesticideDosage] = [
    PesticideDosage(
        id="copper-fungicide-1",
        product="Copper Hydroxide WP",
        active_ingredient="Copper Hydroxide 77%",
        target_disease="Bacterial Blight",
        target_plant="Tomato",
        application_rate=ApplicationRate(value=2.5, unit="kg/ha", min=2.0, max=3.0),
        method="Foliar spray",
        timing="Preventive and early infection",
        max_applications_per_season=6,
        preharvest_interval=1,
        reentry_interval=24,
        registration_status="registered",
        environmental_impact=EnvironmentalImpact(
            bee_risk="low", aquatic_toxicity="medium", soil_persistence="medium", groundwater_risk="low"
        ),
        cost=45.50,
        cost_effectiveness="high",
        instructions="Apply in early morning or evening. Ensure good coverage of all plant surfaces.",
        restrictions=["Do not apply during bloom period", "Avoid application before rain"],
    ),
    PesticideDosage(
        id="mancozeb-1",
        product="Mancozeb 80% WP",
        active_ingredient="Mancozeb 80%",
        target_disease="Early Blight",
        target_plant="Tomato",
        application_rate=ApplicationRate(value=2.0, unit="kg/ha", min=1.5, max=2.5),
        method="Foliar spray",
        timing="Preventive, 7-14 day intervals",
        max_applications_per_season=8,
        preharvest_interval=7,
        reentry_interval=24,
        registration_status="registered",
        environmental_impact=EnvironmentalImpact(
            bee_risk="low", aquatic_toxicity="low", soil_persistence="low", groundwater_risk="low"
        ),
        cost=32.75,
        cost_effectiveness="high",
        instructions="Start applications before disease symptoms appear. Rotate with other fungicide groups.",
        restrictions=["Maximum 8 applications per season", "Do not tank mix with alkaline products"],
    ),
    PesticideDosage(
        id="streptomycin-1",
        product="Streptomycin Sulfate",
        active_ingredient="Streptomycin Sulfate 21.2%",
        target_disease="Fire Blight",
        target_plant="Apple",
        application_rate=ApplicationRate(value=0.5, unit="kg/ha", min=0.3, max=0.7),
        method="Foliar spray",
        timing="Bloom period, high infection risk",
        max_applications_per_season=3,
        preharvest_interval=50,
        reentry_interval=12,
        registration_status="registered",
        environmental_impact=EnvironmentalImpact(
            bee_risk="medium", aquatic_toxicity="low", soil_persistence="low", groundwater_risk="low"
        ),
        cost=89.25,
        cost_effectiveness="medium",
        instructions="Apply during bloom when infection conditions are favorable. Use resistance management.",
        restrictions=["Limited to 3 applications per season", "Antibiotic resistance management required"],
    ),
]

IPM_RECOMMENDATIONS: List[IPMRecommendation] = [
    IPMRecommendation(
        id="tomato-early-blight-ipm",
        disease_name="Early Blight",
        plant_type="Tomato",
        cultural_controls=[
            "Crop rotation with non-solanaceous crops for 2-3 years",
            "Remove and destroy infected plant debris",
            "Improve air circulation through proper spacing",
            "Avoid overhead irrigation, use drip irrigation",
            "Mulch to prevent soil splash onto lower leaves",
            "Remove lower leaves that touch the ground",
        ],
        biological_controls=[
            "Apply Bacillus subtilis-based products preventively",
            "Use Trichoderma harzianum soil amendments",
            "Encourage beneficial insects through habitat management",
        ],
        chemical_controls=[
            "Mancozeb 80% WP at 2.0 kg/ha (preventive)",
            "Chlorothalonil 75% WP at 2.5 kg/ha (curative)",
            "Azoxystrobin + Difenoconazole (resistance management)",
        ],
        monitoring=(
            "Scout weekly for symptoms on lower leaves. Monitor weather conditions "
            "for infection periods (warm, humid conditions)."
        ),
        preventive_measures=[
            "Plant resistant varieties when available",
            "Ensure proper plant nutrition, especially potassium",
            "Start preventive fungicide program early in season",
            "Maintain proper plant spacing for air circulation",
        ],
        economic_threshold="5% of plants showing symptoms on lower leaves",
        seasonal_timing=[
            "Early season: Focus on cultural controls and prevention",
            "Mid-season: Begin monitoring and preventive treatments",
            "Late season: Curative treatments if needed, harvest timing",
        ],
    ),
    IPMRecommendation(
        id="apple-fire-blight-ipm",
        disease_name="Fire Blight",
        plant_type="Apple",
        cultural_controls=[
            "Prune out infected branches 12 inches below symptoms",
            "Disinfect pruning tools between cuts with 70% alcohol",
            "Avoid excessive nitrogen fertilization",
            "Remove water sprouts and suckers regularly",
            "Plant resistant varieties when possible",
            "Manage irrigation to avoid wetting foliage",
        ],
        biological_controls=[
            "Apply Bacillus amyloliquefaciens during bloom",
            "Use competitive bacteria like Pseudomonas fluorescens",
            "Encourage beneficial insects for pollination management",
        ],
        chemical_controls=[
            "Streptomycin sulfate during bloom (high risk periods)",
            "Copper compounds during dormant season",
            "Kasugamycin as alternative to streptomycin",
        ],
        monitoring=(
            "Monitor bloom period weather conditions. Use fire blight prediction models "
            "(Maryblyt, Cougarblight). Scout for symptoms weekly during growing season."
        ),
        preventive_measures=[
            "Select resistant rootstocks and varieties",
            "Avoid pruning during wet weather",
            "Control insect vectors (aphids, leafhoppers)",
            "Maintain proper tree nutrition and vigor",
        ],
        economic_threshold="Any symptoms during bloom period require immediate action",
        seasonal_timing=[
            "Dormant season: Pruning and copper applications",
            "Bloom period: Critical monitoring and antibiotic applications",
            "Growing season: Continued monitoring and sanitation",
        ],
    ),
    IPMRecommendation(
        id="tomato-bacterial-blight-ipm",
        disease_name="Bacterial Blight",
        plant_type="Tomato",
        cultural_controls=[
            "Use certified disease-free seeds and transplants",
            "Crop rotation with non-host crops for 2-3 years",
            "Avoid working in fields when plants are wet",
            "Control weeds that may harbor the pathogen",
            "Use drip irrigation instead of overhead sprinklers",
            "Provide adequate plant spacing for air circulation",
        ],
        biological_controls=[
            "Apply Bacillus subtilis or B. amyloliquefaciens",
            "Use Pseudomonas fluorescens-based products",
            "Maintain beneficial soil microorganisms",
        ],
        chemical_controls=[
            "Copper hydroxide 77% WP at 2.5 kg/ha (preventive)",
            "Copper sulfate + lime (Bordeaux mixture)",
            "Streptomycin sulfate (limited use, resistance management)",
        ],
        monitoring=(
            "Scout weekly for water-soaked lesions on leaves and stems. Monitor weather "
            "for warm, humid conditions that favor disease development."
        ),
        preventive_measures=[
            "Plant resistant varieties when available",
            "Maintain proper plant nutrition",
            "Start preventive copper applications early",
            "Implement strict sanitation practices",
        ],
        economic_threshold="1-2% of plants showing early symptoms",
        seasonal_timing=[
            "Pre-plant: Soil preparation and sanitation",
            "Early season: Preventive treatments and monitoring",
            "Growing season: Regular scouting and treatment as needed",
        ],
    ),
]


def _contains(haystack: str, needle: Optional[str]) -> bool:
    return (needle or "").lower() in haystack.lower()


def _matches_any(pairs) -> bool:
    """OR across the (field, term) pairs that carry a term; no terms matches everything."""
    terms = [(field, term.strip()) for field, term in pairs if term and term.strip()]
    if not terms:
        return True
    return any(_contains(field, term) for field, term in terms)


def get_pesticide_dosages(disease: str = "", plant_type: str = "") -> List[PesticideDosage]:
    """Products whose target disease OR target plant contains the search text.

    An empty term places no constraint; with both empty every product matches.
    """
    return [
        d for d in PESTICIDE_DOSAGES
        if _matches_any([(d.target_disease, disease), (d.target_plant, plant_type)])
    ]


def get_ipm_recommendations(disease: str = "", plant_type: str = "") -> List[IPMRecommendation]:
    return [
        r for r in IPM_RECOMMENDATIONS
        if _matches_any([(r.disease_name, disease), (r.plant_type, plant_type)])
    ]


def get_pesticide_by_id(pesticide_id: str) -> Optional[PesticideDosage]:
    for dosage in PESTICIDE_DOSAGES:
        if dosage.id == pesticide_id:
            return dosage
    return None


def search_pesticides(query: str) -> List[PesticideDosage]:
    return [
        d for d in PESTICIDE_DOSAGES
        if any(_contains(field, query) for field in (
            d.product, d.active_ingredient, d.target_disease, d.target_plant
        ))
    ]


def get_registered_pesticides() -> List[PesticideDosage]:
    return [d for d in PESTICIDE_DOSAGES if d.registration_status == "registered"]


def calculate_application_cost(dosage: PesticideDosage, field_size_ha: float) -> float:
    return dosage.cost * field_size_ha


def get_dosage_recommendation(
    dosage: PesticideDosage,
    field_size_ha: float,
    spray_volume_per_ha: float,
) -> DosageRecommendation:
    """Work out product, tank mix and cost for a field.

    Raises ValueError for non-positive field size or spray volume.
    """
    if field_size_ha <= 0 or spray_volume_per_ha <= 0:
        raise ValueError("field size and spray volume must be positive")

    rate = dosage.application_rate
    total_product = rate.value * field_size_ha
    concentration = rate.value / spray_volume_per_ha * 1000  # ml/L
    total_volume = spray_volume_per_ha * field_size_ha

    return DosageRecommendation(
        total_product_needed=f"{total_product:.2f} {rate.unit}",
        concentration_per_liter=f"{concentration:.1f} ml/L",
        total_spray_volume=f"{total_volume:g} L",
        estimated_cost=calculate_application_cost(dosage, field_size_ha),
    )
