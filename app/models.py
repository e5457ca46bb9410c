from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# Urgency shares the Low/Medium/High scale
Urgency = Severity


class TimeOfDay(str, Enum):
    MORNING = "morning"
    EVENING = "evening"


class CamelModel(BaseModel):
    """Base for models serialised to the JS client with camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)


# ============================================================================#
# Diagnosis
# ============================================================================#

class DiagnosisResult(CamelModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    disease: str
    confidence: float = Field(ge=0.0, le=1.0)
    severity: Severity
    description: str
    symptoms: List[str] = Field(default_factory=list)
    possible_causes: List[str] = Field(default_factory=list, alias="possibleCauses")
    organic_treatments: List[str] = Field(default_factory=list, alias="organicTreatments")
    chemical_treatments: List[str] = Field(default_factory=list, alias="chemicalTreatments")
    preventive_measures: List[str] = Field(default_factory=list, alias="preventiveMeasures")
    urgency: Urgency


class AlternativeDiagnosis(CamelModel):
    name: str
    confidence: float
    severity: Severity


class DiagnosisResponse(CamelModel):
    result: DiagnosisResult
    provider: str
    mock_response: bool = Field(default=False, alias="mockResponse")
    error: Optional[str] = None
    error_details: Optional[str] = Field(default=None, alias="errorDetails")
    cached: bool = False
    alternatives: List[AlternativeDiagnosis] = Field(default_factory=list)


class DiagnoseRequest(CamelModel):
    image: Optional[str] = None
    base64_image: Optional[str] = Field(default=None, alias="base64Image")
    plant_type: Optional[str] = Field(default=None, alias="plantType")
    provider: Optional[str] = None

    def image_data(self) -> Optional[str]:
        return self.image or self.base64_image


class SaveDiagnosisRequest(CamelModel):
    user_id: str = Field(alias="userId")
    plant_type: str = Field(default="", alias="plantType")
    result: DiagnosisResult
    image: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


# ============================================================================#
# Weather / spray calendar
# ============================================================================#

class SprayDay(CamelModel):
    date: datetime
    score: int = Field(ge=0, le=100)
    raw_score: int = Field(alias="rawScore")
    reasons: List[str] = Field(default_factory=list)
    best_time_of_day: TimeOfDay = Field(alias="bestTimeOfDay")
    conditions: str
    temperature: float
    wind_speed: float = Field(alias="windSpeed")
    rain_probability: float = Field(alias="rainProbability")


class SprayRecommendation(CamelModel):
    should_spray: bool = Field(alias="shouldSpray")
    risk_level: str = Field(alias="riskLevel")
    reason: str
    best_time_to_spray: Optional[str] = Field(default=None, alias="bestTimeToSpray")
    recommended_products: List[str] = Field(default_factory=list, alias="recommendedProducts")


class SprayEventRequest(CamelModel):
    field_id: str = Field(alias="fieldId")
    day: SprayDay


# ============================================================================#
# Pesticide reference data
# ============================================================================#

class ApplicationRate(CamelModel):
    value: float
    unit: str
    min: Optional[float] = None
    max: Optional[float] = None


class EnvironmentalImpact(CamelModel):
    bee_risk: str = Field(alias="beeRisk")
    aquatic_toxicity: str = Field(alias="aquaticToxicity")
    soil_persistence: str = Field(alias="soilPersistence")
    groundwater_risk: str = Field(alias="groundwaterRisk")


class PesticideDosage(CamelModel):
    id: str
    product: str
    active_ingredient: str = Field(alias="activeIngredient")
    target_disease: str = Field(alias="targetDisease")
    target_plant: str = Field(alias="targetPlant")
    application_rate: ApplicationRate = Field(alias="applicationRate")
    method: str
    timing: str
    max_applications_per_season: int = Field(alias="maxApplicationsPerSeason")
    preharvest_interval: int = Field(alias="preharvestInterval")  # days
    reentry_interval: int = Field(alias="reentryInterval")  # hours
    registration_status: str = Field(default="registered", alias="registrationStatus")
    environmental_impact: EnvironmentalImpact = Field(alias="environmentalImpact")
    cost: float  # per hectare
    cost_effectiveness: str = Field(default="medium", alias="costEffectiveness")
    instructions: Optional[str] = None
    restrictions: List[str] = Field(default_factory=list)


class IPMRecommendation(CamelModel):
    id: str
    disease_name: str = Field(alias="diseaseName")
    plant_type: str = Field(alias="plantType")
    cultural_controls: List[str] = Field(default_factory=list, alias="culturalControls")
    biological_controls: List[str] = Field(default_factory=list, alias="biologicalControls")
    chemical_controls: List[str] = Field(default_factory=list, alias="chemicalControls")
    monitoring: str = ""
    preventive_measures: List[str] = Field(default_factory=list, alias="preventiveMeasures")
    economic_threshold: Optional[str] = Field(default=None, alias="economicThreshold")
    seasonal_timing: List[str] = Field(default_factory=list, alias="seasonalTiming")


class DosageRecommendation(CamelModel):
    total_product_needed: str = Field(alias="totalProductNeeded")
    concentration_per_liter: str = Field(alias="concentrationPerLiter")
    total_spray_volume: str = Field(alias="totalSprayVolume")
    estimated_cost: float = Field(alias="estimatedCost")


class ResearchTreatment(CamelModel):
    pesticide: str
    dosage: str
    method: str
    efficacy: str
    source: str


class PesticideResearchData(CamelModel):
    disease: str
    crop: str
    treatments: List[ResearchTreatment] = Field(default_factory=list)
    ipm_recommendations: List[str] = Field(default_factory=list, alias="ipmRecommendations")
    safety_data: Dict[str, object] = Field(default_factory=dict, alias="safetyData")


# ============================================================================#
# Community
# ============================================================================#

class VoteRequest(CamelModel):
    diagnosis_id: str = Field(alias="diagnosisId")
    user_id: str = Field(alias="userId")
    voted_disease: str = Field(alias="votedDisease")


class VoteSummary(CamelModel):
    diagnosis_id: str = Field(alias="diagnosisId")
    upvotes: int = 0
    downvotes: int = 0
    leading_disease: Optional[str] = Field(default=None, alias="leadingDisease")
    user_has_voted: bool = Field(default=False, alias="userHasVoted")
    confidence: Optional[float] = None
