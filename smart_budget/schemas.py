from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, Field, ConfigDict, field_validator

Category = Literal["hotel", "restaurant", "activity"]

# ------- Tunable configuration -------
class AlgorithmSettings(BaseModel):
    """Singleton tuning record. Column names double as JSON keys."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    split_ratio_hotel: float = Field(0.4, ge=0.0, le=1.0)
    split_ratio_food: float = Field(0.3, ge=0.0, le=1.0)
    split_ratio_activity: float = Field(0.3, ge=0.0, le=1.0)
    weight_price_fit: float = Field(0.3, ge=0.0, le=1.0)
    weight_distance: float = Field(0.2, ge=0.0, le=1.0)
    weight_affinity: float = Field(0.3, ge=0.0, le=1.0)
    weight_rating: float = Field(0.2, ge=0.0, le=1.0)
    penalty_per_km: float = Field(10.0, ge=0.0)

    @property
    def split_total(self) -> float:
        return self.split_ratio_hotel + self.split_ratio_food + self.split_ratio_activity

    @property
    def weight_total(self) -> float:
        return self.weight_price_fit + self.weight_distance + self.weight_affinity + self.weight_rating

class AlgorithmSettingsWrite(AlgorithmSettings):
    """Admin write body: all eight values must be sent, unknown keys are rejected."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    split_ratio_hotel: float = Field(..., ge=0.0, le=1.0)
    split_ratio_food: float = Field(..., ge=0.0, le=1.0)
    split_ratio_activity: float = Field(..., ge=0.0, le=1.0)
    weight_price_fit: float = Field(..., ge=0.0, le=1.0)
    weight_distance: float = Field(..., ge=0.0, le=1.0)
    weight_affinity: float = Field(..., ge=0.0, le=1.0)
    weight_rating: float = Field(..., ge=0.0, le=1.0)
    penalty_per_km: float = Field(..., ge=0.0)

# ------- Request models -------
class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

class Dates(BaseModel):
    start: str
    end: str

class UserParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total_budget: float = Field(..., alias="totalBudget")
    group_size: int = Field(..., alias="groupSize", ge=1)
    days: int = Field(..., ge=1)
    dates: Dates
    preferences: List[str] = Field(default_factory=list)
    anchor_coords: Coordinates = Field(..., alias="anchorCoords")

    @field_validator("preferences", mode="before")
    @classmethod
    def _dedupe_preferences(cls, value: Any) -> List[str]:
        # preferences behave as a set under case-insensitive matching; keep the first-seen spelling
        if value is None:
            return []
        kept: List[str] = []
        seen = set()
        for item in value:
            if isinstance(item, str) and item.lower() not in seen:
                seen.add(item.lower())
                kept.append(item)
        return kept

class Candidate(BaseModel):
    """A venue row from the store. Unknown columns are carried through untouched."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: Union[int, str]
    type: str = "activity"
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    price_level: Optional[int] = None
    tags: Optional[List[str]] = None
    rating: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def point(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)  # type: ignore[return-value]

class RecommendationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_params: UserParams = Field(..., alias="userParams")
    category: Category
    current_spend: float = Field(0.0, alias="currentSpend")

class TripRecommendationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    trip: Dict[str, Any]
    category: Category

class RebalanceRequest(BaseModel):
    settings: AlgorithmSettings
    field: Literal[
        "split_ratio_hotel",
        "split_ratio_food",
        "split_ratio_activity",
        "weight_price_fit",
        "weight_distance",
        "weight_affinity",
        "weight_rating",
    ]
    value: float = Field(..., ge=0.0, le=1.0)

# ------- Response models -------
class RankedLocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    candidate: Candidate
    score: float
    price_score: float = Field(..., alias="priceScore")
    distance_score: float = Field(..., alias="distanceScore")
    affinity_score: float = Field(..., alias="affinityScore")
    rating_score: float = Field(..., alias="ratingScore")
    distance_km: float = Field(..., alias="distanceKm", ge=0.0)
    estimated_price: float = Field(..., alias="estimatedPrice", ge=0.0)

class RecommendationResponse(BaseModel):
    success: bool
    data: List[RankedLocation] = Field(default_factory=list)
    error: Optional[str] = None

class SettingsResponse(BaseModel):
    settings: AlgorithmSettings
    source: Literal["store", "default"]
