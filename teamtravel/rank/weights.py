from typing import Dict
from pydantic import BaseModel, ConfigDict


class RankingWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: float
    duration: float
    stops: float
    time_fit: float
    airline: float

    def total(self) -> float:
        return self.price + self.duration + self.stops + self.time_fit + self.airline


_WEIGHTS: Dict[str, RankingWeights] = {
    "cheapest": RankingWeights(price=0.45, duration=0.15, stops=0.15, time_fit=0.15, airline=0.10),
    "best_experience": RankingWeights(price=0.10, duration=0.25, stops=0.25, time_fit=0.20, airline=0.20),
    "best_value": RankingWeights(price=0.30, duration=0.20, stops=0.20, time_fit=0.15, airline=0.15),
}
DEFAULT_WEIGHTS = RankingWeights(price=0.25, duration=0.25, stops=0.20, time_fit=0.15, airline=0.15)


def derive_weights(priority: str) -> RankingWeights:
    """Scoring weights for a budget priority; no_preference and unknown values get the default row."""
    return _WEIGHTS.get(priority, DEFAULT_WEIGHTS)
