from pydantic import BaseModel, Field
from typing import Dict, List

from fainatic.schemas.transaction import Money

DIFFICULTY_LEVELS = ("easy", "moderate", "significant")


class RecommendationImpact(BaseModel):
    monthly: Money
    yearly: Money


class RecommendationLink(BaseModel):
    title: str
    url: str


class Recommendation(BaseModel):
    id: str
    title: str
    description: str
    impact: RecommendationImpact
    steps: List[str] = Field(default_factory=list)
    links: List[RecommendationLink] = Field(default_factory=list)


class RecommendationSet(BaseModel):
    """Shape the language model is asked to answer with"""
    recommendations: Dict[str, List[Recommendation]] = Field(default_factory=dict)
