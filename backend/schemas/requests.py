"""Request schemas for the Sentinel API."""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from schemas.performance import Experiment


class RunTriggersRequest(BaseModel):
    """Request to run one trigger evaluation pass."""
    now: Optional[datetime] = Field(default=None, description="Evaluation time override (UTC)")

    @field_validator("now")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    class Config:
        json_schema_extra = {"example": {"now": None}}


class AnalyzeExperimentRequest(BaseModel):
    """Request to compare experiment variants against the control."""
    experiment: Experiment

    class Config:
        json_schema_extra = {
            "example": {
                "experiment": {
                    "id": "exp-42",
                    "name": "Checkout button copy",
                    "control_variant_id": "A",
                    "performance_data": {
                        "A": {"rate": 0.05, "revenue": 1200.0, "visitors": 2400},
                        "B": {"rate": 0.038, "revenue": 1010.0, "visitors": 2350},
                    },
                }
            }
        }


class GenerateRuleRequest(BaseModel):
    """Request to draft a trigger rule from a natural-language description."""
    description: str = Field(min_length=3, description="What the rule should watch and do")
    campaign_ids: Optional[List[str]] = None
