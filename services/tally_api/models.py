"""Pydantic models for form parsing and page/response data."""
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field, field_validator


class VoteForm(BaseModel):
    """Vote submission form model."""

    mynumber: str = Field(default="", description="National identification number")
    name: str = Field(default="", description="Voter name, must match the registry")
    address: str = Field(default="", description="Voter address, must match the registry")
    vote_count: int = Field(default=0, description="Number of votes to cast")
    candidate: str = Field(default="", description="Candidate name as typed by the voter")
    keyword: str = Field(default="", description="Reason for the vote")

    @field_validator("vote_count", mode="before")
    @classmethod
    def parse_vote_count(cls, v):
        """Read the leading integer of free text, 0 when there is none."""
        if v is None:
            return 0
        if isinstance(v, int):
            return v
        text = str(v).strip()
        sign = 1
        if text[:1] in ("-", "+"):
            sign = -1 if text[0] == "-" else 1
            text = text[1:]
        digits = ""
        for char in text:
            if not char.isdigit():
                break
            digits += char
        return sign * int(digits) if digits else 0

    @field_validator("mynumber", "name", "address", "candidate", "keyword", mode="before")
    @classmethod
    def none_to_blank(cls, v):
        return "" if v is None else v

    model_config = {
        "json_schema_extra": {
            "example": {
                "mynumber": "0001",
                "name": "山田太郎",
                "address": "東京都",
                "vote_count": 3,
                "candidate": "佐藤一郎",
                "keyword": "経済"
            }
        }
    }


class CandidateResult(BaseModel):
    """A candidate together with its current vote total."""

    id: int
    name: str
    political_party: str
    sex: str
    count: int = 0


class ResultsOverview(BaseModel):
    """Data for the ranked results page."""

    candidates: list[CandidateResult] = Field(..., description="Top and bottom candidates by votes")
    parties: dict[str, int] = Field(..., description="Vote totals per party")
    sex_ratio: dict[str, int] = Field(..., description="Vote totals per sex")


class CandidateDetail(BaseModel):
    """Data for a candidate page."""

    candidate: CandidateResult
    votes: int
    keywords: list[str]


class PartyDetail(BaseModel):
    """Data for a political party page."""

    political_party: str
    votes: int
    candidates: list[CandidateResult]
    keywords: list[str]


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")
