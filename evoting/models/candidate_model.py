from typing import Optional

from pydantic import BaseModel, Field

from evoting.config import MIN_CANDIDATE_AGE


class Candidate(BaseModel):
    name: str = Field(..., min_length=1, examples=["Asha Rao"])
    party: str = Field(..., min_length=1, examples=["Independent"])
    age: int = Field(..., ge=MIN_CANDIDATE_AGE)


class CandidateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    party: Optional[str] = Field(None, min_length=1)
    age: Optional[int] = Field(None, ge=MIN_CANDIDATE_AGE)
