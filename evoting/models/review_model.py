from typing import Optional

from pydantic import BaseModel

SENTIMENTS = ("positive", "negative", "neutral")


class ReviewIn(BaseModel):
    reviewText: str
    candidateName: Optional[str] = None
