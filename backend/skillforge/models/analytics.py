from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class BucketUnit(str, Enum):
    day = "day"
    week = "week"
    month = "month"


class Histogram(BaseModel):
    unit: BucketUnit
    labels: List[str] = Field(description="Bucket start as month/day or month/year")
    counts: List[int]
    starts: List[datetime]


class PopularTopic(BaseModel):
    id: str
    title: str
    count: int


class CourseCompletion(BaseModel):
    id: str
    title: str
    total_topics: int
    completed_users: int


class RetentionReport(BaseModel):
    day1: int
    day7: int
    day30: int
    total: int


class EngagementReport(BaseModel):
    daily: Histogram
    weekly: Histogram
    monthly: Histogram
