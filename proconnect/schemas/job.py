"""Job-related Pydantic schemas."""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class JobType(str, Enum):
    """Employment type of a job posting"""
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    REMOTE = "remote"


class Job(BaseModel):
    """A job posting plus the viewer's saved flag."""
    id: str
    company_name: str
    company_logo: Optional[str] = None
    title: str
    location: str = ""
    job_type: JobType
    description: str = ""
    salary_range: Optional[str] = None
    posted_at: datetime
    saved: bool = False
    
    model_config = ConfigDict(frozen=True, extra="ignore")

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over the searchable fields."""
        needle = query.lower()
        return any(
            needle in field.lower()
            for field in (self.title, self.company_name, self.description, self.location)
        )
