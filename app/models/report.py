"""
Pydantic models for cyberbullying incident reports.
These models handle validation for drafts produced by the intake
conversation, stored reports, and the derived cluster views.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from enum import Enum


class BullyingType(str, Enum):
    """Fixed category set offered by the intake conversation."""
    HARASSMENT = "Harassment"
    CYBERSTALKING = "Cyberstalking"
    IMPERSONATION = "Impersonation"
    HATE_SPEECH = "Hate Speech"
    THREATS = "Threats"
    OTHER = "Other"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReportStatus(str, Enum):
    """
    Report lifecycle.

    pending → reported (escalation only) → resolved (admin action only)
    """
    PENDING = "pending"
    REPORTED = "reported"
    RESOLVED = "resolved"


class Location(BaseModel):
    """Value produced by the map picker."""
    # Range checks live in geo_math.is_valid_coordinate so stored records with
    # bad coordinates still load and can be excluded from aggregation.
    lat: float = Field(..., description="Latitude in decimal degrees")
    lng: float = Field(..., description="Longitude in decimal degrees")
    address: str = Field("", max_length=500, description="Human-readable address")
    state: str = Field("", max_length=100)
    district: str = Field("", max_length=100)
    city: str = Field("", max_length=100)

    def label(self) -> str:
        """Short place label used in chat transcripts and escalation messages."""
        parts = [p for p in (self.city, self.district, self.state) if p]
        if parts:
            return ", ".join(parts)
        return self.address or f"{self.lat:.4f}, {self.lng:.4f}"


class PerpetratorInfo(BaseModel):
    """What the reporter knows about the person responsible."""
    platform: str = Field("", max_length=100, description="Platform where the incident occurred")
    username: Optional[str] = Field(None, max_length=200)
    profile_url: Optional[str] = Field(None, max_length=500)
    real_name: Optional[str] = Field(None, max_length=200)
    approximate_age: Optional[str] = Field(None, max_length=20)
    additional_details: Optional[str] = Field(None, max_length=1000)


class ReportDraft(BaseModel):
    """
    A finalized, not-yet-persisted report.
    The storage collaborator assigns `id` and `timestamp`.
    """
    user_id: Optional[str] = Field(None, description="Owning account, if the reporter is signed in")
    is_anonymous: bool = False
    name: Optional[str] = Field(None, max_length=100, description="Reporter name (named reports only)")
    age: Optional[int] = Field(None, ge=1, le=120)
    location: Location
    bullying_type: BullyingType
    perpetrator_info: PerpetratorInfo
    evidence_links: List[str] = Field(default_factory=list)
    severity: Severity = Severity.LOW
    status: ReportStatus = ReportStatus.PENDING

    class Config:
        json_schema_extra = {
            "example": {
                "is_anonymous": True,
                "age": 15,
                "location": {
                    "lat": 12.97,
                    "lng": 77.59,
                    "address": "MG Road",
                    "state": "Karnataka",
                    "district": "Bengaluru Urban",
                    "city": "Bengaluru",
                },
                "bullying_type": "Harassment",
                "perpetrator_info": {"platform": "Instagram", "username": "@abc"},
                "evidence_links": ["http://x"],
                "severity": "high",
                "status": "pending",
            }
        }


class Report(ReportDraft):
    """A stored report. Identity and timestamp are immutable."""
    id: str = Field(..., description="Storage document ID")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When report was created")


class Cluster(BaseModel):
    """
    Derived view over the current report population. Never persisted.
    """
    cell_key: str
    lat: float
    lng: float
    count: int
    severity: Severity
    reports: List[Report] = Field(default_factory=list)


class CriticalAreaCheck(BaseModel):
    """Outcome of the per-submission local critical-area check."""
    is_critical: bool
    count: int
    reports: List[Report] = Field(default_factory=list)
    escalated_ids: List[str] = Field(default_factory=list, description="Reports moved to reported by this check")


class AuthorityReportResult(BaseModel):
    """Contract shape of the authority notification channel."""
    success: bool
    reported_count: int
    message: str


class SubmissionOutcome(BaseModel):
    """What the submission sink hands back to the conversation caller."""
    report_id: str
    report: Report
    critical_area: Optional[CriticalAreaCheck] = None
    escalation_error: Optional[str] = Field(None, description="Set when the report was stored but escalation failed")
