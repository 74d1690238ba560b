from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from tripdesk.modules.proposals.models import ProposalStatus


class AcceptRequest(BaseModel):
    # Missing fields are answered with the workflow's own 400s, not a 422.
    signature: str = Field(default="", max_length=500)
    agreed_to_terms: bool = False


class AcceptOut(BaseModel):
    proposal_number: str
    status: ProposalStatus
    accepted_at: datetime | None
