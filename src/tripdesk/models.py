"""
Alembic model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

# Venues first - stops reference them by foreign key
from tripdesk.modules.venues.models import Venue  # noqa: F401

from tripdesk.modules.notifications.models import EmailLog  # noqa: F401
from tripdesk.modules.payments.models import PaymentRecord  # noqa: F401
from tripdesk.modules.proposals.models import (  # noqa: F401
    ProposalActivity,
    TripProposal,
    TripProposalDay,
    TripProposalGuest,
    TripProposalInclusion,
    TripProposalStop,
)
