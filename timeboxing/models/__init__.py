"""ORM model package."""

from timeboxing.models.entities import (
    Absence,
    AdsSyncJob,
    Allocation,
    Client,
    Deadline,
    Employee,
    GlobalAssignment,
    GoogleAdsCampaign,
    MetaAdsCampaign,
    Project,
    TeamEvent,
    User,
)

__all__ = [
    "Absence",
    "AdsSyncJob",
    "Allocation",
    "Client",
    "Deadline",
    "Employee",
    "GlobalAssignment",
    "GoogleAdsCampaign",
    "MetaAdsCampaign",
    "Project",
    "TeamEvent",
    "User",
]
