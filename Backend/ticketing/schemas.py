"""
Request bodies and entity snapshots.

Snapshots are what the core hands back to callers; ORM rows never leave the
service layer. Request bodies only fix the wire types - field rules (lengths,
positivity, capacity) are enforced by the core so that they apply to every
caller, not just HTTP.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


# ────────────────────────────────────────────────────────────────
# Requests
# ────────────────────────────────────────────────────────────────

class TenantCreate(BaseModel):
    slug: str
    name: str
    is_active: bool = True


class VenueWrite(BaseModel):
    name: str
    address: Optional[str] = None
    seating_capacity: int = 0
    description: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = Field(default=None, description="IANA zone, e.g. America/Chicago")


class ActWrite(BaseModel):
    name: str


class ShowCreate(BaseModel):
    venue_key: uuid.UUID
    act_key: uuid.UUID
    ticket_count: int
    start_time: datetime = Field(description="Absolute instant, or venue wall-clock time when no offset is given")


class TicketOfferWrite(BaseModel):
    name: str
    price: Decimal
    ticket_count: int


# ────────────────────────────────────────────────────────────────
# Snapshots
# ────────────────────────────────────────────────────────────────

class TenantOut(BaseModel):
    slug: str
    name: str
    is_active: bool
    created_at: datetime


class VenueOut(BaseModel):
    key: uuid.UUID
    name: str
    address: Optional[str] = None
    seating_capacity: int
    description: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: str
    created_at: datetime
    updated_at: datetime


class ActOut(BaseModel):
    key: uuid.UUID
    name: str
    created_at: datetime
    updated_at: datetime


class ShowOut(BaseModel):
    key: uuid.UUID
    venue_key: uuid.UUID
    venue_name: str
    venue_capacity: int
    act_key: uuid.UUID
    act_name: str
    ticket_count: int
    start_time: datetime
    created_at: datetime
    updated_at: datetime


class TicketOfferOut(BaseModel):
    key: uuid.UUID
    show_key: uuid.UUID
    name: str
    price: Decimal
    ticket_count: int
    created_at: datetime
    updated_at: datetime


class ShowCapacityOut(BaseModel):
    show_key: uuid.UUID
    total: int
    allocated: int
    available: int


class NearbyShowOut(BaseModel):
    show_key: uuid.UUID
    act_name: str
    start_time: datetime


class NearbyShowsResponse(BaseModel):
    venue_key: uuid.UUID
    venue_name: str
    reference_time: datetime
    shows: List[NearbyShowOut] = Field(default_factory=list)
    message: str = ""
