"""
pyjama_parties.py — Pajama party participation signups.

Routes:
  POST /api/pyjama-parties   sign up to take part at a station (5/minute per IP)
  GET  /api/pyjama-parties   signups per station by participation level (no personal data)

One signup per email address: a second one answers 409. Signups expire
after signup_retention_days and, like dreams, are filtered out of every
read rather than deleted.

TESTING
───────
  pytest tests/test_pyjama_parties.py -v
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from pajama_party.core.config import settings
from pajama_party.core.database import PYJAMA_PARTY_SIGNUPS, get_db
from pajama_party.core.rate_limit import SIGNUP_LIMIT, limiter
from pajama_party.models.pyjama_party import (
    ParticipationLevel,
    ParticipationResponse,
    SignupCreate,
    SignupResponse,
    StationParticipation,
)
from pajama_party.services.community import active_filter
from pajama_party.services.dream_repository import load_active_signups
from pajama_party.services.signup_validation import next_steps, sanitize_signup, validate_signup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pyjama-parties", tags=["pyjama-parties"])


@router.post("", response_model=SignupResponse, status_code=201)
@limiter.limit(SIGNUP_LIMIT)
async def sign_up(request: Request, payload: SignupCreate, db=Depends(get_db)):
    errors = validate_signup(payload)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"error": "Invalid form data", "message": "Please check your input data", "details": errors},
        )
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    now = datetime.now(timezone.utc)
    doc = sanitize_signup(payload, now, settings.signup_retention_days)

    existing = await db[PYJAMA_PARTY_SIGNUPS].find_one(active_filter(now, email=doc["email"]))
    if existing:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "This email address is already registered",
                "message": "Use a different email or contact support to update your registration.",
            },
        )

    result = await db[PYJAMA_PARTY_SIGNUPS].insert_one(doc)
    logger.info("Pyjama party signup: %s at %s", doc["participation_level"], doc["preferred_station"])

    return SignupResponse(
        signup_id=str(result.inserted_id),
        next_steps=next_steps(doc["preferred_station"]),
        timestamp=now,
    )


@router.get("", response_model=ParticipationResponse)
async def participation(db=Depends(get_db)):
    if db is None:
        return ParticipationResponse(stations=[], total_signups=0)

    signups = await load_active_signups(db, datetime.now(timezone.utc))
    levels: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for doc in signups:
        station = doc.get("preferred_station")
        if station:
            levels[station][doc.get("participation_level", ParticipationLevel.ATTEND.value)] += 1

    stations = [
        StationParticipation(
            station=station,
            participants=sum(counts.values()),
            volunteers=counts[ParticipationLevel.VOLUNTEER.value],
            organizers=counts[ParticipationLevel.COORDINATOR.value],
        )
        for station, counts in levels.items()
    ]
    stations.sort(key=lambda s: (-s.participants, s.station))
    return ParticipationResponse(stations=stations, total_signups=len(signups))
