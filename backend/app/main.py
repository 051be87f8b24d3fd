from __future__ import annotations

import json
import os
from collections import Counter
from typing import Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from loguru import logger
from pydantic import ValidationError
from sqlmodel import Session, select

from venue_layout.availability import seat_availability
from venue_layout.cache import CacheSweeper, MemoryCache
from venue_layout.codec import encode_layout
from venue_layout.decor import normalize_decor
from venue_layout.legend import build_legend
from venue_layout.logging_config import setup_logging
from venue_layout.model import VenueLayout
from venue_layout.numbering import seat_overview
from venue_layout.pricing import price_overview
from venue_layout.render import render_svg

from .db import get_session, init_db
from .models import EventDecor, LayoutRecord, _utc_now
from .schemas import DecorUpsert, DuplicateRequest, LayoutCreate, LayoutPatch, SeatStatusBatch


_NULLABLE_FIELDS = frozenset({"venue_owner_id", "event_id"})


app = FastAPI(title="Venue Layout API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup() -> None:
    setup_logging(component="api")
    init_db()
    cache = MemoryCache(default_ttl=float(os.environ.get("VENUE_LAYOUT_CACHE_TTL_S", 300)))
    app.state.svg_cache = cache
    app.state.svg_sweeper = CacheSweeper(cache).start()
    logger.info("layout service ready")


@app.on_event("shutdown")
def _shutdown() -> None:
    sweeper = getattr(app.state, "svg_sweeper", None)
    if sweeper is not None:
        sweeper.stop()


def _session() -> Session:
    return get_session()


def _svg_cache(request: Request) -> Optional[MemoryCache]:
    return getattr(request.app.state, "svg_cache", None)


def _get_record(session: Session, layout_id: str) -> LayoutRecord:
    rec = session.get(LayoutRecord, layout_id)
    if not rec:
        raise HTTPException(status_code=404, detail="layout not found")
    return rec


def _check_unique_ids(layout: VenueLayout) -> None:
    for what, ids in (("item", [i.id for i in layout.items]), ("category", [c.id for c in layout.categories])):
        dupes = sorted(k for k, n in Counter(ids).items() if n > 1)
        if dupes:
            raise HTTPException(status_code=400, detail=f"duplicate {what} ids: {', '.join(dupes[:20])}")


def _document(rec: LayoutRecord) -> dict:
    return rec.to_layout().to_document()


def _invalidate(cache: Optional[MemoryCache], layout_id: str) -> None:
    if cache is not None:
        cache.delete_matching(lambda k: isinstance(k, tuple) and len(k) > 1 and k[1] == layout_id)


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.post("/venue-layout")
def create_layout(payload: LayoutCreate, session: Session = Depends(_session)) -> dict:
    layout = VenueLayout.model_validate(payload.model_dump())
    _check_unique_ids(layout)
    rec = LayoutRecord(name=layout.name)
    rec.apply_layout(layout)
    session.add(rec)
    session.commit()
    session.refresh(rec)
    logger.info("created layout {} ({} items)", rec.id, len(layout.items))
    return _document(rec)


@app.get("/venue-layout")
def list_layouts(
    venue_owner_id: Optional[str] = Query(default=None, alias="venueOwnerId"),
    event_id: Optional[str] = Query(default=None, alias="eventId"),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    session: Session = Depends(_session),
) -> list[dict]:
    q = select(LayoutRecord)
    if venue_owner_id:
        q = q.where(LayoutRecord.venue_owner_id == venue_owner_id)
    if event_id:
        q = q.where(LayoutRecord.event_id == event_id)
    if is_active is not None:
        q = q.where(LayoutRecord.is_active == is_active)
    records = session.exec(q.order_by(LayoutRecord.updated_at.desc())).all()
    return [_document(r) for r in records]


@app.get("/venue-layout/{layout_id}")
def get_layout(layout_id: str, session: Session = Depends(_session)) -> dict:
    return _document(_get_record(session, layout_id))


@app.patch("/venue-layout/{layout_id}")
def patch_layout(
    layout_id: str,
    payload: LayoutPatch,
    session: Session = Depends(_session),
    cache: Optional[MemoryCache] = Depends(_svg_cache),
) -> dict:
    rec = _get_record(session, layout_id)
    current = rec.to_layout()
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k in _NULLABLE_FIELDS
    }
    try:
        merged = VenueLayout.model_validate({**current.model_dump(), **changes})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    _check_unique_ids(merged)

    if "items" in changes:
        # Statuses of seats that no longer exist go with them.
        seat_ids = {i.id for i in merged.seats()}
        statuses = rec.seat_statuses()
        rec.set_seat_statuses({k: v for k, v in statuses.items() if k in seat_ids})

    rec.apply_layout(merged)
    session.add(rec)
    session.commit()
    session.refresh(rec)
    _invalidate(cache, layout_id)
    return _document(rec)


@app.delete("/venue-layout/{layout_id}")
def delete_layout(
    layout_id: str,
    session: Session = Depends(_session),
    cache: Optional[MemoryCache] = Depends(_svg_cache),
) -> dict:
    rec = _get_record(session, layout_id)
    session.delete(rec)
    session.commit()
    _invalidate(cache, layout_id)
    logger.info("deleted layout {}", layout_id)
    return {"deleted": True}


@app.patch("/venue-layout/{layout_id}/toggle-active")
def toggle_active(
    layout_id: str,
    session: Session = Depends(_session),
    cache: Optional[MemoryCache] = Depends(_svg_cache),
) -> dict:
    rec = _get_record(session, layout_id)
    rec.is_active = not rec.is_active
    rec.updated_at = _utc_now()
    session.add(rec)
    session.commit()
    session.refresh(rec)
    _invalidate(cache, layout_id)
    return _document(rec)


@app.post("/venue-layout/{layout_id}/duplicate")
def duplicate_layout(
    layout_id: str,
    payload: Optional[DuplicateRequest] = Body(default=None),
    session: Session = Depends(_session),
) -> dict:
    src = _get_record(session, layout_id)
    layout = src.to_layout()
    layout.name = (payload.name if payload and payload.name else f"{layout.name} (Copy)")
    rec = LayoutRecord(name=layout.name)
    rec.apply_layout(layout)
    session.add(rec)
    session.commit()
    session.refresh(rec)
    return _document(rec)


@app.get("/venue-layout/{layout_id}/availability")
def get_availability(layout_id: str, session: Session = Depends(_session)) -> dict:
    rec = _get_record(session, layout_id)
    return seat_availability(rec.to_layout(), rec.seat_statuses()).to_dict()


@app.patch("/venue-layout/{layout_id}/seat-status")
def update_seat_status(layout_id: str, payload: SeatStatusBatch, session: Session = Depends(_session)) -> dict:
    rec = _get_record(session, layout_id)
    seat_ids = {s.id for s in rec.to_layout().seats()}
    missing = sorted({u.seat_id for u in payload.updates} - seat_ids)
    if missing:
        raise HTTPException(status_code=404, detail={"message": "some seats not found", "missing_seat_ids": missing[:50]})

    statuses = rec.seat_statuses()
    for u in payload.updates:
        statuses[u.seat_id] = u.status
    rec.set_seat_statuses(statuses)
    rec.updated_at = _utc_now()
    session.add(rec)
    session.commit()
    return {"success": True, "updatedCount": len(payload.updates)}


@app.get("/venue-layout/{layout_id}/booking")
def get_booking_layout(layout_id: str, session: Session = Depends(_session)) -> dict:
    rec = _get_record(session, layout_id)
    return encode_layout(rec.to_layout(), statuses=rec.seat_statuses())


@app.get("/venue-layout/{layout_id}/svg")
def get_layout_svg(
    layout_id: str,
    decor: bool = True,
    session: Session = Depends(_session),
    cache: Optional[MemoryCache] = Depends(_svg_cache),
) -> Response:
    rec = _get_record(session, layout_id)
    key = ("svg", layout_id, rec.updated_at.isoformat(), decor)
    svg = cache.get(key) if cache is not None else None
    if svg is None:
        layout = rec.to_layout()
        overlay = []
        if decor and layout.event_id:
            stored = session.get(EventDecor, layout.event_id)
            overlay = normalize_decor(stored.items()) if stored else []
        svg = render_svg(layout, decor=overlay)
        if cache is not None:
            cache.set(key, svg)
    return Response(content=svg, media_type="image/svg+xml")


@app.get("/venue-layout/{layout_id}/legend")
def get_legend(layout_id: str, session: Session = Depends(_session)) -> dict:
    return build_legend(_get_record(session, layout_id).to_layout()).to_dict()


@app.get("/venue-layout/{layout_id}/price-overview")
def get_price_overview(layout_id: str, session: Session = Depends(_session)) -> dict:
    return price_overview(_get_record(session, layout_id).to_layout()).to_dict()


@app.get("/venue-layout/{layout_id}/seat-overview")
def get_seat_overview(layout_id: str, session: Session = Depends(_session)) -> dict:
    return seat_overview(_get_record(session, layout_id).to_layout().items).to_dict()


@app.put("/events/{event_id}/decor")
def upsert_event_decor(
    event_id: str,
    payload: DecorUpsert,
    session: Session = Depends(_session),
    cache: Optional[MemoryCache] = Depends(_svg_cache),
) -> dict:
    existing = session.get(EventDecor, event_id)
    if existing:
        existing.items_json = json.dumps(payload.items)
        existing.updated_at = _utc_now()
        session.add(existing)
    else:
        session.add(EventDecor(event_id=event_id, items_json=json.dumps(payload.items)))
    session.commit()
    if cache is not None:
        # Rendered SVGs of every layout for this event embed the old decor.
        for rec in session.exec(select(LayoutRecord).where(LayoutRecord.event_id == event_id)).all():
            _invalidate(cache, rec.id)
    return {"eventId": event_id, "count": len(payload.items)}


@app.get("/events/{event_id}/decor")
def get_event_decor(event_id: str, session: Session = Depends(_session)) -> dict:
    stored = session.get(EventDecor, event_id)
    if not stored:
        raise HTTPException(status_code=404, detail="no decor for this event")
    return {"eventId": event_id, "items": stored.items()}
