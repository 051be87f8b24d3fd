from __future__ import annotations

import os
from typing import Any, Iterable, Mapping, Optional, Union

import httpx
from loguru import logger
from pydantic import ValidationError

from .availability import SeatAvailability, SeatStatus
from .cache import MemoryCache
from .codec import decode_layout
from .model import LayoutError, PRICED_ITEM_TYPES, VenueLayout


DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT_S = 12.0
TIMEOUT_MESSAGE = "Request timed out while loading layout. Please try again."


class LayoutServiceError(LayoutError):
    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LayoutTimeoutError(LayoutServiceError):
    def __init__(self, message: str = TIMEOUT_MESSAGE):
        super().__init__(message)


class LayoutNotFoundError(LayoutServiceError):
    pass


class LayoutPermissionError(LayoutServiceError):
    pass


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if detail:
            return detail if isinstance(detail, str) else str(detail)
    return resp.reason_phrase


class LayoutStorageClient:
    """
    HTTP client for the layout storage service.

    One request per call: failures surface to the caller, who decides
    whether to try again. Reads of a single layout go through the optional
    cache; any write to that layout drops its cached copy.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        cache: Optional[MemoryCache] = None,
        cache_ttl: Optional[float] = None,
    ):
        if http is None:
            base_url = base_url or os.environ.get("VENUE_LAYOUT_API_URL", DEFAULT_BASE_URL)
            http = httpx.Client(base_url=base_url, timeout=timeout)
            self._owns_http = True
        else:
            self._owns_http = False
        self.http = http
        self.timeout = timeout
        self.cache = cache
        self.cache_ttl = cache_ttl

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "LayoutStorageClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # transport

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("{} {}", method, path)
        try:
            resp = self.http.request(method, path, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("{} {} timed out after {}s", method, path, self.timeout)
            raise LayoutTimeoutError() from e
        except httpx.HTTPError as e:
            raise LayoutServiceError(f"layout service unreachable: {e}") from e

        if resp.status_code in (401, 403):
            raise LayoutPermissionError(_detail(resp), status_code=resp.status_code)
        if resp.status_code == 404:
            raise LayoutNotFoundError(_detail(resp), status_code=404)
        if resp.status_code >= 400:
            raise LayoutServiceError(_detail(resp), status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise LayoutServiceError("layout service returned a non-JSON response") from e

    def _layout(self, data: Any) -> VenueLayout:
        if not isinstance(data, dict):
            raise LayoutServiceError("invalid layout data received")
        try:
            return VenueLayout.model_validate(data)
        except ValidationError as e:
            raise LayoutServiceError(f"invalid layout data received: {e.error_count()} error(s)") from e

    def _cache_key(self, layout_id: str) -> tuple[str, str]:
        return ("layout", layout_id)

    def _forget(self, layout_id: str) -> None:
        if self.cache is not None:
            self.cache.delete(self._cache_key(layout_id))
            self.cache.delete(("booking", layout_id))

    # layouts

    def create_layout(self, layout: Union[VenueLayout, Mapping]) -> VenueLayout:
        doc = layout.to_document() if isinstance(layout, VenueLayout) else dict(layout)
        doc.pop("_id", None)
        return self._layout(self._request("POST", "/venue-layout", json=doc))

    def list_layouts(self, *, venue_owner_id: Optional[str] = None, event_id: Optional[str] = None) -> list[VenueLayout]:
        params = {k: v for k, v in {"venueOwnerId": venue_owner_id, "eventId": event_id}.items() if v}
        data = self._request("GET", "/venue-layout", params=params)
        if not isinstance(data, list):
            raise LayoutServiceError("invalid layout list received")
        out = []
        for raw in data:
            try:
                out.append(self._layout(raw))
            except LayoutServiceError as e:
                logger.warning("skipping malformed layout in list: {}", e)
        return out

    def get_layout(self, layout_id: str) -> VenueLayout:
        key = self._cache_key(layout_id)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached.model_copy(deep=True)
        layout = self._layout(self._request("GET", f"/venue-layout/{layout_id}"))
        if self.cache is not None:
            self.cache.set(key, layout.model_copy(deep=True), self.cache_ttl)
        return layout

    def fetch_for_owner_edit(self, layout_id: str) -> VenueLayout:
        """Load a layout for a venue owner; refused unless the layout grants owner editing."""
        layout = self.get_layout(layout_id)
        if not layout.owner_can_edit:
            raise LayoutPermissionError("you do not have permission to edit this layout")
        return layout

    def update_layout(self, layout_id: str, changes: Mapping[str, Any]) -> VenueLayout:
        self._forget(layout_id)
        return self._layout(self._request("PATCH", f"/venue-layout/{layout_id}", json=dict(changes)))

    def save_layout(self, layout: VenueLayout) -> VenueLayout:
        """Whole-document save; the last write wins."""
        if not layout.id:
            return self.create_layout(layout)
        doc = layout.to_document()
        for k in ("_id", "createdAt", "updatedAt"):
            doc.pop(k, None)
        return self.update_layout(layout.id, doc)

    def delete_layout(self, layout_id: str) -> dict:
        self._forget(layout_id)
        return self._request("DELETE", f"/venue-layout/{layout_id}")

    def toggle_active(self, layout_id: str) -> VenueLayout:
        self._forget(layout_id)
        return self._layout(self._request("PATCH", f"/venue-layout/{layout_id}/toggle-active"))

    def duplicate_layout(self, layout_id: str, name: Optional[str] = None) -> VenueLayout:
        body = {"name": name} if name else {}
        return self._layout(self._request("POST", f"/venue-layout/{layout_id}/duplicate", json=body))

    # booking side

    def get_seat_availability(self, layout_id: str) -> SeatAvailability:
        data = self._request("GET", f"/venue-layout/{layout_id}/availability")
        if not isinstance(data, dict):
            raise LayoutServiceError("invalid availability data received")
        return SeatAvailability.from_dict(data)

    def update_seat_statuses(self, layout_id: str, updates: Iterable[tuple[str, SeatStatus]]) -> int:
        body = {"updates": [{"seatId": sid, "status": SeatStatus(st).value} for sid, st in updates]}
        self._forget(layout_id)
        data = self._request("PATCH", f"/venue-layout/{layout_id}/seat-status", json=body)
        return int(data.get("updatedCount", 0)) if isinstance(data, dict) else 0

    def get_layout_for_booking(self, layout_id: str) -> VenueLayout:
        data = self._request("GET", f"/venue-layout/{layout_id}/booking")
        if not isinstance(data, dict):
            raise LayoutServiceError("invalid layout data received")
        try:
            layout = decode_layout(data)
        except LayoutError as e:
            raise LayoutServiceError(str(e)) from e
        unpriced = [i.id for i in layout.items if i.type in PRICED_ITEM_TYPES and "price" not in i.metadata]
        if unpriced:
            logger.warning("layout {}: {} table(s)/booth(s) without a price", layout_id, len(unpriced))
        return layout

    # events

    def get_event_decor(self, event_id: str) -> Any:
        return self._request("GET", f"/events/{event_id}/decor")
