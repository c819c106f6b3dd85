"""API client for the school REST API."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Type, TypeVar

import requests

from . import util
from .models import (
    AcademicYear,
    Assignment,
    CustomEvent,
    ScheduleSlot,
    Test,
    from_dict,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_URL = "http://localhost:8000/api"
SCHEDULE_SLOTS = "/schedule-slots/"
ACADEMIC_YEAR = "/academic-years/current/"
TESTS = "/tests/"
ASSIGNMENTS = "/assignments/"
EVENTS = "/events/"
ENDPOINTS = [SCHEDULE_SLOTS, ACADEMIC_YEAR, TESTS, ASSIGNMENTS, EVENTS]


class APIError(RuntimeError):
    pass


class NotFound(APIError):
    pass


class APIClient:
    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = BASE_URL,
        dump_json: bool = False,
        offline: bool = False,
        json_dir: Path = Path("out/json"),
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.dump_json = dump_json
        self.offline = offline
        self.session = requests.Session()
        self.json_dir = json_dir
        self.json_dir.mkdir(parents=True, exist_ok=True)

    def _json_path(self, endpoint: str) -> Path:
        name = endpoint.strip("/").replace("/", "_") + ".json"
        return self.json_dir / name

    def get(self, endpoint: str) -> Any:
        if self.offline:
            path = self._json_path(endpoint)
            if not path.exists():
                raise NotFound(f"No saved response for {endpoint}")
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        url = self.base_url + endpoint
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        for attempt in range(4):
            try:
                resp = self.session.get(url, headers=headers, timeout=30)
                if resp.status_code == 404:
                    raise NotFound(f"{endpoint} not found")
                if resp.status_code >= 500:
                    logger.info("Server error %s on %s, retrying", resp.status_code, endpoint)
                    time.sleep(2**attempt)
                    continue
                resp.raise_for_status()
                data = resp.json()
                if self.dump_json:
                    with self._json_path(endpoint).open("w", encoding="utf-8") as f:
                        json.dump(data, f)
                return data
            except requests.HTTPError as exc:
                raise APIError(f"Failed to fetch {endpoint}: {exc}") from exc
            except requests.RequestException as exc:
                logger.warning("Request error: %s", exc)
                time.sleep(2**attempt)
        raise APIError(f"Failed to fetch {endpoint}")


def client_from_env(**kwargs: Any) -> APIClient:
    kwargs.setdefault("base_url", util.env("BASE_URL", BASE_URL))
    return APIClient(util.env("ACCESS_TOKEN"), **kwargs)


def unwrap_list(payload: Any) -> List[dict]:
    """Accept paginated ``{"results": [...]}`` payloads as well as bare lists."""

    if isinstance(payload, dict):
        payload = payload.get("results")
    return payload if isinstance(payload, list) else []


@dataclass
class CalendarData:
    slots: List[ScheduleSlot] = field(default_factory=list)
    year: Optional[AcademicYear] = None
    tests: List[Test] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)
    events: List[CustomEvent] = field(default_factory=list)


def _fetch(client: APIClient, endpoint: str) -> Any:
    """Fetch one collection; failures are logged and yield ``None``."""

    try:
        return client.get(endpoint)
    except NotFound:
        logger.debug("%s not available", endpoint)
    except APIError as exc:
        logger.error("Error fetching %s: %s", endpoint, exc)
    return None


def _build_all(cls: Type[T], rows: List[dict], endpoint: str) -> List[T]:
    built: List[T] = []
    for row in rows:
        try:
            built.append(from_dict(cls, row))
        except TypeError as exc:
            logger.warning("Skipping malformed row from %s: %s", endpoint, exc)
    return built


def fetch_calendar_data(client: APIClient) -> CalendarData:
    """Fetch every calendar input independently of the others."""

    data = CalendarData(
        slots=_build_all(ScheduleSlot, unwrap_list(_fetch(client, SCHEDULE_SLOTS)), SCHEDULE_SLOTS),
        tests=_build_all(Test, unwrap_list(_fetch(client, TESTS)), TESTS),
        assignments=_build_all(Assignment, unwrap_list(_fetch(client, ASSIGNMENTS)), ASSIGNMENTS),
        events=_build_all(CustomEvent, unwrap_list(_fetch(client, EVENTS)), EVENTS),
    )
    year = _fetch(client, ACADEMIC_YEAR)
    if isinstance(year, dict) and year.get("start_date"):
        built = _build_all(AcademicYear, [year], ACADEMIC_YEAR)
        data.year = built[0] if built else None
    return data
