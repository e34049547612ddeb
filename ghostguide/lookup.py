"""
Title lookup against the OMDb API.

Used by the CLI to find the IMDb id of a programme while adding it to the schedule.

Every HTTP request costs one API credit. Callers pass a CreditUsage object in and
read the totals back out; there is no global counter.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

import requests

from ghostguide.errors import LookupConfigError, LookupRequestError

logger = logging.getLogger(__name__)

OMDB_BASE_URL = "https://www.omdbapi.com/"
MIN_QUERY_LENGTH = 2


@dataclass
class CreditUsage:
    omdb: int = 0
    session_start: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    def track(self, operation: str) -> None:
        self.omdb += 1
        logger.info("[CREDIT] OMDB +1 (%s) | session total: %d", operation, self.omdb)


@dataclass
class TitleSuggestion:
    imdb_id: str
    title: str
    year: Optional[int]
    type: str = ""


@dataclass
class TitleDetails:
    imdb_id: str
    title: str
    year: Optional[int]
    runtime: Optional[int]
    genre: str
    plot: str
    poster: str
    imdb_rating: Optional[float]
    type: str


def _parse_int(value: Any) -> Optional[int]:
    # "1984", "1984–1990", "120 min"
    match = re.search(r"\d+", str(value or ""))
    return int(match.group(0)) if match else None


def _parse_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _poster(value: Any) -> str:
    value = str(value or "")
    return "" if value == "N/A" else value


class OmdbClient:
    """
    Thin OMDb client: title search and lookup by IMDb id.
    """

    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[requests.Session] = None,
        base_url: str = OMDB_BASE_URL,
        timeout: float = 30,
    ) -> None:
        self.api_key = api_key
        self.session = session or requests.Session()
        self.base_url = base_url
        self.timeout = timeout

    def _get(self, params: dict[str, Any], usage: CreditUsage, operation: str) -> dict[str, Any]:
        if not self.api_key:
            raise LookupConfigError("OMDB_API_KEY is not configured")

        usage.track(operation)
        try:
            resp = self.session.get(self.base_url, params={**params, "apikey": self.api_key}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise LookupRequestError(f"OMDb request failed: {exc}") from exc
        except ValueError as exc:
            raise LookupRequestError(f"OMDb returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise LookupRequestError("OMDb returned an unexpected payload")
        return data

    def search(self, query: str, usage: CreditUsage, year: Optional[int] = None) -> List[TitleSuggestion]:
        """
        Search titles. Queries shorter than two characters return [] without a request.
        """
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        params: dict[str, Any] = {"s": query, "page": 1}
        if year:
            params["y"] = year

        data = self._get(params, usage, f"search:{query}")
        if data.get("Response") == "False":
            # "Movie not found!" is a normal empty result
            if data.get("Error") != "Movie not found!":
                logger.warning("OMDb error for %r: %s", query, data.get("Error"))
            return []

        out: List[TitleSuggestion] = []
        for item in data.get("Search") or []:
            imdb_id = str(item.get("imdbID", "")).strip()
            if not imdb_id:
                continue
            out.append(
                TitleSuggestion(
                    imdb_id=imdb_id,
                    title=str(item.get("Title", "")).strip(),
                    year=_parse_int(item.get("Year")),
                    type=str(item.get("Type", "")),
                )
            )
        return out

    def get_by_imdb_id(self, imdb_id: str, usage: CreditUsage) -> Optional[TitleDetails]:
        data = self._get({"i": imdb_id.strip(), "plot": "full"}, usage, f"details:{imdb_id}")
        if data.get("Response") == "False":
            logger.warning("OMDb error for %s: %s", imdb_id, data.get("Error"))
            return None

        return TitleDetails(
            imdb_id=str(data.get("imdbID", imdb_id)),
            title=str(data.get("Title", "")),
            year=_parse_int(data.get("Year")),
            runtime=_parse_int(data.get("Runtime")),
            genre=str(data.get("Genre", "")),
            plot=str(data.get("Plot", "")),
            poster=_poster(data.get("Poster")),
            imdb_rating=_parse_float(data.get("imdbRating")),
            type=str(data.get("Type", "")),
        )
