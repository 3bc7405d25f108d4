"""
BLS Local Area Unemployment Statistics (LAUS) extractor.

Each county request asks for four monthly series (labor force, employed,
unemployed, unemployment rate) and merges them into one record per month.

Rate limits:
- v1 (no key): 25 queries per day
- v2 (registration key): 500 queries per day, 50 per 10 seconds
A reply mentioning the "daily threshold" raises RateLimitError, which is
never retried and stops the whole batch.
"""

from typing import Any, Dict, List, Optional, Tuple
import asyncio
import httpx
import logging

from core.config import settings
from core.exceptions import ProviderResponseError, RateLimitError
from ingestion.base import ProviderClient
from ingestion.retry import RetryPolicy
from ingestion.work_items import TEXAS_STATE_FIPS
from schemas.market_data import EmploymentRecord

logger = logging.getLogger(__name__)

BLS_V1_URL = "https://api.bls.gov/publicAPI/v1/timeseries/data/"
BLS_V2_URL = "https://api.bls.gov/publicAPI/v2/timeseries/data/"

# LAUS measure code -> record field
MEASURES = {
    "06": "labor_force",
    "05": "employed",
    "04": "unemployed",
    "03": "unemployment_rate",
}

ANNUAL_AVERAGE_PERIOD = "M13"


def build_series_id(county_fips: str, measure: str, state_fips: str = TEXAS_STATE_FIPS) -> str:
    return f"LAUCN{state_fips}{county_fips}0000000{measure}"


def _parse_month(period: str) -> int:
    if len(period) != 3 or not period.startswith("M"):
        return 0
    try:
        return int(period[1:])
    except ValueError:
        return 0


def _int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(str(value).replace(",", ""))
    except ValueError:
        return None


def _float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except ValueError:
        return None


class BLSExtractor(ProviderClient):
    """
    Fetch county employment figures from the BLS public data API.

    Uses the v2 endpoint with the registration key when one is configured,
    otherwise the keyless v1 endpoint. Every request is followed by a short
    pause to stay under the per-second request ceiling.
    """

    source_name = "BLS LAUS"

    def __init__(
        self,
        api_key: Optional[str] = None,
        request_interval: Optional[float] = None,
        state_fips: str = TEXAS_STATE_FIPS,
        state_abbreviation: str = "TX",
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.BLS_API_KEY,
            timeout=timeout or settings.SLOW_API_TIMEOUT,
            client=client
        )
        self.request_interval = (
            request_interval if request_interval is not None else settings.BLS_REQUEST_INTERVAL
        )
        self.state_fips = state_fips
        self.state_abbreviation = state_abbreviation

    @property
    def url(self) -> str:
        return BLS_V2_URL if self.api_key else BLS_V1_URL

    async def get_county_employment(
        self,
        county_fips: str,
        county_name: str,
        start_year: int,
        end_year: int
    ) -> List[EmploymentRecord]:
        """
        Monthly employment records for one county.

        Raises:
            RateLimitError: BLS daily request threshold reached
            ProviderResponseError: Any other unsuccessful BLS status
        """
        body: Dict[str, Any] = {
            "seriesid": [build_series_id(county_fips, m, self.state_fips) for m in MEASURES],
            "startyear": str(start_year),
            "endyear": str(end_year),
        }
        if self.api_key:
            body["registrationkey"] = self.api_key

        try:
            response = await self._request(
                "POST", self.url, json=body, headers={"Content-Type": "application/json"}
            )
        finally:
            await asyncio.sleep(self.request_interval)

        payload = self._parse_json(response)
        if not isinstance(payload, dict):
            raise ProviderResponseError(
                "unexpected BLS response shape",
                context={"county_fips": county_fips, "response_body": response.text[:500]}
            )

        if payload.get("status") != "REQUEST_SUCCEEDED":
            messages = payload.get("message") or []
            if any("daily threshold" in str(m).lower() for m in messages):
                raise RateLimitError(
                    "BLS API daily request limit reached",
                    context={"county_fips": county_fips, "messages": messages}
                )
            raise ProviderResponseError(
                f"BLS API error: {messages}",
                context={"county_fips": county_fips, "status": payload.get("status")}
            )

        return self._parse_series(payload, county_fips, county_name)

    async def get_county_employment_with_retry(
        self,
        county_fips: str,
        county_name: str,
        start_year: int,
        end_year: int,
        max_retries: int,
        cancel_event: Optional[asyncio.Event] = None,
        base_delay: Optional[float] = None
    ) -> List[EmploymentRecord]:
        """``get_county_employment`` wrapped in the exponential-backoff retry policy."""
        policy = RetryPolicy(
            max_retries,
            base_delay=base_delay if base_delay is not None else settings.RETRY_BASE_DELAY
        )
        return await policy.run(
            lambda: self.get_county_employment(county_fips, county_name, start_year, end_year),
            cancel_event
        )

    def _parse_series(
        self,
        payload: Dict[str, Any],
        county_fips: str,
        county_name: str
    ) -> List[EmploymentRecord]:
        by_period: Dict[Tuple[str, str], Dict[str, Any]] = {}

        for series in (payload.get("Results") or {}).get("series") or []:
            field = MEASURES.get(str(series.get("seriesID", ""))[-2:])
            for point in series.get("data") or []:
                period = point.get("period", "")
                if period == ANNUAL_AVERAGE_PERIOD:
                    continue

                entry = by_period.setdefault((point.get("year", ""), period), {})
                if field:
                    entry[field] = point.get("value")
                if any(f.get("code") == "P" for f in point.get("footnotes") or [] if f):
                    entry["preliminary"] = True

        area_code = build_series_id(county_fips, "03", self.state_fips)[:15]
        records = []
        for (year, period), entry in sorted(by_period.items()):
            try:
                year_value = int(year)
            except ValueError:
                logger.debug(f"Skipping BLS point with bad year {year!r} for {county_name}")
                continue

            records.append(EmploymentRecord(
                area_code=area_code,
                area_name=f"{county_name}, {self.state_abbreviation}",
                area_type="county",
                state_code=self.state_fips,
                county_code=county_fips,
                year=year_value,
                month=_parse_month(period),
                period_type="monthly",
                labor_force=_int(entry.get("labor_force")),
                employed=_int(entry.get("employed")),
                unemployed=_int(entry.get("unemployed")),
                unemployment_rate=_float(entry.get("unemployment_rate")),
                is_preliminary="Y" if entry.get("preliminary") else "N",
            ))

        return records
