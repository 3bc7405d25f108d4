"""
HUD Fair Market Rent extractor.

Endpoints (Bearer token auth):
- /statedata/{state}: every metro area and county in a state, one request
- /data/{entity_or_zip}: a single entity; Small Area FMRs by ZIP where HUD
  publishes them
"""

from typing import Any, Dict, List, Optional
import httpx
import logging

from core.config import settings
from core.exceptions import ProviderResponseError
from ingestion.base import ProviderClient
from schemas.market_data import FairMarketRentRecord

logger = logging.getLogger(__name__)

HUD_FMR_BASE_URL = "https://www.huduser.gov/hudapi/public/fmr"

# HUD JSON field -> record field
BEDROOM_FIELDS = {
    "Efficiency": "efficiency",
    "One-Bedroom": "one_bedroom",
    "Two-Bedroom": "two_bedroom",
    "Three-Bedroom": "three_bedroom",
    "Four-Bedroom": "four_bedroom",
}


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _rent(value: Any) -> Optional[int]:
    # HUD reports missing rents as 0 or empty
    try:
        rent = int(float(value))
    except (TypeError, ValueError):
        return None
    return rent or None


def _bedroom_rents(data: Dict[str, Any]) -> Dict[str, Optional[int]]:
    return {field: _rent(data.get(key)) for key, field in BEDROOM_FIELDS.items()}


class HUDExtractor(ProviderClient):
    """
    Fetch Fair Market Rents from the HUD User API.

    A HUD API key is required; requests carry it as a Bearer token.
    """

    source_name = "HUD FMR"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = HUD_FMR_BASE_URL,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.HUD_API_KEY,
            timeout=timeout or settings.HTTP_TIMEOUT,
            client=client
        )
        self.base_url = base_url.rstrip("/")

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key or ''}",
            "Accept": "application/json",
        }

    async def get_state_data(self, state_code: str) -> Dict[str, Any]:
        """Raw ``data`` object of the statedata endpoint."""
        url = f"{self.base_url}/statedata/{state_code}"
        response = await self._request("GET", url, headers=self._headers)
        payload = self._parse_json(response)

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise ProviderResponseError(
                f"HUD returned no state data for {state_code}",
                context={"url": url, "response_body": response.text[:500]}
            )
        return data

    async def get_fmr_records_for_state(
        self,
        state_code: str,
        year: Optional[int] = None
    ) -> List[FairMarketRentRecord]:
        """
        One record per metro area and per non-metro county in the state.

        Args:
            state_code: Two-letter state abbreviation
            year: Fiscal year override when HUD omits it from the payload
        """
        data = await self.get_state_data(state_code)

        fiscal_year = year
        if fiscal_year is None:
            try:
                fiscal_year = int(data.get("year"))
            except (TypeError, ValueError):
                raise ProviderResponseError(
                    f"HUD state data for {state_code} has no fiscal year",
                    context={"state_code": state_code, "year": data.get("year")}
                )

        state_name = _text(data.get("state_name"))
        records = []

        for metro in data.get("metroareas") or []:
            records.append(FairMarketRentRecord(
                entity_code=_text(metro.get("code")),
                metro_name=_text(metro.get("metro_name")),
                state_name=state_name,
                state_code=state_code,
                fiscal_year=fiscal_year,
                **_bedroom_rents(metro)
            ))

        for county in data.get("counties") or []:
            records.append(FairMarketRentRecord(
                entity_code=_text(county.get("code") or county.get("fips_code")),
                county_name=_text(county.get("county_name")),
                state_name=state_name,
                state_code=state_code,
                fiscal_year=fiscal_year,
                **_bedroom_rents(county)
            ))

        logger.info(f"Fetched {len(records)} HUD FMR records for {state_code} (FY{fiscal_year})")
        return records

    async def get_fmr_by_zip(self, zip_code: str) -> FairMarketRentRecord:
        """
        FMR for a single ZIP code.

        Small Area FMR values replace the metro values when HUD flags the
        area as small-area (``smallarea_status == "1"``) and returns them.
        """
        url = f"{self.base_url}/data/{zip_code}"
        response = await self._request("GET", url, headers=self._headers)
        payload = self._parse_json(response)

        data = payload.get("data") if isinstance(payload, dict) else None
        basic = data.get("basicdata") if isinstance(data, dict) else None
        if not isinstance(basic, dict):
            raise ProviderResponseError(
                f"HUD returned no FMR data for ZIP {zip_code}",
                context={"url": url, "response_body": response.text[:500]}
            )

        small_area_status = _text(basic.get("smallarea_status"))
        small_area = data.get("smallarea_data") or {}
        if small_area_status == "1" and _text(small_area.get("zip_code")):
            rents = _bedroom_rents(small_area)
        else:
            rents = _bedroom_rents(basic)

        try:
            fiscal_year = int(basic.get("year"))
        except (TypeError, ValueError):
            raise ProviderResponseError(
                f"HUD FMR data for ZIP {zip_code} has no fiscal year",
                context={"url": url, "year": basic.get("year")}
            )

        return FairMarketRentRecord(
            zip_code=_text(basic.get("zip_code")) or zip_code,
            county_name=_text(basic.get("county_name")) or _text(basic.get("counties_name")),
            metro_name=_text(basic.get("metro_name")),
            state_name=_text(basic.get("state_name")),
            state_code=_text(basic.get("state_code")),
            fiscal_year=fiscal_year,
            small_area_status=small_area_status,
            **rents
        )
