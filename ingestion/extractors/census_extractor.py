"""
Census ACS 5-year extractor.

Fetches one county per request from the ACS detailed tables and derives
percentage rates from the raw counts. The API answers with a JSON array of
rows whose first row holds the column names.
"""

from typing import Any, Dict, List, Optional
import httpx
import logging

from core.config import settings
from core.exceptions import ProviderResponseError
from ingestion.base import ProviderClient
from ingestion.work_items import TEXAS_STATE_FIPS
from schemas.market_data import CensusDemographicRecord

logger = logging.getLogger(__name__)

CENSUS_BASE_URL = "https://api.census.gov/data"

# ACS variable -> meaning
ACS_VARIABLES = {
    "B01001_001E": "total_population",
    "B01002_001E": "median_age",
    "B19013_001E": "median_household_income",
    "B19301_001E": "per_capita_income",
    "B17001_002E": "poverty_count",
    "B25001_001E": "total_housing_units",
    "B25002_002E": "occupied_housing_units",
    "B25002_003E": "vacant_housing_units",
    "B25003_002E": "owner_occupied_units",
    "B25003_003E": "renter_occupied_units",
    "B25077_001E": "median_home_value",
    "B25064_001E": "median_gross_rent",
    "B25024_010E": "mobile_homes",
    "B15003_001E": "education_total",
    "B15003_017E": "high_school_graduates",
    "B15003_022E": "bachelors_degrees",
}

# Sentinels the ACS uses for suppressed or unavailable estimates
NULL_VALUES = {"", "null", "-666666666"}


def _int(value: Any) -> Optional[int]:
    if value is None or str(value).strip() in NULL_VALUES:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float(value: Any) -> Optional[float]:
    if value is None or str(value).strip() in NULL_VALUES:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _percent(part: Optional[int], total: Optional[int]) -> Optional[float]:
    if part is None or not total or total <= 0:
        return None
    return part / total * 100


class CensusExtractor(ProviderClient):
    """Fetch county demographics from the Census ACS 5-year API."""

    source_name = "Census ACS"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = CENSUS_BASE_URL,
        state_fips: str = TEXAS_STATE_FIPS,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__(
            api_key=api_key if api_key is not None else settings.CENSUS_API_KEY,
            timeout=timeout or settings.SLOW_API_TIMEOUT,
            client=client
        )
        self.base_url = base_url.rstrip("/")
        self.state_fips = state_fips

    async def get_county_demographics(self, county_fips: str, year: int) -> CensusDemographicRecord:
        """
        ACS estimates for one county.

        Raises:
            ProviderResponseError: The API returned no data row for the county
        """
        url = f"{self.base_url}/{year}/acs/acs5"
        params = {
            "get": "NAME," + ",".join(ACS_VARIABLES),
            "for": f"county:{county_fips}",
            "in": f"state:{self.state_fips}",
        }
        if self.api_key:
            params["key"] = self.api_key

        response = await self._request("GET", url, params=params)
        rows = self._parse_json(response)

        if not isinstance(rows, list) or len(rows) < 2:
            raise ProviderResponseError(
                f"no data returned for county {county_fips}",
                context={"url": url, "county_fips": county_fips, "year": year}
            )

        return self._parse_rows(rows, county_fips, year)

    def _parse_rows(self, rows: List[List[Any]], county_fips: str, year: int) -> CensusDemographicRecord:
        headers, data = rows[0], rows[1]
        values: Dict[str, Any] = dict(zip(headers, data))

        total_population = _int(values.get("B01001_001E"))
        total_units = _int(values.get("B25001_001E"))
        occupied_units = _int(values.get("B25002_002E"))
        education_total = _int(values.get("B15003_001E"))
        mobile_homes = _int(values.get("B25024_010E"))

        return CensusDemographicRecord(
            geo_id=f"{self.state_fips}{county_fips}",
            geo_type="county",
            geo_name=values.get("NAME") or f"County {county_fips}",
            state_code=self.state_fips,
            county_code=county_fips,
            survey_year=year,
            total_population=total_population,
            median_age=_float(values.get("B01002_001E")),
            median_household_income=_int(values.get("B19013_001E")),
            per_capita_income=_int(values.get("B19301_001E")),
            poverty_rate=_percent(_int(values.get("B17001_002E")), total_population),
            total_housing_units=total_units,
            occupied_housing_units=occupied_units,
            vacancy_rate=_percent(_int(values.get("B25002_003E")), total_units),
            owner_occupied_rate=_percent(_int(values.get("B25003_002E")), occupied_units),
            renter_occupied_rate=_percent(_int(values.get("B25003_003E")), occupied_units),
            median_home_value=_int(values.get("B25077_001E")),
            median_gross_rent=_int(values.get("B25064_001E")),
            mobile_homes_count=mobile_homes,
            mobile_homes_percent=_percent(mobile_homes, total_units),
            high_school_grad_rate=_percent(_int(values.get("B15003_017E")), education_total),
            bachelors_degree_rate=_percent(_int(values.get("B15003_022E")), education_total),
        )
