"""
Pydantic schemas for normalized provider records
"""

from pydantic import BaseModel, Field
from typing import Optional, Tuple, Any


class MarketDataRecord(BaseModel):
    """Common base for records handed from a provider client to the loader."""

    def natural_key(self) -> Tuple[Any, ...]:
        raise NotImplementedError

    @property
    def label(self) -> str:
        return "/".join(str(part) for part in self.natural_key())


class FairMarketRentRecord(MarketDataRecord):
    """HUD Fair Market Rent for one metro area or county."""

    entity_code: Optional[str] = Field(None, max_length=50)
    zip_code: Optional[str] = None
    county_name: Optional[str] = None
    metro_name: Optional[str] = None
    state_name: Optional[str] = None
    state_code: Optional[str] = None
    fiscal_year: int

    efficiency: Optional[int] = None
    one_bedroom: Optional[int] = None
    two_bedroom: Optional[int] = None
    three_bedroom: Optional[int] = None
    four_bedroom: Optional[int] = None

    small_area_status: Optional[str] = None

    def natural_key(self) -> Tuple[Any, ...]:
        return (self.entity_code, self.fiscal_year)

    @property
    def label(self) -> str:
        return self.metro_name or self.county_name or self.entity_code or self.zip_code or "unknown"


class CensusDemographicRecord(MarketDataRecord):
    """Census ACS 5-year estimates for one geography."""

    geo_id: str = Field(..., min_length=1)
    geo_type: str = "county"
    geo_name: str
    state_code: Optional[str] = None
    county_code: Optional[str] = None
    survey_year: int

    total_population: Optional[int] = None
    population_growth_rate: Optional[float] = None
    median_age: Optional[float] = None

    median_household_income: Optional[int] = None
    per_capita_income: Optional[int] = None
    poverty_rate: Optional[float] = None

    total_housing_units: Optional[int] = None
    occupied_housing_units: Optional[int] = None
    vacancy_rate: Optional[float] = None
    owner_occupied_rate: Optional[float] = None
    renter_occupied_rate: Optional[float] = None
    median_home_value: Optional[int] = None
    median_gross_rent: Optional[int] = None
    mobile_homes_count: Optional[int] = None
    mobile_homes_percent: Optional[float] = None

    high_school_grad_rate: Optional[float] = None
    bachelors_degree_rate: Optional[float] = None

    def natural_key(self) -> Tuple[Any, ...]:
        return (self.geo_id, self.survey_year)


class EmploymentRecord(MarketDataRecord):
    """BLS LAUS employment figures for one area and month."""

    area_code: str = Field(..., min_length=1)
    area_name: str
    area_type: Optional[str] = None
    state_code: Optional[str] = None
    county_code: Optional[str] = None
    year: int
    month: int = Field(..., ge=0, le=12)
    period_type: str = "monthly"

    labor_force: Optional[int] = None
    employed: Optional[int] = None
    unemployed: Optional[int] = None
    unemployment_rate: Optional[float] = None
    is_preliminary: str = "N"

    def natural_key(self) -> Tuple[Any, ...]:
        return (self.area_code, self.year, self.month)
