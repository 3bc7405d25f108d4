from sqlalchemy import Column, String, Integer, Float, DateTime, Index
from datetime import datetime
import uuid
from models.base import Base


def _prefixed_id(prefix: str):
    def generate() -> str:
        return f"{prefix}_{uuid.uuid4()}"
    return generate


class HUDFairMarketRent(Base):
    """
    HUD Fair Market Rents, one row per entity (metro area or county) and
    fiscal year.

    Natural key: (entity_code, fiscal_year)
    """
    __tablename__ = "hud_fair_market_rents"

    id = Column(String(64), primary_key=True, default=_prefixed_id("hfr"))

    # Entity code from HUD (e.g., 'METRO10180M10180', 'COUNTY48001')
    entity_code = Column(String(50), nullable=True)
    # Only populated for Small Area FMR records
    zip_code = Column(String(10), nullable=True)
    county_name = Column(String(200), nullable=True, index=True)
    metro_name = Column(String(200), nullable=True, index=True)
    state_name = Column(String(100), nullable=True)
    state_code = Column(String(10), nullable=True, index=True)
    fiscal_year = Column(Integer, nullable=False)

    # Monthly rent by bedroom count
    efficiency = Column(Integer, nullable=True)
    one_bedroom = Column(Integer, nullable=True)
    two_bedroom = Column(Integer, nullable=True)
    three_bedroom = Column(Integer, nullable=True)
    four_bedroom = Column(Integer, nullable=True)

    small_area_status = Column(String(10), nullable=True)

    source_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("hfr_entity_fiscal_year_idx", "entity_code", "fiscal_year", unique=True),
        Index("hfr_zip_fiscal_year_idx", "zip_code", "fiscal_year"),
    )


class CensusDemographic(Base):
    """
    Census ACS 5-year estimates per geography and survey year.

    Natural key: (geo_id, survey_year)
    """
    __tablename__ = "census_demographics"

    id = Column(String(64), primary_key=True, default=_prefixed_id("cen"))

    # Geography identifiers
    geo_id = Column(String(20), nullable=False)  # "48029" for Bexar County
    geo_type = Column(String(20), nullable=False)  # county, tract, zcta
    geo_name = Column(String(200), nullable=False)
    state_code = Column(String(2), nullable=True)
    county_code = Column(String(3), nullable=True)
    survey_year = Column(Integer, nullable=False)

    # Population
    total_population = Column(Integer, nullable=True)
    population_growth_rate = Column(Float, nullable=True)
    median_age = Column(Float, nullable=True)

    # Income
    median_household_income = Column(Integer, nullable=True)
    per_capita_income = Column(Integer, nullable=True)
    poverty_rate = Column(Float, nullable=True)

    # Housing
    total_housing_units = Column(Integer, nullable=True)
    occupied_housing_units = Column(Integer, nullable=True)
    vacancy_rate = Column(Float, nullable=True)
    owner_occupied_rate = Column(Float, nullable=True)
    renter_occupied_rate = Column(Float, nullable=True)
    median_home_value = Column(Integer, nullable=True)
    median_gross_rent = Column(Integer, nullable=True)
    mobile_homes_count = Column(Integer, nullable=True)
    mobile_homes_percent = Column(Float, nullable=True)

    # Education
    high_school_grad_rate = Column(Float, nullable=True)
    bachelors_degree_rate = Column(Float, nullable=True)

    source_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("cen_geo_survey_year_idx", "geo_id", "survey_year", unique=True),
        Index("cen_county_code_idx", "county_code"),
    )


class BLSEmployment(Base):
    """
    BLS Local Area Unemployment Statistics, monthly per area.

    Natural key: (area_code, year, month)
    """
    __tablename__ = "bls_employment"

    id = Column(String(64), primary_key=True, default=_prefixed_id("bls"))

    # Area identifiers
    area_code = Column(String(20), nullable=False)
    area_name = Column(String(200), nullable=False)
    area_type = Column(String(20), nullable=True)  # county, msa, state
    state_code = Column(String(2), nullable=True)
    county_code = Column(String(3), nullable=True)

    # Period
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    period_type = Column(String(20), nullable=False, default="monthly")

    # Employment metrics
    labor_force = Column(Integer, nullable=True)
    employed = Column(Integer, nullable=True)
    unemployed = Column(Integer, nullable=True)
    unemployment_rate = Column(Float, nullable=True)
    is_preliminary = Column(String(1), nullable=True, default="N")

    source_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("bls_area_year_month_idx", "area_code", "year", "month", unique=True),
        Index("bls_county_code_idx", "county_code"),
        Index("bls_year_month_idx", "year", "month"),
    )
