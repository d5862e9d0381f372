"""
Pydantic schemas for emission factors, classifications and footprint reports.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
import re

class EmissionFactor(BaseModel):
    """One row of the supply chain GHG emission factor table."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    naics_code: int = Field(..., alias="2017 NAICS Code", description="6-digit NAICS industry code")
    naics_title: str = Field(..., alias="2017 NAICS Title", description="Canonical industry name")
    ghg_type: str = Field("All GHGs", alias="GHG", description="Greenhouse gas category")
    unit: str = Field(..., alias="Unit", description="Unit of the factor, e.g. kg CO2e/2021 USD")
    factor_without_margins: float = Field(..., alias="Supply Chain Emission Factors without Margins")
    margin_factor: float = Field(0.0, alias="Margins of Supply Chain Emission Factors")
    factor_with_margins: float = Field(..., alias="Supply Chain Emission Factors with Margins")
    reference_code: str = Field("", alias="Reference USEEIO Code", description="USEEIO cross-reference")

    def to_industry_emission(self) -> "IndustryEmission":
        return IndustryEmission(
            industry=self.naics_title,
            factor=self.factor_with_margins,
            unit=self.unit,
            naics_code=self.naics_code,
        )

class IndustryEmission(BaseModel):
    """Matched emission factor as reported alongside a business or transaction."""
    industry: str = Field(..., description="Matched NAICS title")
    factor: float = Field(..., description="Supply chain emission factor with margins")
    unit: str
    naics_code: int

class BusinessClassification(BaseModel):
    """Industry classification of a single business name."""
    business_name: str
    industry: str = Field(..., description="Classifier label, or 'Unknown'")
    emission_factor: Optional[IndustryEmission] = None

class TransactionEmission(BaseModel):
    """A transaction with its estimated carbon footprint."""
    transaction_date: str = Field(..., description="Transaction date in YYYY-MM-DD format")
    name: str = Field(..., description="Business or merchant name")
    amount: float = Field(0.0, description="Signed amount as exported, spending positive")
    industry: str = Field("Unknown", description="Industry label used for matching")
    emission_factor: Optional[IndustryEmission] = None
    match_tier: Optional[str] = Field(None, description="Matcher tier that produced the factor")
    kg_co2e: Optional[float] = Field(None, description="Estimated kg CO2e, None when no factor was found")

    @field_validator('transaction_date')
    @classmethod
    def validate_date_format(cls, v):
        """Ensure date is in YYYY-MM-DD format."""
        try:
            datetime.strptime(v, '%Y-%m-%d')
            return v
        except ValueError:
            raise ValueError('Date must be in YYYY-MM-DD format')

    @field_validator('amount', mode='before')
    @classmethod
    def clean_amount(cls, v):
        """Clean and validate monetary amounts."""
        if isinstance(v, str):
            # Remove currency symbols, commas, and whitespace
            cleaned = re.sub(r'[^\d.-]', '', v.strip())
            if not cleaned or cleaned == '-':
                return 0.0
            try:
                return float(cleaned)
            except ValueError:
                return 0.0
        return float(v) if v is not None else 0.0

class PeriodMetrics(BaseModel):
    """Emissions and spend over a trailing window."""
    carbon: float = Field(0.0, description="kg CO2e")
    amount: float = Field(0.0, description="Absolute dollars spent")
    ratio: float = Field(0.0, description="kg CO2e per dollar")

class IndustryTotal(BaseModel):
    industry: str
    kg_co2e: float
    share: float = Field(..., ge=0, le=1, description="Fraction of the matched total")

class FootprintReport(BaseModel):
    """Estimated footprint of a whole transactions file."""
    transactions: List[TransactionEmission]
    total_count: int = Field(..., description="Total number of transactions")
    matched_count: int = Field(..., description="Transactions with an emission factor")
    total_kg_co2e: float
    monthly: Dict[str, float] = Field(default_factory=dict)
    top_industries: List[IndustryTotal] = Field(default_factory=list)
    metrics: Dict[str, PeriodMetrics] = Field(default_factory=dict)
    equivalents: Dict[str, float] = Field(default_factory=dict)
    processing_metadata: Optional[dict] = Field(None, description="Processing information")
