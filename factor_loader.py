"""
Loading of the supply chain GHG emission factor reference table.
"""
import logging
from functools import lru_cache
from typing import List, Optional, Tuple
import pandas as pd

import config
from file_loader import FileLoader
from schema import EmissionFactor

logger = logging.getLogger(__name__)

CODE_COLUMN = '2017 NAICS Code'
TITLE_COLUMN = '2017 NAICS Title'
NUMERIC_COLUMNS = [
    'Supply Chain Emission Factors without Margins',
    'Margins of Supply Chain Emission Factors',
    'Supply Chain Emission Factors with Margins',
]
REQUIRED_COLUMNS = {
    CODE_COLUMN,
    TITLE_COLUMN,
    'GHG',
    'Unit',
    'Reference USEEIO Code',
    *NUMERIC_COLUMNS,
}

class FactorLoader:
    """Turns a reference table file into EmissionFactor records."""

    def __init__(self, file_loader: Optional[FileLoader] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.file_loader = file_loader or FileLoader()

    def load(self, file_path: str) -> List[EmissionFactor]:
        """
        Load emission factors from a CSV, Excel or JSON file.

        Args:
            file_path: Path to the reference table

        Returns:
            EmissionFactor records in file order
        """
        _, df = self.file_loader.load_file(file_path)
        factors = self.from_frame(df)
        self.logger.info(f"Loaded {len(factors)} emission factors from {file_path}")
        return factors

    def from_frame(self, df: pd.DataFrame) -> List[EmissionFactor]:
        df = df.copy()
        df.columns = df.columns.astype(str).str.strip()

        missing = REQUIRED_COLUMNS - set(df.columns)
        if missing:
            raise ValueError(f"Missing columns: {sorted(missing)}")

        df[CODE_COLUMN] = pd.to_numeric(df[CODE_COLUMN], errors='coerce')
        for col in NUMERIC_COLUMNS:
            df[col] = pd.to_numeric(df[col], errors='coerce')

        before = len(df)
        df = df.dropna(subset=[CODE_COLUMN, TITLE_COLUMN, 'Supply Chain Emission Factors with Margins'])
        if len(df) < before:
            self.logger.warning(f"Dropped {before - len(df)} incomplete emission factor rows")

        df[CODE_COLUMN] = df[CODE_COLUMN].astype(int)
        df['Margins of Supply Chain Emission Factors'] = df['Margins of Supply Chain Emission Factors'].fillna(0.0)
        df['Supply Chain Emission Factors without Margins'] = df['Supply Chain Emission Factors without Margins'].fillna(
            df['Supply Chain Emission Factors with Margins'] - df['Margins of Supply Chain Emission Factors']
        )
        for col in ['GHG', 'Unit', 'Reference USEEIO Code', TITLE_COLUMN]:
            df[col] = df[col].fillna('').astype(str).str.strip()
        # numeric USEEIO codes come back as floats when the column has gaps
        df['Reference USEEIO Code'] = df['Reference USEEIO Code'].str.replace(r'\.0$', '', regex=True)

        return [self._to_factor(row) for _, row in df.iterrows()]

    @staticmethod
    def _to_factor(row: pd.Series) -> EmissionFactor:
        return EmissionFactor(
            naics_code=int(row[CODE_COLUMN]),
            naics_title=row[TITLE_COLUMN],
            ghg_type=row['GHG'],
            unit=row['Unit'],
            factor_without_margins=float(row['Supply Chain Emission Factors without Margins']),
            margin_factor=float(row['Margins of Supply Chain Emission Factors']),
            factor_with_margins=float(row['Supply Chain Emission Factors with Margins']),
            reference_code=row['Reference USEEIO Code'],
        )

@lru_cache(maxsize=None)
def _load_cached(file_path: str) -> Tuple[EmissionFactor, ...]:
    return tuple(FactorLoader().load(file_path))

def load_default_factors(file_path: Optional[str] = None) -> Tuple[EmissionFactor, ...]:
    """Load the reference table once per process and share it read-only."""
    return _load_cached(file_path or config.EMISSION_FACTORS_PATH)
