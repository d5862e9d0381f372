import re
import pandas as pd
from typing import Union
import logging
from dateutil import parser

logger = logging.getLogger(__name__)

class DataPreprocessor:
    """Cleans transaction exports before extraction."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.date_patterns = [
            r'\d{4}-\d{2}-\d{2}',           # YYYY-MM-DD
            r'\d{1,2}/\d{1,2}/\d{4}',       # M/D/YYYY
            r'\d{1,2}-\d{1,2}-\d{4}',       # M-D-YYYY
            r'\d{1,2}\.\d{1,2}\.\d{4}',     # M.D.YYYY
        ]

        # Card network and POS prefixes that precede the merchant name
        self.name_noise_patterns = [
            r'^(?:(?:pos|dbt|debit|purchase|card|chk ?card|ach)\b|sq ?\*|tst ?\*|pp ?\*|paypal ?\*)\s*(?:purchase\b)?\s*[#*:-]?\s*',
            r'(?<!^)\b\d{4,}\b',              # card, store and reference numbers after the name
            r'#\s*\d+',
            r'\s+x{2,}\d*\b',                # masked card numbers
        ]

    def preprocess_structured_data(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Preprocess a transactions export.

        Args:
            df: Raw DataFrame

        Returns:
            Cleaned DataFrame
        """
        self.logger.info(f"Preprocessing structured data with {len(df)} rows")

        # Remove completely empty rows
        df = df.dropna(how='all').copy()

        # Convert column names to lowercase and strip whitespace
        df.columns = df.columns.astype(str).str.lower().str.strip()
        if df.empty:
            return df

        # Remove rows that repeat the header
        header_mask = df.apply(
            lambda row: all(str(val).lower().strip() in df.columns for val in row if pd.notna(val)),
            axis=1
        )
        df = df[~header_mask]

        self.logger.info(f"After preprocessing: {len(df)} rows remain")
        return df

    def normalize_date(self, date_str: str) -> str:
        """
        Normalize date string to YYYY-MM-DD format.

        Args:
            date_str: Date string in various formats

        Returns:
            Normalized date string in YYYY-MM-DD format, or "" when unparseable
        """
        if date_str is None or pd.isna(date_str) or str(date_str).strip() == "":
            return ""

        try:
            parsed_date = parser.parse(str(date_str), fuzzy=True)
            return parsed_date.strftime('%Y-%m-%d')
        except (ValueError, OverflowError):
            for pattern in self.date_patterns:
                match = re.search(pattern, str(date_str))
                if not match:
                    continue
                parts = re.split(r'[-/.]', match.group())
                if len(parts[0]) == 4:  # YYYY-MM-DD
                    return f"{parts[0]}-{parts[1].zfill(2)}-{parts[2].zfill(2)}"
                # MM-DD-YYYY
                return f"{parts[2]}-{parts[0].zfill(2)}-{parts[1].zfill(2)}"

        self.logger.warning(f"Could not normalize date: {date_str}")
        return ""

    def clean_amount(self, amount_str: Union[str, float, int]) -> float:
        """
        Clean and normalize monetary amounts.

        Args:
            amount_str: Amount in various formats

        Returns:
            Cleaned float amount
        """
        if amount_str is None or (not isinstance(amount_str, str) and pd.isna(amount_str)) or amount_str == "":
            return 0.0

        if isinstance(amount_str, (int, float)):
            return float(amount_str)

        text = str(amount_str).strip()
        # Accounting style negatives: (12.50)
        negative = text.startswith('(') and text.endswith(')')

        # Remove currency symbols, commas, and whitespace
        cleaned = re.sub(r'[^\d.-]', '', text)

        if not cleaned or cleaned == '-':
            return 0.0

        try:
            value = float(cleaned)
        except ValueError:
            self.logger.warning(f"Could not parse amount: {amount_str}")
            return 0.0
        return -abs(value) if negative else value

    def clean_business_name(self, name) -> str:
        """
        Strip card/POS noise from a merchant or description field.

        Args:
            name: Raw merchant name or transaction description

        Returns:
            Cleaned business name, "" when nothing usable remains
        """
        if name is None or (not isinstance(name, str) and pd.isna(name)):
            return ""

        cleaned = str(name).strip()
        for pattern in self.name_noise_patterns:
            cleaned = re.sub(pattern, ' ', cleaned, flags=re.IGNORECASE).strip()

        cleaned = re.sub(r'[*#]+', ' ', cleaned)
        return ' '.join(cleaned.split()).strip(' -')
