import pandas as pd
from typing import List, Dict, Any, Optional
import logging
from preprocess import DataPreprocessor

logger = logging.getLogger(__name__)

class TransactionExtractor:
    """Extracts transaction records from a preprocessed transactions export."""

    def __init__(self, preprocessor: Optional[DataPreprocessor] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.preprocessor = preprocessor or DataPreprocessor()

        # Candidate column names per field, most specific first
        self.column_mappings = {
            'date': ['date', 'transaction_date', 'trans_date', 'posting_date', 'posted', 'authorized_date'],
            'name': ['merchant_name', 'merchant', 'business_name', 'name', 'payee', 'description', 'desc', 'memo', 'details'],
            'debit': ['debit', 'debit_amount', 'withdrawal', 'outgoing'],
            'credit': ['credit', 'credit_amount', 'deposit', 'incoming'],
            'amount': ['amount', 'transaction_amount', 'trans_amount'],
            'industry': ['industry', 'naics_title', 'naics', 'classification'],
        }

    def extract_from_structured_data(self, df: pd.DataFrame) -> List[Dict[str, Any]]:
        """
        Extract transactions from a DataFrame.

        Args:
            df: Preprocessed DataFrame

        Returns:
            List of transaction dictionaries with transaction_date, name, amount, industry
        """
        self.logger.info(f"Extracting transactions from structured data ({len(df)} rows)")

        column_map = self._map_columns(df.columns.tolist())
        if 'date' not in column_map or not column_map.get('name'):
            raise ValueError(f"Could not find date and name columns in: {df.columns.tolist()}")
        if not any(field in column_map for field in ('amount', 'debit', 'credit')):
            raise ValueError(f"Could not find an amount column in: {df.columns.tolist()}")

        transactions = []
        for idx, row in df.iterrows():
            try:
                transaction = self._extract_transaction_from_row(row, column_map)
                if transaction:
                    transactions.append(transaction)
            except (ValueError, TypeError) as e:
                self.logger.warning(f"Error processing row {idx}: {str(e)}")
                continue

        self.logger.info(f"Extracted {len(transactions)} transactions from structured data")
        return transactions

    def _map_columns(self, columns: List[str]) -> Dict[str, Any]:
        """Map DataFrame columns to standard field names."""
        column_map: Dict[str, Any] = {}
        columns_lower = [str(col).lower().strip() for col in columns]
        used = set()

        # Exact names win over substring matches
        for standard_field, possible_names in self.column_mappings.items():
            if standard_field == 'name':
                continue
            for possible_name in possible_names:
                if possible_name in columns_lower and possible_name not in used:
                    column_map[standard_field] = columns[columns_lower.index(possible_name)]
                    used.add(possible_name)
                    break

        for standard_field, possible_names in self.column_mappings.items():
            if standard_field in column_map or standard_field == 'name':
                continue
            for possible_name in possible_names:
                match = next((i for i, col in enumerate(columns_lower)
                              if possible_name in col and col not in used
                              and not self._is_id_column(col)), None)
                if match is not None:
                    column_map[standard_field] = columns[match]
                    used.add(columns_lower[match])
                    break

        # Every name-like column, exact names first, so empty merchant names fall back.
        # Identifier columns such as merchant_entity_id never hold a name.
        candidates = [i for i, col in enumerate(columns_lower) if col not in used and not self._is_id_column(col)]
        name_columns = []
        for exact in (True, False):
            for possible_name in self.column_mappings['name']:
                for i in candidates:
                    col = columns_lower[i]
                    hit = col == possible_name if exact else possible_name in col
                    if hit and columns[i] not in name_columns:
                        name_columns.append(columns[i])
        column_map['name'] = name_columns

        self.logger.info(f"Column mapping: {column_map}")
        return column_map

    @staticmethod
    def _is_id_column(column: str) -> bool:
        return column == 'id' or column.endswith(('_id', ' id'))

    def _extract_transaction_from_row(self, row: pd.Series, column_map: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Extract transaction data from a DataFrame row."""
        transaction_date = self.preprocessor.normalize_date(row.get(column_map['date']))
        if not transaction_date:
            self.logger.warning(f"Skipping row without a usable date: {row.get(column_map['date'])}")
            return None

        if 'debit' in column_map or 'credit' in column_map:
            debit_amount = abs(self.preprocessor.clean_amount(row.get(column_map.get('debit', ''), 0)))
            credit_amount = abs(self.preprocessor.clean_amount(row.get(column_map.get('credit', ''), 0)))
            # Spending is positive, as in Plaid exports
            amount = debit_amount if debit_amount else -credit_amount
        else:
            amount = self.preprocessor.clean_amount(row.get(column_map['amount'], 0))

        if amount == 0:
            return None

        name = ""
        for column in column_map['name']:
            name = self.preprocessor.clean_business_name(row.get(column))
            if name:
                break

        industry = None
        if 'industry' in column_map:
            value = row.get(column_map['industry'])
            if value is not None and not pd.isna(value) and str(value).strip():
                industry = str(value).strip()

        return {
            'transaction_date': transaction_date,
            'name': name or "Unknown Business",
            'amount': amount,
            'industry': industry,
        }
