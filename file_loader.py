import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Tuple
import pandas as pd

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ('utf-8', 'utf-8-sig', 'latin1', 'cp1252')

class FileLoader:
    """Reads transaction exports and emission factor tables into DataFrames."""

    def __init__(self, sheet_keywords: List[str] = None, record_keys: List[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        # Workbook sheets that look like transaction listings
        self.sheet_keywords = sheet_keywords or ['transaction', 'statement', 'activity', 'history', 'factor']
        # Keys that hold the row list in wrapped JSON, e.g. Plaid's {"transactions": [...]}
        self.record_keys = record_keys or ['transactions', 'data', 'records', 'rows']
        self.readers: Dict[str, Tuple[str, Callable[[Path], pd.DataFrame]]] = {
            '.csv': ('csv', self._read_csv),
            '.xlsx': ('excel', self._read_excel),
            '.xls': ('excel', self._read_excel),
            '.json': ('json', self._read_json),
        }

    def load_file(self, file_path: str) -> Tuple[str, pd.DataFrame]:
        """
        Read a tabular file into a DataFrame.

        Args:
            file_path: CSV, Excel or JSON file

        Returns:
            Tuple of (file_type, DataFrame) where file_type is csv, excel or json
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        suffix = path.suffix.lower()
        if suffix not in self.readers:
            raise ValueError(f"Unsupported file type: {suffix or path.name}")

        file_type, reader = self.readers[suffix]
        self.logger.info(f"Reading {file_type} file: {file_path}")
        df = reader(path)
        self.logger.info(f"Read {len(df)} rows and {len(df.columns)} columns from {path.name}")
        return file_type, df

    def _read_csv(self, path: Path) -> pd.DataFrame:
        for encoding in CSV_ENCODINGS:
            try:
                return pd.read_csv(path, encoding=encoding, low_memory=False)
            except UnicodeDecodeError:
                self.logger.debug(f"{path.name} is not {encoding}")
        raise ValueError(f"Could not decode {path.name} as any of {list(CSV_ENCODINGS)}")

    def _read_excel(self, path: Path) -> pd.DataFrame:
        try:
            workbook = pd.ExcelFile(path)
        except Exception as e:
            raise ValueError(f"Error reading Excel file {path.name}: {e}") from e

        sheet = next(
            (name for name in workbook.sheet_names
             if any(keyword in str(name).lower() for keyword in self.sheet_keywords)),
            workbook.sheet_names[0],
        )
        self.logger.debug(f"Using sheet {sheet} of {path.name}")
        return pd.read_excel(workbook, sheet_name=sheet)

    def _read_json(self, path: Path) -> pd.DataFrame:
        try:
            with open(path, encoding='utf-8') as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error reading JSON file {path.name}: {e}") from e

        if isinstance(payload, dict):
            key = next((k for k in self.record_keys if isinstance(payload.get(k), list)), None)
            if key is None:
                raise ValueError(f"No list of records found in {path.name}")
            payload = payload[key]

        if not isinstance(payload, list):
            raise ValueError(f"Expected a list of records in {path.name}")
        return pd.DataFrame.from_records(payload)
