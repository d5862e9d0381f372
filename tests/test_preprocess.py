import pandas as pd
import pytest

from preprocess import DataPreprocessor


@pytest.fixture
def preprocessor():
    return DataPreprocessor()


@pytest.mark.parametrize("raw, expected", [
    ("2024-01-15", "2024-01-15"),
    ("01/15/2024", "2024-01-15"),
    ("1/5/2024", "2024-01-05"),
    ("Jan 15, 2024", "2024-01-15"),
    (pd.Timestamp("2024-03-02"), "2024-03-02"),
])
def test_normalize_date(preprocessor, raw, expected):
    assert preprocessor.normalize_date(raw) == expected


@pytest.mark.parametrize("raw", ["", None, float("nan"), "pending"])
def test_normalize_date_unparseable(preprocessor, raw):
    assert preprocessor.normalize_date(raw) == ""


@pytest.mark.parametrize("raw, expected", [
    ("$1,234.50", 1234.5),
    ("-12.00", -12.0),
    ("(12.50)", -12.5),
    (42, 42.0),
    (3.25, 3.25),
    ("", 0.0),
    (None, 0.0),
    (float("nan"), 0.0),
    ("USD", 0.0),
])
def test_clean_amount(preprocessor, raw, expected):
    assert preprocessor.clean_amount(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw, expected", [
    ("POS PURCHASE STARBUCKS #1234", "STARBUCKS"),
    ("SQ *BLUE BOTTLE COFFEE", "BLUE BOTTLE COFFEE"),
    ("Uber 063015 SF**POOL**", "Uber SF POOL"),
    ("  McDonald's  ", "McDonald's"),
    ("Achieve Fitness", "Achieve Fitness"),
    ("Cardinal Health", "Cardinal Health"),
    ("1800 Flowers", "1800 Flowers"),
    ("POS 1800 FLOWERS 555123", "1800 FLOWERS"),
    (None, ""),
    (float("nan"), ""),
])
def test_clean_business_name(preprocessor, raw, expected):
    assert preprocessor.clean_business_name(raw) == expected


def test_preprocess_structured_data(preprocessor):
    df = pd.DataFrame({
        " Date ": ["2024-01-15", None, "date"],
        "Name": ["Uber", None, "name"],
        "Amount": [12.5, None, "amount"],
    })

    cleaned = preprocessor.preprocess_structured_data(df)

    assert list(cleaned.columns) == ["date", "name", "amount"]
    assert len(cleaned) == 1
    assert cleaned.iloc[0]["name"] == "Uber"


def test_preprocess_empty_frame(preprocessor):
    cleaned = preprocessor.preprocess_structured_data(pd.DataFrame(columns=["Date", "Name"]))
    assert cleaned.empty
    assert list(cleaned.columns) == ["date", "name"]
