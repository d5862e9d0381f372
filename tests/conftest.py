import pytest

import config
from schema import EmissionFactor

UNIT = "kg CO2e/2021 USD, purchaser price"

def make_factor(code, title, without, margin=0.0, reference=""):
    return EmissionFactor(
        naics_code=code,
        naics_title=title,
        ghg_type="All GHGs",
        unit=UNIT,
        factor_without_margins=without,
        margin_factor=margin,
        factor_with_margins=round(without + margin, 3),
        reference_code=reference or str(code),
    )

@pytest.fixture
def factors():
    return [
        make_factor(722511, "Restaurants and Other Eating Places", 0.203, reference="722110"),
        make_factor(485310, "Taxi Service", 0.208, reference="485000"),
        make_factor(447110, "Gasoline Stations with Convenience Stores", 0.192, reference="447000"),
        make_factor(481111, "Scheduled Passenger Air Transportation", 1.013, reference="481000"),
        make_factor(111110, "Soybean Farming", 0.915, margin=0.049, reference="1111A0"),
        make_factor(517312, "Wireless Telecommunications Carriers (except Satellite)", 0.071, reference="517210"),
    ]

@pytest.fixture
def restaurant(factors):
    return factors[0]

class FakeResponse:
    def __init__(self, text):
        self.text = text

class FakeModels:
    """Stands in for genai.Client().models."""

    def __init__(self, replies, errors=None):
        self.replies = replies
        self.errors = list(errors or [])
        self.calls = []

    def generate_content(self, model, contents):
        self.calls.append((model, contents))
        if self.errors:
            raise self.errors.pop(0)
        for name, title in self.replies.items():
            if f'"{name}"' in contents:
                return FakeResponse(f"  {title}\n")
        return FakeResponse("Qqqq Zzzz")

class FakeClient:
    def __init__(self, replies=None, errors=None):
        self.models = FakeModels(replies or {}, errors)

class RateLimitError(Exception):
    """Shape of google.genai.errors.ClientError for a 429."""

    def __init__(self, retry_delay=None):
        super().__init__("429 RESOURCE_EXHAUSTED")
        self.code = 429
        self.status = "RESOURCE_EXHAUSTED"
        details = []
        if retry_delay is not None:
            details.append({
                "@type": "type.googleapis.com/google.rpc.RetryInfo",
                "retryDelay": retry_delay,
            })
        self.details = {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED", "details": details}}

@pytest.fixture
def replies():
    return {
        "Uber": "Taxi Service",
        "Joe's Diner": "Restaurants and Other Eating Places",
        "Shell": "Gasoline Stations with Convenience Stores",
        "Delta Air Lines": "Scheduled Passenger Air Transportation",
    }

@pytest.fixture
def fake_client(replies):
    return FakeClient(replies)

@pytest.fixture(autouse=True)
def log_file(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "LOG_FILE", str(tmp_path / "footprint.log"))
