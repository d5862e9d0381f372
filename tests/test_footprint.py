import json
from datetime import datetime

import pytest

import config
import footprint
from classifier import IndustryClassifier
from conftest import FakeClient
from footprint import FootprintProcessor, main
from matcher import NAICS_CODE, STRICT_TITLE

NOW = datetime(2024, 3, 31, 12, 0)


@pytest.fixture
def classifier(fake_client):
    return IndustryClassifier(client=fake_client, model_name="gemini-test", sleep=lambda seconds: None)


@pytest.fixture
def processor(factors, classifier):
    return FootprintProcessor(factors=factors, classifier=classifier)


@pytest.fixture
def transactions_csv(tmp_path):
    path = tmp_path / "transactions.csv"
    path.write_text(
        "date,name,amount\n"
        "2024-03-01,Uber,20.00\n"
        "2024-03-02,Joe's Diner,50.00\n"
        "2024-03-03,Mystery Vendor,10.00\n"
    )
    return str(path)


def test_process_file(processor, transactions_csv):
    report = processor.process_file(transactions_csv, now=NOW)

    assert report.total_count == 3
    assert report.matched_count == 2

    uber, diner, mystery = report.transactions
    assert uber.industry == "Taxi Service"
    assert uber.match_tier == STRICT_TITLE
    assert uber.kg_co2e == pytest.approx(20 * 0.208)
    assert diner.emission_factor.industry == "Restaurants and Other Eating Places"
    assert diner.kg_co2e == pytest.approx(50 * 0.203)

    assert mystery.emission_factor is None
    assert mystery.kg_co2e is None

    assert report.total_kg_co2e == pytest.approx(20 * 0.208 + 50 * 0.203)
    assert report.monthly == {"2024-03": pytest.approx(report.total_kg_co2e)}
    assert report.top_industries[0].industry == "Restaurants and Other Eating Places"
    assert report.metrics["monthly"].amount == pytest.approx(50.0)
    assert report.metrics["yearly"].amount == pytest.approx(70.0)
    assert report.equivalents["car_km"] == pytest.approx(report.total_kg_co2e / 0.192)
    assert report.processing_metadata["file_type"] == "csv"
    assert report.processing_metadata["factor_rows"] == 6


def test_process_file_classifies_each_name_once(processor, classifier, tmp_path):
    path = tmp_path / "repeat.csv"
    path.write_text(
        "date,name,amount\n"
        "2024-03-01,Uber,20.00\n"
        "2024-03-05,Uber,12.00\n"
    )

    report = processor.process_file(str(path), now=NOW)

    assert [t.industry for t in report.transactions] == ["Taxi Service", "Taxi Service"]
    assert len(classifier.client.models.calls) == 1


def test_industry_column_skips_classifier(processor, classifier, tmp_path):
    path = tmp_path / "labelled.csv"
    path.write_text(
        "Date,Merchant,Amount,Industry\n"
        "03/01/2024,City Cab Co,15.00,Taxi Service\n"
        "03/02/2024,Cell Co,40.00,517312\n"
    )

    report = processor.process_file(str(path), now=NOW)

    assert classifier.client.models.calls == []
    cab, phone = report.transactions
    assert cab.kg_co2e == pytest.approx(15 * 0.208)
    assert phone.match_tier == NAICS_CODE
    assert phone.emission_factor.industry == "Wireless Telecommunications Carriers (except Satellite)"


def test_credits_use_absolute_amount(processor, tmp_path):
    path = tmp_path / "refund.csv"
    path.write_text("date,name,amount\n2024-03-01,Uber,-20.00\n")

    (refund,) = processor.process_file(str(path), now=NOW).transactions

    assert refund.amount == -20.0
    assert refund.kg_co2e == pytest.approx(20 * 0.208)


def test_without_classifier_everything_is_unknown(factors, transactions_csv):
    report = FootprintProcessor(factors=factors).process_file(transactions_csv, now=NOW)

    assert {t.industry for t in report.transactions} == {config.UNKNOWN_INDUSTRY}
    assert report.matched_count == 0
    assert report.total_kg_co2e == 0
    assert report.top_industries == []


def test_process_file_missing(processor, tmp_path):
    with pytest.raises(FileNotFoundError):
        processor.process_file(str(tmp_path / "missing.csv"))


def test_classify_business(processor):
    result = processor.classify_business("Joe's Diner")

    assert result.business_name == "Joe's Diner"
    assert result.industry == "Restaurants and Other Eating Places"
    assert result.emission_factor.factor == pytest.approx(0.203)
    assert result.emission_factor.naics_code == 722511


def test_classify_business_without_match(processor):
    result = processor.classify_business("Mystery Vendor")

    assert result.industry == "Qqqq Zzzz"
    assert result.emission_factor is None


def test_cli_match(capsys):
    assert main(["match", "Taxi Service", "722511", "Qqqq Zzzz"]) == 0

    taxi, restaurant, nothing = json.loads(capsys.readouterr().out)
    assert taxi["tier"] == STRICT_TITLE
    assert taxi["match"]["2017 NAICS Code"] == 485310
    assert restaurant["tier"] == NAICS_CODE
    assert restaurant["match"]["2017 NAICS Title"] == "Full-Service Restaurants"
    assert nothing == {"query": "Qqqq Zzzz", "tier": None, "match": None}


def test_cli_estimate(monkeypatch, factors, transactions_csv, tmp_path, capsys):
    monkeypatch.setattr(footprint, "build_classifier", lambda: IndustryClassifier(
        client=FakeClient({"Uber": "Taxi Service"}), sleep=lambda seconds: None))
    output = tmp_path / "report.json"

    assert main(["estimate", transactions_csv, "-o", str(output)]) == 0

    report = json.loads(output.read_text())
    assert report["total_count"] == 3
    assert report["matched_count"] == 1
    assert "Total footprint" in capsys.readouterr().out


def test_cli_estimate_missing_file(tmp_path, capsys):
    assert main(["estimate", str(tmp_path / "missing.csv")]) == 1
    assert "File not found" in capsys.readouterr().out


def test_cli_missing_factor_table(tmp_path, capsys):
    assert main(["--factors", str(tmp_path / "nope.csv"), "match", "Taxi Service"]) == 1
    assert "File not found" in capsys.readouterr().out


def test_cli_classify_without_key(monkeypatch, capsys):
    monkeypatch.setattr(config, "GEMINI_API_KEY", None)

    assert main(["classify", "Uber"]) == 1
    assert "GEMINI_API_KEY" in capsys.readouterr().out


@pytest.fixture
def taxi_table(tmp_path):
    path = tmp_path / "taxi_only.csv"
    path.write_text(
        "2017 NAICS Code,2017 NAICS Title,GHG,Unit,Supply Chain Emission Factors without Margins,"
        "Margins of Supply Chain Emission Factors,Supply Chain Emission Factors with Margins,Reference USEEIO Code\n"
        '485310,Taxi Service,All GHGs,"kg CO2e/2021 USD, purchaser price",0.5,0.5,1.0,485000\n'
    )
    return str(path)


def test_cli_estimate_factors_after_subcommand(monkeypatch, transactions_csv, taxi_table, tmp_path):
    monkeypatch.setattr(footprint, "build_classifier", lambda: IndustryClassifier(
        client=FakeClient({"Uber": "Taxi Service"}), sleep=lambda seconds: None))
    output = tmp_path / "report.json"

    assert main(["estimate", transactions_csv, "--factors", taxi_table, "-o", str(output)]) == 0

    report = json.loads(output.read_text())
    assert report["processing_metadata"]["factor_rows"] == 1
    assert report["total_kg_co2e"] == pytest.approx(20.0)


def test_cli_match_factors_after_subcommand(taxi_table, capsys):
    assert main(["match", "Taxi Service", "--factors", taxi_table]) == 0

    (taxi,) = json.loads(capsys.readouterr().out)
    assert taxi["match"]["Supply Chain Emission Factors with Margins"] == 1.0


def test_factors_option_position(taxi_table):
    parser = footprint.build_parser()

    assert parser.parse_args(["--factors", taxi_table, "match", "x"]).factors == taxi_table
    assert parser.parse_args(["match", "x", "--factors", taxi_table]).factors == taxi_table
    assert parser.parse_args(["match", "x"]).factors is None
