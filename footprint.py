"""
Main entry point for the transaction carbon footprint pipeline.
"""
import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import config
from classifier import ClassifierUnavailableError, IndustryClassifier
from extractor import TransactionExtractor
from factor_loader import load_default_factors
from file_loader import FileLoader
from matcher import EmissionFactorMatcher
from metrics import equivalents, estimate_kg_co2e, monthly_emissions, period_metrics, top_industries
from preprocess import DataPreprocessor
from schema import BusinessClassification, EmissionFactor, FootprintReport, TransactionEmission

logger = logging.getLogger(__name__)

class FootprintProcessor:
    """Classifies transactions, matches emission factors and estimates kg CO2e."""

    def __init__(self, factors: Optional[Iterable[EmissionFactor]] = None,
                 classifier: Optional[IndustryClassifier] = None,
                 matcher: Optional[EmissionFactorMatcher] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.file_loader = FileLoader()
        self.preprocessor = DataPreprocessor()
        self.extractor = TransactionExtractor(self.preprocessor)
        self.matcher = matcher or EmissionFactorMatcher(factors if factors is not None else load_default_factors())
        self.classifier = classifier

    def classify_business(self, business_name: str) -> BusinessClassification:
        """Classify one business and attach its emission factor."""
        return self.classify_businesses([business_name])[0]

    def classify_businesses(self, business_names: List[str]) -> List[BusinessClassification]:
        labels = self._classify(business_names)
        results = []
        for name in business_names:
            industry = labels.get(name, config.UNKNOWN_INDUSTRY)
            factor = self.matcher.match(industry) if industry != config.UNKNOWN_INDUSTRY else None
            results.append(BusinessClassification(
                business_name=name,
                industry=industry,
                emission_factor=factor.to_industry_emission() if factor else None,
            ))
        return results

    def estimate(self, transactions: List[Dict[str, Any]]) -> List[TransactionEmission]:
        """
        Estimate emissions for extracted transactions.

        Args:
            transactions: Dicts with transaction_date, name, amount and an optional industry

        Returns:
            TransactionEmission records in input order
        """
        unlabelled = [t['name'] for t in transactions if not t.get('industry')]
        labels = self._classify(unlabelled) if unlabelled else {}

        estimates = []
        for transaction in transactions:
            industry = transaction.get('industry') or labels.get(transaction['name'], config.UNKNOWN_INDUSTRY)
            factor, tier = (None, None)
            if industry != config.UNKNOWN_INDUSTRY:
                factor, tier = self.matcher.match_with_tier(industry)

            estimates.append(TransactionEmission(
                transaction_date=transaction['transaction_date'],
                name=transaction['name'],
                amount=transaction['amount'],
                industry=industry,
                emission_factor=factor.to_industry_emission() if factor else None,
                match_tier=tier,
                kg_co2e=estimate_kg_co2e(transaction['amount'], factor),
            ))
        return estimates

    def process_file(self, file_path: str, now: Optional[datetime] = None) -> FootprintReport:
        """
        Process a transactions export end-to-end.

        Args:
            file_path: Path to a CSV, Excel or JSON transactions file
            now: Reference time for the trailing period metrics

        Returns:
            FootprintReport with estimates and aggregates
        """
        logger.info(f"Starting processing of file: {file_path}")

        try:
            file_type, raw_data = self.file_loader.load_file(file_path)
            processed_data = self.preprocessor.preprocess_structured_data(raw_data)
            raw_transactions = self.extractor.extract_from_structured_data(processed_data)

            estimates = self.estimate(raw_transactions)
            matched = [t for t in estimates if t.kg_co2e is not None]
            total = sum(t.kg_co2e for t in matched)

            for t in estimates:
                if t.kg_co2e is None:
                    logger.warning(f"No emission factor found for {t.name} ({t.industry})")

            metadata = {
                'source_file': file_path,
                'file_type': file_type,
                'raw_transactions_found': len(raw_transactions),
                'factor_rows': len(self.matcher.factors),
                'processing_date': datetime.now().isoformat(timespec='seconds'),
            }

            report = FootprintReport(
                transactions=estimates,
                total_count=len(estimates),
                matched_count=len(matched),
                total_kg_co2e=total,
                monthly=monthly_emissions(estimates),
                top_industries=top_industries(estimates),
                metrics=period_metrics(estimates, now),
                equivalents=equivalents(total),
                processing_metadata=metadata,
            )

            logger.info(f"Estimated {total:.2f} kg CO2e across {len(matched)} of {len(estimates)} transactions")
            return report

        except Exception as e:
            logger.error(f"Error processing file {file_path}: {str(e)}")
            raise

    def _classify(self, business_names: List[str]) -> Dict[str, str]:
        if self.classifier is None:
            self.logger.warning("No classifier configured; transactions without an industry column stay unknown")
            return {}
        return self.classifier.classify_batch(business_names)

def build_classifier() -> Optional[IndustryClassifier]:
    try:
        return IndustryClassifier()
    except ClassifierUnavailableError as e:
        logger.warning(f"{e}. Classification will be disabled.")
        return None

def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(config.LOG_FILE)
        ]
    )

def _load_factors(path: Optional[str]):
    if path and not Path(path).exists():
        raise FileNotFoundError(f"File not found - {path}")
    return load_default_factors(path)

def run_estimate(args) -> int:
    if not Path(args.file_path).exists():
        print(f"Error: File not found - {args.file_path}")
        return 1

    processor = FootprintProcessor(factors=_load_factors(args.factors), classifier=build_classifier())
    result = processor.process_file(args.file_path)
    output_data = result.model_dump()

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=2, ensure_ascii=False)
        print(f"Results written to: {args.output}")
    else:
        print(json.dumps(output_data, indent=2, ensure_ascii=False))

    print(f"\nSummary:")
    print(f"- Transactions processed: {result.total_count}")
    print(f"- With an emission factor: {result.matched_count}")
    print(f"- Total footprint: {result.total_kg_co2e:.2f} kg CO2e")

    if result.top_industries:
        print(f"\nTop Industries:")
        for item in result.top_industries:
            print(f"- {item.industry}: {item.kg_co2e:.2f} kg CO2e ({item.share:.0%})")
    return 0

def run_match(args) -> int:
    matcher = EmissionFactorMatcher(_load_factors(args.factors))
    output = []
    for label in args.labels:
        factor, tier = matcher.match_with_tier(label)
        output.append({
            'query': label,
            'tier': tier,
            'match': factor.model_dump(by_alias=True) if factor else None,
        })
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0

def run_classify(args) -> int:
    classifier = build_classifier()
    if classifier is None:
        print("Error: GEMINI_API_KEY is not set")
        return 1
    processor = FootprintProcessor(factors=_load_factors(args.factors), classifier=classifier)
    results = processor.classify_businesses(args.names)
    print(json.dumps([r.model_dump() for r in results], indent=2, ensure_ascii=False))
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Estimate the carbon footprint of bank transactions')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('--factors', help='Emission factor table (CSV, Excel or JSON)')

    # --factors may also follow the subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--factors', default=argparse.SUPPRESS, help='Emission factor table (CSV, Excel or JSON)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    estimate = subparsers.add_parser('estimate', parents=[common], help='Estimate emissions for a transactions file')
    estimate.add_argument('file_path', help='Path to transactions file')
    estimate.add_argument('-o', '--output', help='Output JSON file path')
    estimate.set_defaults(handler=run_estimate)

    match = subparsers.add_parser('match', parents=[common], help='Match industry labels to emission factors')
    match.add_argument('labels', nargs='+', help='Industry titles or 6-digit NAICS codes')
    match.set_defaults(handler=run_match)

    classify = subparsers.add_parser('classify', parents=[common], help='Classify business names with Gemini')
    classify.add_argument('names', nargs='+', help='Business names')
    classify.set_defaults(handler=run_classify)

    return parser

def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        return args.handler(args)
    except Exception as e:
        logger.error(f"Processing failed: {str(e)}")
        print(f"Error: {str(e)}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
