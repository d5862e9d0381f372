# Footprint Config
# Central configuration for the classifier, matcher and CLI

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Gemini
GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.0-flash')

# Reference table (EPA supply chain GHG emission factors, 2017 NAICS)
EMISSION_FACTORS_PATH = os.environ.get(
    'FOOTPRINT_FACTORS_PATH',
    os.path.join(BASE_DIR, 'data', 'ghg_emission_factors.csv')
)

# Matcher thresholds (normalized edit distance, lower is stricter)
STRICT_MATCH_THRESHOLD = float(os.environ.get('FOOTPRINT_STRICT_THRESHOLD', '0.25'))
LENIENT_MATCH_THRESHOLD = float(os.environ.get('FOOTPRINT_LENIENT_THRESHOLD', '0.5'))

# Classifier retry and batching
CLASSIFY_RETRIES = int(os.environ.get('FOOTPRINT_CLASSIFY_RETRIES', '3'))
RETRY_DELAY_SECONDS = float(os.environ.get('FOOTPRINT_RETRY_DELAY', '30'))
BATCH_SIZE = int(os.environ.get('FOOTPRINT_BATCH_SIZE', '3'))
BATCH_DELAY_SECONDS = float(os.environ.get('FOOTPRINT_BATCH_DELAY', '5'))

# Label used when a business cannot be classified
UNKNOWN_INDUSTRY = 'Unknown'

# Logging
LOG_FILE = os.environ.get('FOOTPRINT_LOG_FILE', 'footprint.log')
