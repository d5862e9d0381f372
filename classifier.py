import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional
from google import genai

import config

logger = logging.getLogger(__name__)

CLASSIFY_PROMPT = """Classify the following business into the most appropriate 2017 NAICS industry title.
Only respond with the exact NAICS title, nothing else. Business name: "{business_name}\""""

RETRY_INFO_TYPE = 'type.googleapis.com/google.rpc.RetryInfo'

class ClassifierUnavailableError(RuntimeError):
    """Raised when no Gemini credentials or client are available."""

class IndustryClassifier:
    """Classifies business names into 2017 NAICS industry titles using Gemini."""

    def __init__(self, api_key: Optional[str] = None, model_name: str = config.GEMINI_MODEL,
                 client=None, retries: int = config.CLASSIFY_RETRIES,
                 retry_delay: float = config.RETRY_DELAY_SECONDS,
                 batch_size: int = config.BATCH_SIZE,
                 batch_delay: float = config.BATCH_DELAY_SECONDS,
                 sleep: Callable[[float], None] = time.sleep):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.model_name = model_name
        self.retries = max(1, retries)
        self.retry_delay = retry_delay
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self._sleep = sleep

        # Business name -> industry label, for the life of the classifier
        self._cache: Dict[str, str] = {}

        if client is not None:
            self.client = client
        else:
            api_key = api_key or config.GEMINI_API_KEY
            if not api_key:
                raise ClassifierUnavailableError("GEMINI_API_KEY is required to classify businesses")
            self.client = genai.Client(api_key=api_key)

    def classify(self, business_name: str) -> str:
        """
        Classify one business name.

        Args:
            business_name: Merchant or business name

        Returns:
            NAICS title as returned by the model, or "Unknown"
        """
        business_name = (business_name or '').strip()
        if not business_name:
            return config.UNKNOWN_INDUSTRY

        if business_name in self._cache:
            return self._cache[business_name]

        prompt = CLASSIFY_PROMPT.format(business_name=business_name)

        for attempt in range(1, self.retries + 1):
            try:
                response = self.client.models.generate_content(model=self.model_name, contents=prompt)
                classification = (response.text or '').strip()
                if not classification:
                    self.logger.warning(f"Empty classification for {business_name}")
                    return config.UNKNOWN_INDUSTRY

                self.logger.debug(f"Classified {business_name} as {classification}")
                self._cache[business_name] = classification
                return classification

            except Exception as e:
                self.logger.error(f"Attempt {attempt} failed for {business_name}: {e}")

                if self._is_rate_limited(e) and attempt < self.retries:
                    delay = self._retry_delay(e)
                    self.logger.info(f"Rate limited. Waiting {delay}s before retry...")
                    self._sleep(delay)
                    continue

                return config.UNKNOWN_INDUSTRY

        return config.UNKNOWN_INDUSTRY

    def classify_batch(self, business_names: Iterable[str]) -> Dict[str, str]:
        """
        Classify many business names in small concurrent batches.

        Args:
            business_names: Names to classify; duplicates are classified once

        Returns:
            Mapping of business name to industry label, in first-seen order
        """
        unique_names = [name for name in dict.fromkeys(business_names) if name]
        pending = [name for name in unique_names if name not in self._cache]
        results = {name: self._cache[name] for name in unique_names if name in self._cache}

        batches: List[List[str]] = [pending[i:i + self.batch_size] for i in range(0, len(pending), self.batch_size)]
        for number, batch in enumerate(batches, start=1):
            self.logger.info(f"Processing batch {number} of {len(batches)}")

            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                for name, classification in zip(batch, executor.map(self.classify, batch)):
                    results[name] = classification

            if number < len(batches):
                self._sleep(self.batch_delay)

        return {name: results[name] for name in unique_names}

    @staticmethod
    def _is_rate_limited(error: Exception) -> bool:
        return getattr(error, 'code', None) == 429 or getattr(error, 'status', None) in (429, 'RESOURCE_EXHAUSTED')

    def _retry_delay(self, error: Exception) -> float:
        """Server-suggested delay from a google.rpc.RetryInfo detail, else the default."""
        details = getattr(error, 'details', None)
        if isinstance(details, dict):
            body = details.get('error', details)
            details = body.get('details') if isinstance(body, dict) else None
        if not isinstance(details, list):
            return self.retry_delay

        for detail in details:
            if isinstance(detail, dict) and detail.get('@type') == RETRY_INFO_TYPE:
                try:
                    return float(str(detail.get('retryDelay', '')).rstrip('s'))
                except ValueError:
                    break
        return self.retry_delay
