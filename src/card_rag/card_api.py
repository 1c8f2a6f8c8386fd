"""Card catalog client — fetches cards from the external catalog service and
filters them against the user's query."""

import logging

import httpx

from card_rag.config import CardApiConfig
from card_rag.errors import CardApiError
from card_rag.models import CardRecord
from card_rag.similarity import tokenize

logger = logging.getLogger(__name__)

# The service is queried with every filter left empty; relevance filtering
# happens client-side.
_EMPTY_FILTER_PAYLOAD: dict = {
    "slug": "",
    "banks_ids": [],
    "card_networks": [],
    "annualFees": "",
    "credit_score": "",
    "sort_by": "",
    "free_cards": "",
    "eligiblityPayload": {},
    "cardGeniusPayload": {},
}

_BANK_TERMS = ("hdfc", "sbi", "icici", "axis")
_CARD_TERMS = ("cashback", "premium", "regalia", "lounge")
_FREE_FEE_VALUES = ("0", "free")


def _extract_cards(payload: object) -> list[dict]:
    """Pull the list of card dicts out of a catalog response body."""
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items = payload["data"]
    elif isinstance(payload, list):
        items = payload
    else:
        logger.warning("Unexpected card catalog response format: %s", type(payload).__name__)
        return []
    return [item for item in items if isinstance(item, dict)]


def _special_match(query_lower: str, card: CardRecord, text: str) -> bool:
    """Domain shortcuts that keep a card even without a direct token hit."""
    for term in (*_BANK_TERMS, *_CARD_TERMS):
        if term in query_lower and term in text:
            return True
    if "travel" in query_lower and ("travel" in text or "miles" in text):
        return True
    if "no annual fee" in query_lower:
        fee = (card.annual_fee or "").strip().lower()
        if "no annual fee" in text or "free" in text or fee in _FREE_FEE_VALUES:
            return True
    return False


def filter_cards(
    cards: list[CardRecord],
    query: str,
    max_results: int = 10,
) -> list[CardRecord]:
    """Keep cards relevant to *query* and cap the result count.

    A card is kept when its searchable text contains any query token
    longer than two characters, or when one of the bank, card type, or
    fee shortcuts applies. An empty query keeps every card.

    Args:
        cards: Records returned by the catalog.
        query: The (possibly mapper-enhanced) query string.
        max_results: Upper bound on returned records.

    Returns:
        Matching cards in catalog order, at most *max_results* long.
    """
    query_lower = query.lower().strip()
    if query_lower:
        tokens = tokenize(query_lower)
        kept = []
        for card in cards:
            text = card.searchable_text()
            if any(t in text for t in tokens) or _special_match(query_lower, card, text):
                kept.append(card)
        logger.debug("Filtered %d catalog cards down to %d", len(cards), len(kept))
        cards = kept
    return cards[:max_results]


class CardDataClient:
    """Client for the external card catalog service."""

    def __init__(
        self,
        config: CardApiConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._config = config or CardApiConfig()
        self._http = http_client or httpx.Client(timeout=self._config.timeout)

    def close(self) -> None:
        self._http.close()

    def fetch_cards(self) -> list[dict]:
        """POST the empty filter payload and return the raw card dicts.

        Raises:
            CardApiError: On transport errors, non-2xx responses, or a body
                that is not valid JSON.
        """
        try:
            response = self._http.post(self._config.url, json=_EMPTY_FILTER_PAYLOAD)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise CardApiError(f"Card catalog request failed: {exc}") from exc
        except ValueError as exc:
            raise CardApiError("Card catalog returned invalid JSON") from exc

        cards = _extract_cards(payload)
        logger.info("Card catalog returned %d cards", len(cards))
        return cards

    def search_cards(self, query: str) -> list[CardRecord]:
        """Fetch the catalog and return the cards relevant to *query*."""
        records = [CardRecord.from_api(raw) for raw in self.fetch_cards()]
        return filter_cards(records, query, self._config.max_results)
