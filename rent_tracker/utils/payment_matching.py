import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from rent_tracker.utils.bank_client import Transaction

DEFAULT_SEARCH_WINDOW_DAYS = 7

_KEYWORD_SPLIT = re.compile(r"[\s\-_.,;:|/\\]+")
_STOP_WORDS = {'THE', 'AND', 'FOR', 'FROM', 'WITH', 'THIS', 'THAT', 'ARE', 'WAS'}


@dataclass
class PaymentMatch:
    found: bool
    transaction: Optional[Transaction] = None

    @property
    def amount(self) -> Optional[float]:
        return self.transaction.amount if self.transaction else None


def transaction_matches(transaction: Transaction, keyword: str) -> bool:
    """Incoming payment whose description contains the keyword, any case."""
    if not keyword or transaction.amount <= 0:
        return False
    return keyword.casefold() in (transaction.description or '').casefold()


def search_window(due_date: date, days: int = DEFAULT_SEARCH_WINDOW_DAYS):
    return due_date - timedelta(days=days), due_date + timedelta(days=days)


def find_rent_payment(client, keyword: str, due_date: date, search_window_days: int = DEFAULT_SEARCH_WINDOW_DAYS) -> PaymentMatch:
    """Look through every linked account for the first matching payment.

    Accounts are fetched once and searched in the order the bank returns them;
    the search stops at the first account holding a match.
    """
    start, end = search_window(due_date, search_window_days)
    for account in client.get_accounts():
        for transaction in client.get_transactions(account.id, start, end):
            if transaction_matches(transaction, keyword):
                return PaymentMatch(found=True, transaction=transaction)
    return PaymentMatch(found=False)


def extract_keywords(description: str, limit: int = 8):
    """Suggest keywords for matching future payments like this one."""
    words = [
        word for word in _KEYWORD_SPLIT.split((description or '').upper())
        if len(word) >= 3 and word not in _STOP_WORDS
    ]
    keywords = words[:5]
    if len(words) >= 2:
        keywords.append(' '.join(words[:2]))
    if len(words) >= 3:
        keywords.append(' '.join(words[:3]))
    return list(dict.fromkeys(keywords))[:limit]
