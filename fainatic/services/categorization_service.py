"""
Keyword-based transaction categorization.

Rules are checked in order and the first match wins. Any positive amount is
Income regardless of the description.

Known ambiguity: some statement variants checked "grocery"/"food" before
"restaurant"/"cafe". Here the Food rule comes first, so "cafe" text never
reaches Groceries; the order below is the canonical one until product
confirms otherwise.
"""

from decimal import Decimal
from typing import Tuple, Union

from fainatic.schemas.transaction import Category, Transaction

CATEGORY_RULES: Tuple[Tuple[Tuple[str, ...], Category], ...] = (
    (("salary", "payroll"), Category.INCOME),
    (("amazon", "shop"), Category.SHOPPING),
    (("uber", "lyft"), Category.TRANSPORT),
    (("restaurant", "cafe"), Category.FOOD),
    (("netflix", "spotify"), Category.ENTERTAINMENT),
    (("grocery", "food"), Category.GROCERIES),
    (("gas", "fuel"), Category.TRANSPORT),
    (("insurance",), Category.INSURANCE),
    (("rent", "mortgage"), Category.HOUSING),
    (("utility", "electric", "water"), Category.UTILITIES),
)


def categorize(description: str, amount: Union[Decimal, float, int]) -> Category:
    """Coarse category for a transaction. Pure: same input, same answer."""
    if amount > 0:
        return Category.INCOME

    text = (description or "").lower()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in text for keyword in keywords):
            return category

    return Category.OTHER


def reconcile_category(transaction: Transaction) -> Transaction:
    """Client-supplied transactions keep their category unless a positive amount says Income"""
    if transaction.amount > 0 and transaction.category is not Category.INCOME:
        return transaction.model_copy(update={"category": Category.INCOME})
    return transaction
