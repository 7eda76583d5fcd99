"""Default prompt used for receipt extraction.

Keeping the prompt in a central location makes it easier to iterate on its
content and keep both extraction providers consistent.
"""

from __future__ import annotations

from textwrap import dedent


def get_default_extraction_prompt() -> str:
    """Return the prompt used to parse a restaurant receipt photo.

    The output layout mirrors ``ExtractedReceipt``: ``meta_data``, ``items``
    and ``payment``.  The prompt insists on complete multilingual item names,
    add-ons folded into their dish, and never inventing missing tip/tax.
    """
    return dedent(
        """
        The photo provided is a restaurant receipt, please extract the following information:
          - meta info: restaurant name, address, order time, check out time, guest count
          - dishes: number of orders for each dish, price for each dish
          - payment info: subtotal, tax, tip, total, currency

        # Complete text extraction:
        If the receipt is in multiple languages, or in a language other than English,
        extract the complete text, not just the English text. Some item names contain a
        number; do not confuse it with the number of orders. For example, a dish ordered
        once named "2. 冰沙草莓得其利 Strawberry Daiquiri" has the name
        "2. 冰沙草莓得其利 Strawberry Daiquiri" and a quantity of 1.

        # Complex item:
        Some items carry add-on charges. Include the add-ons in the dish name and the
        add-on charges in the item total.

        # Missing information:
        Customer copies may lack the tip or tax, or carry a handwritten total. When the
        customer writes a total and skips the tip, do not assume the tip is 0 and do not
        use the total as the tip.

        # Currency:
        Deduce the currency from the currency symbol or the restaurant's country when
        possible. Use abbreviations such as USD, EUR, CNY.

        # Output data structure:
        Return only JSON in the following format:
        {
          "meta_data": {
            "restaurant": "string", (if available)
            "address": "string", (if available)
            "ordered_time": "string", (if available)
            "checkout_time": "string", (if available)
            "guest_count": "number" (if available)
          },
          "items": [
            {"name": "string", "quantity": "number", "total": "number"},
            ...
          ],
          "payment": {
            "subtotal": "number",
            "tax": "number", (if available)
            "tip": "number", (if available)
            "total": "number",
            "currency": "string" (if available)
          }
        }
        """
    ).strip()
