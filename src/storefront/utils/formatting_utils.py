import re
import unicodedata
from decimal import Decimal
from typing import Optional


class FormattingUtils:
    """
    Display formatting for prices, ratings, names and catalog text

    Money is always rendered from integer cents with a fixed number of
    decimal places and no thousands separator: 109900 -> "$1099.00".
    """

    CURRENCY_SYMBOLS = {'USD': '$'}

    DEFAULT_TRUNCATE_LENGTH = 100
    ELLIPSIS = '...'

    @classmethod
    def format_money(cls, amount_cents: int, currency: str = 'USD') -> str:
        """
        Format an amount in cents for display

        Examples:
            format_money(99900) -> "$999.00"
            format_money(1299, "CAD") -> "12.99 CAD"
        """
        formatted_amount = f"{Decimal(amount_cents) / 100:.2f}"
        symbol = cls.CURRENCY_SYMBOLS.get(currency)
        if symbol is None:
            return f"{formatted_amount} {currency}"
        return f"{symbol}{formatted_amount}"

    @classmethod
    def format_price_range(
        cls, min_cents: Optional[int], max_cents: Optional[int], currency: str = 'USD'
    ) -> Optional[str]:
        """
        "$999.00" when both ends agree, "$999.00 - $1099.00" otherwise,
        None when there is nothing to price.
        """
        if min_cents is None or max_cents is None:
            return None
        if min_cents == max_cents:
            return cls.format_money(min_cents, currency)
        return f"{cls.format_money(min_cents, currency)} - {cls.format_money(max_cents, currency)}"

    @classmethod
    def format_percentage(cls, decimal_value, decimal_places: int = 1) -> str:
        """
        Format decimal as percentage

        Examples:
            format_percentage(0.08, 1) -> "8.0%"
            format_percentage(Decimal("0.125"), 2) -> "12.50%"
        """
        percentage = Decimal(str(decimal_value)) * 100
        return f"{percentage:.{decimal_places}f}%"

    @classmethod
    def format_rating(cls, rating: Optional[float]) -> str:
        """One decimal place, "0.0" for unrated products"""
        return f"{(rating or 0.0):.1f}"

    @classmethod
    def truncate_text(
        cls,
        text: Optional[str],
        max_length: int = DEFAULT_TRUNCATE_LENGTH,
        ellipsis: str = ELLIPSIS,
        word_boundary: bool = True
    ) -> str:
        """Truncate text with ellipsis, preferring to break between words"""
        if not text:
            return ""
        if len(text) <= max_length:
            return text

        truncate_point = max_length - len(ellipsis)
        if word_boundary:
            last_space = text.rfind(' ', 0, truncate_point)
            if last_space > 0:
                return text[:last_space] + ellipsis

        return text[:truncate_point] + ellipsis

    @classmethod
    def slugify(cls, value: str) -> str:
        """
        URL-safe slug: "Laptops & Tablets" -> "laptops-tablets"
        """
        normalized = unicodedata.normalize('NFKD', value).encode('ascii', 'ignore').decode('ascii')
        slug = re.sub(r'[^a-zA-Z0-9]+', '-', normalized).strip('-')
        return slug.lower()

    @classmethod
    def format_name(cls, first_name: Optional[str], last_name: Optional[str]) -> str:
        return f"{(first_name or '').strip()} {(last_name or '').strip()}".strip()

    @classmethod
    def format_address_line(
        cls, street: str, city: str, state: str, zip_code: str, country: str
    ) -> str:
        """Single-line postal address, e.g. 1 Main St, Springfield, IL 62701, US"""
        return f"{street}, {city}, {state} {zip_code}, {country}"
