"""
The fixed set of supported ISO 4217 currencies.
"""

from .entities import Currency

CURRENCIES: dict[str, Currency] = {
    c.code: c
    for c in (
        Currency(code="USD", name="US Dollar", symbol="$", flag="🇺🇸"),
        Currency(code="EUR", name="Euro", symbol="€", flag="🇪🇺"),
        Currency(code="GBP", name="British Pound", symbol="£", flag="🇬🇧"),
        Currency(code="JPY", name="Japanese Yen", symbol="¥", flag="🇯🇵"),
        Currency(code="AUD", name="Australian Dollar", symbol="A$", flag="🇦🇺"),
        Currency(code="CAD", name="Canadian Dollar", symbol="C$", flag="🇨🇦"),
        Currency(code="CHF", name="Swiss Franc", symbol="CHF", flag="🇨🇭"),
        Currency(code="CNY", name="Chinese Yuan", symbol="¥", flag="🇨🇳"),
        Currency(code="SEK", name="Swedish Krona", symbol="kr", flag="🇸🇪"),
        Currency(code="NZD", name="New Zealand Dollar", symbol="NZ$", flag="🇳🇿"),
        Currency(code="MXN", name="Mexican Peso", symbol="$", flag="🇲🇽"),
        Currency(code="SGD", name="Singapore Dollar", symbol="S$", flag="🇸🇬"),
        Currency(code="HKD", name="Hong Kong Dollar", symbol="HK$", flag="🇭🇰"),
        Currency(code="NOK", name="Norwegian Krone", symbol="kr", flag="🇳🇴"),
        Currency(code="TRY", name="Turkish Lira", symbol="₺", flag="🇹🇷"),
        Currency(code="RUB", name="Russian Ruble", symbol="₽", flag="🇷🇺"),
        Currency(code="INR", name="Indian Rupee", symbol="₹", flag="🇮🇳"),
        Currency(code="BRL", name="Brazilian Real", symbol="R$", flag="🇧🇷"),
        Currency(code="ZAR", name="South African Rand", symbol="R", flag="🇿🇦"),
        Currency(code="KRW", name="South Korean Won", symbol="₩", flag="🇰🇷"),
    )
}

SUPPORTED_CURRENCIES: tuple[str, ...] = tuple(CURRENCIES)


def is_supported_currency(code: str) -> bool:
    return code in CURRENCIES
