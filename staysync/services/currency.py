CURRENCY_SYMBOLS = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "GHS": "₵",
    "KES": "KSh",
    "ZAR": "R",
    # Add other currencies as needed
}

def get_currency_symbol(currency_code: str) -> str:
    """Returns the currency symbol for a given currency code."""
    return CURRENCY_SYMBOLS.get(currency_code.upper(), "")

def get_currency_code(symbol: str) -> str | None:
    """Returns the currency code for a symbol (or a code written out in full)."""
    symbol = symbol.strip()
    if symbol.upper() in CURRENCY_SYMBOLS:
        return symbol.upper()
    for code, sym in CURRENCY_SYMBOLS.items():
        if sym == symbol:
            return code
    return None
