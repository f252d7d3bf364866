"""Display constants."""

CURRENCY_NAMES = {"primary": "Jade", "secondary": "Spirit Crystals"}
