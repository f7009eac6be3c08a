"""Canonical courier names and display labels.

Carrier names arrive in many spellings (``Blue Dart``, ``bluedart``,
``velocity-shipfast``). Adapters and analytics key everything on the canonical
name.
"""

_LABELS = {
    "velocity": "Velocity",
    "delhivery": "Delhivery",
    "ekart": "Ekart",
    "xpressbees": "Xpressbees",
    "bluedart": "Blue Dart",
    "dtdc": "DTDC",
    "shadowfax": "Shadowfax",
    "ecom_express": "Ecom Express",
}

_ALIASES = {
    "velocity-shipfast": "velocity",
    "velocity_shipfast": "velocity",
    "shipfast": "velocity",
    "delhivery_surface": "delhivery",
    "delhivery-express": "delhivery",
    "flipkart_ekart": "ekart",
    "xpress_bees": "xpressbees",
    "xpress bees": "xpressbees",
    "blue dart": "bluedart",
    "blue_dart": "bluedart",
    "ecom": "ecom_express",
    "ecomexpress": "ecom_express",
    "ecom express": "ecom_express",
}


class CourierRegistry:
    def __init__(self, labels: dict[str, str] | None = None, aliases: dict[str, str] | None = None):
        self.labels = dict(_LABELS if labels is None else labels)
        self.aliases = dict(_ALIASES if aliases is None else aliases)

    def to_canonical(self, raw: str | None) -> str | None:
        """Map a raw carrier name to its canonical name, or None if unknown."""
        normalized = str(raw or "").strip().lower()
        if not normalized:
            return None
        if normalized in self.labels:
            return normalized
        return self.aliases.get(normalized)

    def canonicalize(self, raw: str | None) -> str:
        """Like ``to_canonical`` but falls back to the normalized raw name."""
        normalized = str(raw or "").strip().lower()
        return self.to_canonical(normalized) or normalized or "unknown"

    def get_label(self, raw: str | None) -> str:
        canonical = self.canonicalize(raw)
        if canonical in self.labels:
            return self.labels[canonical]
        return canonical.replace("_", " ").title()
