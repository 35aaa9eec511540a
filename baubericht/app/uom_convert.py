from __future__ import annotations

from typing import Optional

_UOM_ALIASES = {
    # length
    "m": "m",
    "meter": "m",
    "metern": "m",
    "mtr": "m",
    "lfm": "m",
    "lfdm": "m",
    "lm": "m",
    "cm": "cm",
    "zentimeter": "cm",
    "mm": "mm",
    "millimeter": "mm",
    "km": "km",
    # area
    "m2": "m²",
    "m²": "m²",
    "m^2": "m²",
    "qm": "m²",
    "qm2": "m²",
    "quadratmeter": "m²",
    # volume
    "m3": "m³",
    "m³": "m³",
    "m^3": "m³",
    "cbm": "m³",
    "kubikmeter": "m³",
    "l": "l",
    "liter": "l",
    "lt": "l",
    "ltr": "l",
    "lit": "l",
    "ml": "ml",
    # mass
    "kg": "kg",
    "kilo": "kg",
    "kilogramm": "kg",
    "g": "g",
    "gramm": "g",
    "t": "t",
    "to": "t",
    "tonne": "t",
    "tonnen": "t",
    # count
    "stk": "Stk",
    "stck": "Stk",
    "stk.": "Stk",
    "st": "Stk",
    "st.": "Stk",
    "stück": "Stk",
    "stueck": "Stk",
    "stuck": "Stk",
    "stük": "Stk",
    "pcs": "Stk",
    "pieces": "Stk",
    "sack": "Sack",
    "säcke": "Sack",
    "saecke": "Sack",
    "rolle": "Rolle",
    "rollen": "Rolle",
    "eimer": "Eimer",
    "kanister": "Kanister",
    "dose": "Dose",
    "dosen": "Dose",
    "kartusche": "Kartusche",
    "kartuschen": "Kartusche",
    "platte": "Platte",
    "platten": "Platte",
    "palette": "Palette",
    "paletten": "Palette",
    "pal": "Palette",
    "bund": "Bund",
    "pack": "Packung",
    "packung": "Packung",
    "paket": "Paket",
    "pakete": "Paket",
    "karton": "Karton",
    "kartons": "Karton",
    "gebinde": "Gebinde",
    "beutel": "Beutel",
    "satz": "Set",
    "set": "Set",
    "sets": "Set",
    "rolle(n)": "Rolle",
}

# Time units are workforce data, never material quantities.
_HOUR_UNITS = {
    "h",
    "std",
    "std.",
    "stdn",
    "stunde",
    "stunden",
    "min",
    "minuten",
    "uhr",
    "tag",
    "tage",
}


def normalize_uom(u: str) -> str:
    if not u:
        return ""
    value = u.strip()
    if not value:
        return ""
    key = value.lower()
    return _UOM_ALIASES.get(key, value)


def resolve_uom(u: str) -> Optional[str]:
    """Canonical unit for a known alias, ``None`` for unknown or time units."""

    if not u:
        return None
    key = u.strip().lower()
    if not key or is_hour_unit(key):
        return None
    if key in _UOM_ALIASES:
        return _UOM_ALIASES[key]
    return _UOM_ALIASES.get(key.rstrip("."))


def is_hour_unit(u: str) -> bool:
    return (u or "").strip().lower() in _HOUR_UNITS
