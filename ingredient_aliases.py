"""Centralized ingredient alias metadata.

Maps a canonical ingredient name to the spelling variants that show up in
video titles and descriptions: plurals, transliterations, regional names and
common misspellings. Lookups work in both directions so a variant can find
its canonical form and every sibling variant.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

ALIAS_TABLE: Dict[str, Tuple[str, ...]] = {
    # Proteins
    "chicken": ("chickens", "chiken", "chikken"),
    "salmon": ("salmons",),
    "shrimp": ("shrimps", "prawns", "prawn"),
    "tofu": ("tofus", "bean curd", "beancurd"),
    "tempeh": ("tempehs", "tempe"),
    "egg": ("eggs",),
    "anchovy": ("anchovies", "anchovi"),
    "sardine": ("sardines",),
    "crab": ("crabs", "crabmeat"),
    "scallop": ("scallops",),
    # Vegetables
    "tomato": ("tomatoes", "tomatoe"),
    "potato": ("potatoes", "potatoe"),
    "onion": ("onions",),
    "bell pepper": ("bell peppers", "capsicum"),
    "mushroom": ("mushrooms",),
    "broccoli": ("brocoli", "brocolli"),
    "cauliflower": ("cauliflowers", "cauliflour"),
    "zucchini": ("zucchinis", "courgette", "courgettes"),
    "eggplant": ("eggplants", "aubergine", "aubergines", "brinjal"),
    "avocado": ("avocados", "avacado", "avacados"),
    "beet": ("beets", "beetroot", "beetroots"),
    "brussels sprout": ("brussels sprouts", "brussel sprout", "brussel sprouts"),
    "chickpea": ("chickpeas", "garbanzo", "garbanzos", "garbanzo beans", "chana", "channa"),
    "cilantro": ("coriander leaf", "fresh coriander"),
    "scallion": ("scallions", "green onion", "green onions", "spring onion", "spring onions"),
    "arugula": ("rocket", "roquette"),
    # Herbs and spices
    "turmeric": ("tumeric", "haldi"),
    "cumin": ("jeera",),
    "chili": ("chilli", "chile", "chilies", "chillies"),
    "jalapeno": ("jalapeño", "jalapenos", "jalapeños", "halapeno", "jalepeno"),
    "chipotle": ("chipotl", "chiptole"),
    "za'atar": ("zaatar", "zatar", "zahtar"),
    "sumac": ("sumak", "sumaq"),
    "garam masala": ("garam marsala", "garum masala"),
    "masala": ("massala",),
    # Condiments and sauces
    "gochujang": ("gochujangs", "korean chili paste", "kochujang"),
    "gochugaru": ("gochukaru", "kochugaru", "korean red pepper flakes"),
    "doenjang": ("doenjung", "dwenjang"),
    "soy sauce": ("soysauce", "soya sauce", "shoyu", "tamari"),
    "fish sauce": ("fishsauce", "nam pla", "nuoc mam"),
    "oyster sauce": ("oystersauce",),
    "hoisin sauce": ("hoisin", "hoisinsauce"),
    "worcestershire sauce": ("worcestershire", "worcester sauce"),
    "hot sauce": ("hotsauce",),
    "mayonnaise": ("mayo", "mayonaise"),
    "ketchup": ("catsup",),
    "tahini": ("tahina", "tehina", "sesame paste"),
    "harissa": ("harisa", "hrissa"),
    "sriracha": ("siracha", "sirracha"),
    "miso": ("miso paste",),
    "teriyaki": ("teryaki", "teriyaky"),
    "barbecue": ("barbeque", "bbq", "bar-b-q"),
    # Dairy
    "yogurt": ("yogurts", "yoghurt", "yoghurts"),
    "parmesan": ("parmigiano", "parmigiano reggiano", "parmigiano-reggiano"),
    "goat cheese": ("chevre", "chèvre"),
    "halloumi": ("haloumi", "hallumi"),
    "labneh": ("labne", "labaneh", "labni"),
    "paneer": ("panir", "paner"),
    "ghee": ("ghi", "clarified butter"),
    # Grains and breads
    "noodle": ("noodles",),
    "naan": ("nan bread", "nann", "naan bread"),
    "pita": ("pitta", "pita bread"),
    "tortilla": ("tortillas", "tortila", "tortiya"),
    "focaccia": ("focacia", "foccacia"),
    "gnocchi": ("gnochi",),
    "bulgur": ("bulgar", "burghul"),
    "panko": ("panko breadcrumbs",),
    # Oils
    "olive oil": ("oliveoil", "evoo", "extra virgin olive oil"),
    "sesame oil": ("sesameoil", "toasted sesame oil"),
    "coconut oil": ("coconutoil",),
    # Nuts and seeds
    "peanut butter": ("peanutbutter",),
    "flaxseed": ("flax seed", "flax seeds", "flaxseeds", "linseed"),
    "chia seed": ("chia seeds", "chia"),
    "pine nut": ("pine nuts", "pignoli"),
    # Dishes and regional staples
    "kofte": ("kofta", "köfte", "kufte", "kufta", "kefte", "kifta"),
    "hummus": ("humus", "houmous", "hommus"),
    "falafel": ("felafel", "falafil"),
    "shawarma": ("shawerma", "shwarma", "shoarma"),
    "baba ganoush": ("baba ghanoush", "baba ghanouj", "baba ganouj"),
    "tzatziki": ("tsatsiki", "tzaziki", "zaziki"),
    "gyro": ("gyros", "yiro", "yiros"),
    "kibbeh": ("kibbe", "kubbeh", "kubbe"),
    "fattoush": ("fattush", "fatoush"),
    "bulgogi": ("bulkogi", "bulgoki"),
    "bibimbap": ("bibimbop", "bi bim bap"),
    "char siu": ("charsiu", "char siew", "cha siu"),
    "biryani": ("biriyani", "briyani", "byriani"),
    "tikka": ("tikha",),
    "korma": ("kurma", "qorma"),
    "vindaloo": ("vindalu", "vindalho"),
    "samosa": ("samusa", "samoosa", "samosas"),
    "dal": ("daal", "dhal"),
    "pakora": ("pakoras", "bhaji", "bhajis"),
    "tandoori": ("tandori",),
    "quesadilla": ("quesadila", "quesidilla", "quesadillas"),
    "guacamole": ("guacamoli", "guac"),
    "burrito": ("burito", "buritto", "burritos"),
    "enchilada": ("enchilata", "enchiladas"),
    "mole": ("molé",),
    "taco": ("tacos",),
    "tamale": ("tamales",),
    "elote": ("elotes", "mexican street corn"),
    "plantain": ("plantains", "platano", "platanos"),
    "bruschetta": ("bruchetta", "brushetta"),
    "prosciutto": ("proscuito", "prosciuto"),
    "acai": ("açaí", "acaí", "assai"),
    "ackee": ("akee",),
    "saltfish": ("salt cod", "bacalao", "bacalhau"),
    "oxtail": ("ox tail",),
    "soursop": ("guanabana", "graviola"),
    "papaya": ("pawpaw", "papaw"),
    "guava": ("guayaba",),
}

QUALIFIERS: Tuple[str, ...] = (
    "fresh ", "dried ", "dry ", "ground ", "crushed ", "chopped ",
    "diced ", "minced ", "sliced ", "grated ", "shredded ", "frozen ",
    "canned ", "roasted ", "toasted ", "smoked ", "raw ", "cooked ",
    "organic ", "extra virgin ", "light ", "dark ", "hot ", "cold ",
    "large ", "small ", "medium ", "whole ", "half ", "baby ",
)

_WHITESPACE_RE = re.compile(r"\s+")


def _clean(name: str) -> str:
    return _WHITESPACE_RE.sub(" ", name.casefold()).strip()


def _build_reverse_lookup() -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for canonical, variants in ALIAS_TABLE.items():
        lookup[canonical] = canonical
        for variant in variants:
            lookup.setdefault(_clean(variant), canonical)
    return lookup


_REVERSE_LOOKUP = _build_reverse_lookup()


def canonical_name(name: str) -> Optional[str]:
    """Return the canonical form for a known name or variant, else ``None``."""
    return _REVERSE_LOOKUP.get(_clean(name))


def variants_for(name: str) -> List[str]:
    """Return the canonical name plus every variant in its alias group.

    ``name`` may be either the canonical form or one of its variants; an
    unknown name yields an empty list.
    """
    canonical = canonical_name(name)
    if canonical is None:
        return []
    return [canonical, *ALIAS_TABLE[canonical]]


def normalize_ingredient(name: str) -> str:
    """Normalize an ingredient name to its canonical alias-table form.

    Steps: direct lookup, then qualifier stripping ("fresh basil"), then
    simple plural handling. Unknown names come back cleaned with a trailing
    plural ``s`` removed.
    """
    normalized = _clean(name)

    found = _REVERSE_LOOKUP.get(normalized)
    if found:
        return found

    for qualifier in QUALIFIERS:
        if normalized.startswith(qualifier):
            found = _REVERSE_LOOKUP.get(normalized[len(qualifier):])
            if found:
                return found

    if normalized.endswith("ies"):
        found = _REVERSE_LOOKUP.get(normalized[:-3] + "y")
        if found:
            return found
    if normalized.endswith("es"):
        found = _REVERSE_LOOKUP.get(normalized[:-2])
        if found:
            return found
    if normalized.endswith("s") and not normalized.endswith("ss"):
        singular = normalized[:-1]
        return _REVERSE_LOOKUP.get(singular, singular)

    return normalized


def get_alias_matches(query: str, limit: int = 10) -> List[str]:
    """Canonical names matching a partial query, best matches first."""
    needle = _clean(query)
    matches: List[str] = []
    if not needle:
        return matches

    for canonical in ALIAS_TABLE:
        if canonical.startswith(needle):
            matches.append(canonical)
            if len(matches) >= limit:
                return matches

    for canonical in ALIAS_TABLE:
        if canonical not in matches and needle in canonical:
            matches.append(canonical)
            if len(matches) >= limit:
                return matches

    for canonical, variants in ALIAS_TABLE.items():
        if canonical in matches:
            continue
        if any(needle in _clean(variant) for variant in variants):
            matches.append(canonical)
            if len(matches) >= limit:
                return matches

    return matches
