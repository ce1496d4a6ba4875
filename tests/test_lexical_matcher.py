from ingredient_aliases import canonical_name, get_alias_matches, normalize_ingredient, variants_for
from lexical_matcher import fuzzy_threshold, levenshtein_distance, matched_terms, matches


def test_substring_match_is_case_insensitive():
    assert matches("Salmon", "Crispy SALMON bites")
    assert not matches("salmon", "Crispy tuna bites")


def test_space_stripped_match():
    assert matches("soy sauce", "Homemade SOYSAUCE glaze")


def test_compound_match_is_order_independent():
    assert matches("soy sauce", "sauce made with soy")


def test_compound_match_needs_both_parts():
    assert not matches("soy sauce", "a sauce for dumplings")


def test_alias_match_from_canonical_and_variant():
    assert matches("hummus", "Easy houmous recipe")
    assert matches("kofta", "Turkish köfte kebabs")
    assert matches("soy sauce", "glazed with shoyu")


def test_fuzzy_match_tolerates_typos_on_long_words():
    assert matches("gochujang", "gochujung sauce")


def test_fuzzy_threshold_is_tight_for_short_words():
    assert fuzzy_threshold("tofu") == 1
    assert fuzzy_threshold("salmon") == 2
    assert matches("tofu", "tofo stir fry")
    assert not matches("soy", "sky")


def test_fuzzy_never_applies_to_multi_word_terms():
    assert not matches("green onion", "gren oinon pancakes")


def test_empty_inputs_never_match():
    assert not matches("", "anything")
    assert not matches("salmon", "")


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0
    assert levenshtein_distance("kitten", "sitting", max_distance=1) == 2


def test_matched_terms_keeps_order():
    assert matched_terms(["tofu", "kimchi", "salmon"], "salmon and tofu bowl") == ["tofu", "salmon"]


def test_alias_lookup_is_bidirectional():
    assert canonical_name("Shoyu") == "soy sauce"
    assert canonical_name("soy sauce") == "soy sauce"
    assert canonical_name("unobtainium") is None
    assert variants_for("kofta")[0] == "kofte"
    assert variants_for("unobtainium") == []


def test_normalize_ingredient_strips_qualifiers_and_plurals():
    assert normalize_ingredient("  Fresh  Tahini ") == "tahini"
    assert normalize_ingredient("Prawns") == "shrimp"
    assert normalize_ingredient("jalapenos") == "jalapeno"
    assert normalize_ingredient("carrotss") == "carrotss"


def test_get_alias_matches_prefers_prefix_hits():
    results = get_alias_matches("goch")
    assert results[0] == "gochujang"
    assert get_alias_matches("") == []
    assert len(get_alias_matches("a", limit=3)) == 3
