from __future__ import annotations

import pytest

from globepalette.names import (
    CountryNameMatcher,
    MatchStrategy,
    build_lookup_table,
    find_by_code,
    load_name_overrides,
    normalize_name,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("  Bosnia   and Herz. ", "bosnia and herz"),
        ("Côte d'Ivoire", "cte divoire"),
        ("Réunion", "runion"),
        ("Timor-Leste", "timorleste"),
        ("", ""),
        (None, ""),
        ("\tSouth\n\nSudan", "south sudan"),
    ],
)
def test_normalize_name(raw, expected):
    assert normalize_name(raw) == expected


def test_usa_resolves_through_override(reference_set):
    matcher = CountryNameMatcher()
    record, strategy = matcher.resolve_with_strategy("USA", reference_set)
    assert record is not None and record.cca3 == "USA"
    assert strategy is MatchStrategy.OVERRIDE


def test_usa_override_finds_common_name_too(make_country):
    # no partial/exact path could match "USA" against this record
    only = (make_country("United States of America", "USA", cca2="US", name_official="USA official"),)
    record, strategy = CountryNameMatcher().resolve_with_strategy("USA", only)
    assert record is only[0]
    assert strategy is MatchStrategy.OVERRIDE


def test_czech_republic_resolves_to_czechia(make_country):
    modern = (
        make_country("Slovakia", "SVK", name_official="Slovak Republic"),
        make_country("Czechia", "CZE", name_official="Czechia"),
    )
    record, strategy = CountryNameMatcher().resolve_with_strategy("Czech Republic", modern)
    assert record is modern[1]
    assert strategy is MatchStrategy.OVERRIDE


def test_override_without_target_falls_through_to_later_strategies(make_country):
    countries = (make_country("Great Britain Islands", "GBI"),)
    record, strategy = CountryNameMatcher().resolve_with_strategy("Great Britain", countries)
    assert record is countries[0]
    assert strategy is MatchStrategy.PARTIAL


def test_exact_match_is_case_insensitive(reference_set):
    record, strategy = CountryNameMatcher().resolve_with_strategy("fRANCE", reference_set)
    assert record.cca3 == "FRA"
    assert strategy is MatchStrategy.EXACT


def test_exact_match_on_official_name(reference_set):
    record, strategy = CountryNameMatcher().resolve_with_strategy("federal republic of germany", reference_set)
    assert record.cca3 == "DEU"
    assert strategy is MatchStrategy.EXACT


def test_normalized_match_ignores_punctuation(reference_set):
    record, strategy = CountryNameMatcher().resolve_with_strategy("Côte  d’Ivoire", reference_set)
    assert record.cca3 == "CIV"
    assert strategy is MatchStrategy.NORMALIZED


def test_partial_match_takes_first_in_reference_order(reference_set):
    # contained in Niger's official name, checked before Nigeria
    record, strategy = CountryNameMatcher().resolve_with_strategy("Republic of the Nige", reference_set)
    assert strategy is MatchStrategy.PARTIAL
    assert record.cca3 == "NER"


def test_partial_match_query_contains_candidate(reference_set):
    record, strategy = CountryNameMatcher().resolve_with_strategy("Metropolitan France", reference_set)
    assert record.cca3 == "FRA"
    assert strategy is MatchStrategy.PARTIAL


def test_partial_tie_break_follows_reference_order(make_country):
    first = make_country("Guinea", "GIN")
    second = make_country("Guinea-Bissau", "GNB")
    matcher = CountryNameMatcher()
    assert matcher.resolve("Guinea-Bissau Region", (first, second)) is first
    assert matcher.resolve("Guinea-Bissau Region", (second, first)) is second


def test_alt_spelling_match(reference_set):
    record, strategy = CountryNameMatcher().resolve_with_strategy("Deutschland", reference_set)
    assert record.cca3 == "DEU"
    assert strategy is MatchStrategy.ALT_SPELLING


def test_alt_spelling_match_ignores_accents(make_country):
    reunion = make_country("Reunion Island", "REU", alt_spellings=("RE", "Réunion"))
    record, strategy = CountryNameMatcher().resolve_with_strategy("Rèunion", (reunion,))
    assert record is reunion
    assert strategy is MatchStrategy.ALT_SPELLING


def test_fully_stripped_query_does_not_match_stripped_names(make_country):
    greece = make_country("Greece", "GRC", alt_spellings=("GR", "Ελλάδα"))
    assert CountryNameMatcher().resolve("中国", (greece,)) is None


def test_no_match_returns_none(reference_set):
    matcher = CountryNameMatcher()
    assert matcher.resolve("Atlantis", reference_set) is None
    assert matcher.resolve_with_strategy("Atlantis", reference_set) == (None, None)
    assert matcher.resolve("", reference_set) is None
    assert matcher.resolve(None, reference_set) is None
    assert matcher.resolve("France", ()) is None


def test_resolution_is_deterministic(reference_set):
    matcher = CountryNameMatcher()
    results = {matcher.resolve("Nige", reference_set).cca3 for _ in range(20)}
    assert results == {"NER"}


def test_extra_overrides_extend_builtin_table(make_country):
    countries = (make_country("DR Congo", "COD", name_official="Democratic Republic of the Congo"),)
    matcher = CountryNameMatcher({"Dem. Rep. Congo": "DR Congo"})
    record, strategy = matcher.resolve_with_strategy("Dem. Rep. Congo", countries)
    assert record is countries[0]
    assert strategy is MatchStrategy.OVERRIDE
    assert matcher.overrides["USA"] == "United States of America"


def test_find_by_code(reference_set):
    assert find_by_code("usa", reference_set).name_common == "United States"
    assert find_by_code("FR", reference_set).cca3 == "FRA"
    assert find_by_code("XXX", reference_set) is None
    assert find_by_code(None, reference_set) is None


def test_lookup_table_reaches_every_record(reference_set):
    table = build_lookup_table(reference_set)
    assert set(table.values()) == set(reference_set)
    assert table["usa"].cca3 == "USA"
    assert table["ivory coast"].cca3 == "CIV"
    assert table["czech republic"].cca3 == "CZE"
    assert table["deutschland"].cca3 == "DEU"


def test_lookup_table_first_record_keeps_shared_alias(make_country):
    a = make_country("Alpha", "AAA", alt_spellings=("Shared",))
    b = make_country("Beta", "BBB", alt_spellings=("Shared",))
    assert build_lookup_table((a, b))["shared"] is a


def test_load_name_overrides(tmp_path):
    path = tmp_path / "overrides.yaml"
    path.write_text('"Dem. Rep. Congo": "DR Congo"\n', encoding="utf-8")
    assert load_name_overrides(path) == {"Dem. Rep. Congo": "DR Congo"}
    assert load_name_overrides(tmp_path / "missing.yaml") == {}


def test_load_name_overrides_rejects_bad_shapes(tmp_path):
    path = tmp_path / "overrides.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_name_overrides(path)
    path.write_text('"Alias": 12\n', encoding="utf-8")
    with pytest.raises(ValueError):
        load_name_overrides(path)
