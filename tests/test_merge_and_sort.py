from services.availability.merge import merge
from services.availability.sorting import french_collation_key, sort_records
from services.availability.types import AccessType


def test_primary_wins_on_shared_key(make_record):
    primary = [make_record("FR", "Canal+", streaming_url="https://canal.test/1", source="streaming-availability")]
    secondary = [
        make_record("FR", "Canal+", streaming_url="https://tmdb.test/1", has_french_subtitles=True, source="tmdb-watch-providers"),
        make_record("FR", "Netflix", source="tmdb-watch-providers"),
    ]
    merged = merge(primary, secondary)
    assert [(r.platform, r.source) for r in merged] == [
        ("Canal+", "streaming-availability"),
        ("Netflix", "tmdb-watch-providers"),
    ]
    assert merged[0].streaming_url == "https://canal.test/1"
    assert merged[0].has_french_subtitles is False


def test_every_identity_field_separates_offers(make_record):
    base = make_record("FR", "Netflix")
    variants = [
        base,
        base.with_changes(country_code="BE"),
        base.with_changes(platform="Max"),
        base.with_changes(access_type=AccessType.rent),
        base.with_changes(quality="uhd"),
        base.with_changes(season_number=1),
        base.with_changes(addon_label="OCS"),
    ]
    assert len(merge(variants, [])) == len(variants)


def test_first_duplicate_within_primary_wins(make_record):
    a = make_record("FR", "Netflix", streaming_url="https://a")
    b = make_record("FR", "Netflix", streaming_url="https://b")
    assert [r.streaming_url for r in merge([a, b], [])] == ["https://a"]


def test_priority_countries_first_then_french_names(make_record):
    recs = [make_record(c) for c in ("US", "FR", "DE", "CA", "BE")]
    assert [r.country_code for r in sort_records(recs)] == ["FR", "BE", "CA", "DE", "US"]


def test_accents_do_not_push_names_to_the_end(make_record):
    recs = [make_record(c) for c in ("US", "ES", "AE", "EG", "DE")]
    # Allemagne, Égypte, Émirats arabes unis, Espagne, États-Unis
    assert [r.country_code for r in sort_records(recs)] == ["DE", "EG", "AE", "ES", "US"]


def test_sort_is_stable_within_a_country(make_record):
    recs = [make_record("DE", "Netflix"), make_record("FR", "Max"), make_record("FR", "Arte"), make_record("DE", "ADN")]
    assert [(r.country_code, r.platform) for r in sort_records(recs)] == [
        ("FR", "Max"), ("FR", "Arte"), ("DE", "Netflix"), ("DE", "ADN"),
    ]


def test_collation_key():
    assert french_collation_key("Émirats arabes unis")[0] == "emirats arabes unis"
    assert french_collation_key("") == ("", "")
