import pytest

from services.availability.platforms import (
    PROVIDER_NAMES,
    SERVICE_NAMES,
    PlatformNormalizer,
    _parse_overrides,
    addon_platform,
)


normalizer = PlatformNormalizer()


@pytest.mark.parametrize("key,expected", sorted(SERVICE_NAMES.items()))
def test_every_service_key_maps_to_its_platform(key, expected):
    assert normalizer.normalize(key) == expected


@pytest.mark.parametrize("provider_id,expected", sorted(PROVIDER_NAMES.items()))
def test_every_provider_id_maps_to_its_platform(provider_id, expected):
    assert normalizer.normalize(provider_id) == expected
    assert normalizer.normalize(str(provider_id)) == expected


def test_one_platform_across_both_sources():
    assert normalizer.normalize("hbo") == normalizer.normalize(1899) == "Max"
    assert normalizer.normalize("mycanal", "MyCanal") == normalizer.normalize(381, "Canal+") == "Canal+"


def test_case_and_punctuation_insensitive_keys():
    assert normalizer.normalize("Netflix") == "Netflix"
    assert normalizer.normalize("Disney-Plus") == "Disney+"
    assert normalizer.normalize(" PRIME ") == "Amazon Prime"


def test_unknown_keys_fall_back_to_title_cased_names():
    assert normalizer.normalize("filmotv", "filmo tv") == "Filmo Tv"
    assert normalizer.normalize(99999, "Universciné") == "Universciné"
    assert normalizer.normalize("zatoo") == "Zatoo"
    # only first letters are touched
    assert normalizer.normalize("x", "ARTE boutique") == "ARTE Boutique"
    assert normalizer.normalize(None) == "Unknown"
    assert normalizer.normalize("", "  ") == "Unknown"


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Paramount Plus Addon", "Paramount+"),
        ("Canal+ via Amazon", "Canal+"),
        ("OCS Max", "OCS"),
        ("HBO Max Amazon Channel", "Max"),
        ("MGM+ Apple TV Channel", "MGM+"),
        ("Pass Warner", "Pass Warner"),
        ("Some Regional Sports Bundle", None),
        ("Cinemax", None),
        ("", None),
        (None, None),
    ],
)
def test_addon_allow_list(label, expected):
    assert addon_platform(label) == expected


def test_provider_overrides():
    assert _parse_overrides('{"1234": "Filmo", "x": "ignored"}') == {1234: "Filmo"}
    assert _parse_overrides("not json") == {}
    assert _parse_overrides(None) == {}
    custom = PlatformNormalizer(provider_names={**PROVIDER_NAMES, 8: "Netflix FR", 1234: "Filmo"})
    assert custom.normalize(1234) == "Filmo"
    assert custom.normalize(8) == "Netflix FR"


CANONICAL = sorted({*SERVICE_NAMES.values(), *PROVIDER_NAMES.values()})


@pytest.mark.parametrize("name", CANONICAL)
def test_canonical_names_map_to_themselves(name):
    assert normalizer.normalize("x", name) == name
    assert normalizer.normalize(name) == name


def test_spelled_out_name_merges_with_service_key():
    assert normalizer.normalize(99999, "BBC iPlayer") == normalizer.normalize("iplayer") == "BBC iPlayer"
    assert normalizer.normalize(99998, "bbc iplayer") == "BBC iPlayer"
