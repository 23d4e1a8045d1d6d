"""Tests for the Fuzzy Resolver, its morphology and the BK-tree."""

from concurrent.futures import ThreadPoolExecutor

from lore_kernel.models.config import RegistryConfig
from lore_kernel.models.entity import Attribute, Entity, EntityType
from lore_kernel.models.identity import OwnerType, Player
from lore_kernel.models.resolution import ConfidenceTier
from lore_kernel.models.temporal import TimeScoped
from lore_kernel.name_index.index import NameIndex
from lore_kernel.resolver.bktree import BKTree
from lore_kernel.resolver.fuzzy import FuzzyResolver, edit_distance
from lore_kernel.resolver.morphology import Morphology


def _make_entity(name, entity_type=EntityType.NPC, aliases=()):
    entity = Entity(name=name, entity_type=entity_type)
    for alias in aliases:
        entity.append(Attribute.ALIAS, TimeScoped[str](value=alias))
    return entity


def _make_resolver(entities, players=None, **config) -> FuzzyResolver:
    cfg = RegistryConfig(**config)
    return FuzzyResolver(NameIndex(entities, players, config=cfg), cfg)


def _campaign():
    return [
        _make_entity("Sandro"),
        _make_entity("Korm Blackhand"),
        _make_entity("Piotr"),
        _make_entity("Xeron"),
        _make_entity("Erathia", EntityType.LOCATION),
    ]


class TestMorphology:
    def setup_method(self):
        config = RegistryConfig()
        self.morph = Morphology(
            config.inflection_suffixes, config.stem_alternations, config.min_stem_length
        )

    def test_longest_suffix_first(self):
        assert self.morph.strips("xeronie") == ["xeron", "xeroni"]

    def test_stem_respects_minimum_length(self):
        assert Morphology(["a"], [], 3).strips("ala") == []
        assert Morphology(["a"], [], 2).strips("ala") == ["al"]

    def test_stem_phrase_word_by_word(self):
        assert self.morph.stem("mroczny mag") == "mroczn mag"

    def test_stem_candidates_end_with_word(self):
        assert self.morph.stem_candidates("sandrem") == ["sandr", "sandrem"]

    def test_base_forms_reverse_alternation(self):
        assert self.morph.base_forms("piotrze") == ["piotr"]
        assert self.morph.base_forms("stary piotrze") == ["stary piotr"]
        assert self.morph.base_forms("sandro") == []


class TestBKTree:
    def test_search_within_radius(self):
        tree = BKTree(edit_distance, ["sandro", "sandor", "korm", "xeron"])
        assert tree.search("sandro", 0) == [(0, "sandro")]
        assert tree.search("sandro", 2) == [(0, "sandro"), (2, "sandor")]

    def test_duplicates_are_ignored(self):
        tree = BKTree(edit_distance, ["korm", "korm", "kurm"])
        assert len(tree) == 2

    def test_empty_tree(self):
        assert BKTree(edit_distance).search("x", 3) == []


class TestExactStage:
    def test_full_name(self):
        result = _make_resolver(_campaign()).resolve("Sandro")
        assert result.owner.name == "Sandro"
        assert result.confidence == ConfidenceTier.EXACT
        assert result.matched_key == "sandro"

    def test_token(self):
        result = _make_resolver(_campaign()).resolve("Korm")
        assert result.owner.name == "Korm Blackhand"
        assert result.confidence == ConfidenceTier.EXACT

    def test_player(self):
        result = _make_resolver([], players=[Player(name="Kasia")]).resolve("kasia")
        assert result.owner.is_player is True
        assert result.owner.owner_type == OwnerType.PLAYER


class TestMorphologicalStage:
    def test_suffix_stripping(self):
        resolver = _make_resolver(_campaign())
        for query, name in [("Sandrem", "Sandro"), ("Xeronie", "Xeron"), ("Erathii", "Erathia")]:
            result = resolver.resolve(query)
            assert result.owner.name == name, query
            assert result.confidence == ConfidenceTier.MORPHOLOGICAL

    def test_stem_alternation(self):
        result = _make_resolver(_campaign()).resolve("Piotrze")
        assert result.owner.name == "Piotr"
        assert result.confidence == ConfidenceTier.MORPHOLOGICAL
        assert result.matched_key == "piotr"

    def test_inflected_player_name(self):
        result = _make_resolver([], players=[Player(name="Kasia")]).resolve("Kasią")
        assert result.owner.name == "Kasia"
        assert result.confidence == ConfidenceTier.MORPHOLOGICAL


class TestFuzzyStage:
    def test_within_threshold(self):
        result = _make_resolver(_campaign()).resolve("Sandor")
        assert result.owner.name == "Sandro"
        assert result.confidence == ConfidenceTier.FUZZY
        assert result.distance == 2

    def test_short_key_threshold(self):
        resolver = _make_resolver(_campaign())
        assert resolver.resolve("Kurm").owner.name == "Korm Blackhand"
        assert resolver.resolve("Kxrq").resolved is False

    def test_token_match_before_edit_distance(self):
        resolver = _make_resolver([_make_entity("Xeron Demonlord")])
        result = resolver.resolve("Xeron")
        assert result.confidence == ConfidenceTier.EXACT
        assert result.owner.name == "Xeron Demonlord"

    def test_threshold_scales_with_key_length(self):
        resolver = _make_resolver([_make_entity("Xeron Demonlord")])
        close = resolver.resolve("Demonlort")
        assert close.confidence == ConfidenceTier.FUZZY
        assert close.distance == 1
        assert resolver.resolve("Dxmxnxorx").resolved is False

    def test_tie_breaks_lexicographically_with_alternatives(self):
        resolver = _make_resolver([_make_entity("Tomek"), _make_entity("Tomak")])
        result = resolver.resolve("Tomik")
        assert result.owner.name == "Tomak"
        assert result.matched_key == "tomak"
        assert [a.name for a in result.alternatives] == ["Tomek"]

    def test_far_query_is_unresolved(self):
        result = _make_resolver(_campaign()).resolve("Zzzzzzzzzz")
        assert result.resolved is False
        assert result.confidence is None
        assert result.owner is None


class TestAmbiguityAndOwnerType:
    def test_ambiguous_name_is_unresolved(self):
        resolver = _make_resolver([
            _make_entity("Vidomina", aliases=["Mroczny Mag"]),
            _make_entity("Thant", aliases=["Mroczny Mag"]),
        ])
        assert resolver.resolve("Mroczny Mag").resolved is False

    def test_owner_type_does_not_disambiguate(self):
        resolver = _make_resolver([
            _make_entity("Sandro", aliases=["Mag"]),
            _make_entity("Wieża", EntityType.LOCATION, aliases=["Mag"]),
        ])
        assert resolver.resolve("Mag", OwnerType.LOCATION).resolved is False

    def test_ambiguous_alias_does_not_fall_through_to_near_key(self):
        resolver = _make_resolver([
            _make_entity("Sandro", aliases=["Mag"]),
            _make_entity("Vidomina", aliases=["Mag"]),
            _make_entity("Max"),
        ])
        result = resolver.resolve("Mag")
        assert result.resolved is False
        assert resolver.resolve("Mxx").owner.name == "Max"

    def test_ambiguous_stem_does_not_fall_through_to_near_key(self):
        resolver = _make_resolver([
            _make_entity("Sandro"),
            _make_entity("Sandra"),
        ])
        # "sandra" and "sandro" share the stem "sandr"
        assert resolver.resolve("Sandrą").resolved is False

    def test_owner_type_restricts_matches(self):
        resolver = _make_resolver(_campaign())
        assert resolver.resolve("Erathia", OwnerType.NPC).resolved is False
        result = resolver.resolve("Erathia", OwnerType.LOCATION)
        assert result.confidence == ConfidenceTier.EXACT

    def test_blank_query(self):
        assert _make_resolver(_campaign()).resolve("   ").resolved is False


class TestCaching:
    def test_results_are_cached(self):
        resolver = _make_resolver(_campaign())
        first = resolver.resolve("Sandrem")
        assert resolver.resolve("Sandrem") is first
        resolver.clear_cache()
        again = resolver.resolve("Sandrem")
        assert again is not first
        assert again == first

    def test_cache_can_be_disabled(self):
        resolver = _make_resolver(_campaign(), cache_resolutions=False)
        assert resolver.resolve("Sandro") is not resolver.resolve("Sandro")

    def test_resolve_many(self):
        results = _make_resolver(_campaign()).resolve_many(["Sandro", "Piotrze", "Nikt"])
        assert results["Sandro"].resolved
        assert results["Piotrze"].owner.name == "Piotr"
        assert not results["Nikt"].resolved

    def test_concurrent_resolution(self):
        resolver = _make_resolver(_campaign())
        queries = ["Sandrem", "Korm", "Piotrze", "Sandor", "Xeronie"] * 20
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(resolver.resolve, queries))
        names = [r.owner.name for r in results[:5]]
        assert names == ["Sandro", "Korm Blackhand", "Piotr", "Sandro", "Xeron"]
        assert all(r.resolved for r in results)
