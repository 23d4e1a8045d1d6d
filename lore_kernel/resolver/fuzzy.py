"""
Fuzzy Resolver — layered query-to-owner resolution over a Name Index.

Stages, tried in order, first success wins:
  1. Exact:          direct index lookup; an ambiguous entry is a miss
  2. Morphological:  strip one inflectional suffix, look the stem up in the
                     stem index (built once from every index key)
  3. Alternation:    undo a stem consonant alternation, then retry stage 2
  4. Fuzzy:          Levenshtein distance through a BK-tree, accepted only
                     within the length-scaled threshold of the matched key

Ties at stage 4 are broken by smallest distance, then shortest key, then
lexicographic key; the other owners tied at that distance are reported as
alternatives. A query that names a key or stem shared by several owners stops
before stage 4, so a nearby unrelated key never stands in for it. A miss at
every stage is Unresolved, not an error.

The resolver only reads the index. Its query cache is guarded by a lock so one
resolver can serve concurrent callers.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from lore_kernel.models.config import RegistryConfig
from lore_kernel.models.identity import EntityRef, OwnerType
from lore_kernel.models.index import NamePriority
from lore_kernel.models.resolution import ConfidenceTier, ResolutionResult
from lore_kernel.name_index.index import NameIndex, normalize_key
from lore_kernel.resolver.bktree import BKTree
from lore_kernel.resolver.morphology import Morphology

logger = logging.getLogger(__name__)


def edit_distance(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


class FuzzyResolver:
    """Resolves free-text references against one built Name Index."""

    def __init__(self, index: NameIndex, config: Optional[RegistryConfig] = None):
        self.index = index
        self.config = config or index.config
        self.morphology = Morphology(
            self.config.inflection_suffixes,
            self.config.stem_alternations,
            self.config.min_stem_length,
        )

        keys = index.keys()
        self._max_key_length = max((len(k) for k in keys), default=0)
        self._stems = self._build_stem_index()
        self._bktree = BKTree(edit_distance, keys)

        self._cache: Dict[Tuple[str, Optional[OwnerType]], ResolutionResult] = {}
        self._cache_lock = threading.Lock()

    def _build_stem_index(self) -> Dict[str, Dict[NamePriority, List[EntityRef]]]:
        """stem → priority → distinct owners of every key with that stem."""
        stems: Dict[str, Dict[NamePriority, List[EntityRef]]] = {}
        for entry in self.index.entries():
            stem = self.morphology.stem(entry.key)
            tiers = stems.setdefault(stem, {})
            owners = tiers.setdefault(entry.priority, [])
            for owner in entry.owners:
                if owner not in owners:
                    owners.append(owner)
        return stems

    # --- Public API ---

    def resolve(self, query: str, owner_type: Optional[OwnerType] = None) -> ResolutionResult:
        cache_key = (query, owner_type)
        if self.config.cache_resolutions:
            with self._cache_lock:
                cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        result = self._resolve(query, owner_type)

        if self.config.cache_resolutions:
            with self._cache_lock:
                self._cache[cache_key] = result
        return result

    def resolve_many(
        self, queries: Iterable[str], owner_type: Optional[OwnerType] = None
    ) -> Dict[str, ResolutionResult]:
        return {q: self.resolve(q, owner_type) for q in queries}

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # --- Stages ---

    def _resolve(self, query: str, owner_type: Optional[OwnerType]) -> ResolutionResult:
        normalized = normalize_key(query)
        if not normalized:
            return ResolutionResult(query=query)

        for stage in (self._exact, self._morphological, self._alternation):
            result = stage(query, normalized, owner_type)
            if result is not None:
                return result

        if self._hits_ambiguous(normalized, owner_type):
            logger.debug("Ambiguous reference %r, not trying edit distance", query)
            return ResolutionResult(query=query)

        result = self._fuzzy(query, normalized, owner_type)
        if result is not None:
            return result

        logger.debug("Unresolved reference %r", query)
        return ResolutionResult(query=query)

    def _exact(self, query, normalized, owner_type) -> Optional[ResolutionResult]:
        entry = self.index.lookup(normalized, owner_type)
        if entry is None or entry.ambiguous:
            return None
        return ResolutionResult(
            query=query,
            owner=entry.owner,
            confidence=ConfidenceTier.EXACT,
            matched_key=entry.key,
        )

    def _stem_tier(self, stem: str, owner_type: Optional[OwnerType]) -> Optional[List[EntityRef]]:
        """
        Owners of a stem at its highest priority holding an owner of the
        requested kind. A tier shared by several owners is ambiguous even
        when only one of them has that kind.
        """
        tiers = self._stems.get(stem)
        if not tiers:
            return None
        for priority in sorted(tiers, reverse=True):
            owners = tiers[priority]
            if any(owner_type is None or o.owner_type == owner_type for o in owners):
                return owners
        return None

    def _lookup_stem(self, stem: str, owner_type: Optional[OwnerType]) -> Optional[EntityRef]:
        owners = self._stem_tier(stem, owner_type)
        if owners is None or len(owners) > 1:
            return None
        return owners[0]

    def _hits_ambiguous(self, normalized: str, owner_type: Optional[OwnerType]) -> bool:
        """Whether the query named a key or stem shared by several owners."""
        entry = self.index.lookup(normalized)
        if entry is not None and entry.ambiguous:
            if owner_type is None or any(o.owner_type == owner_type for o in entry.owners):
                return True
        for phrase in [normalized] + self.morphology.base_forms(normalized):
            for stem in self.morphology.stem_candidates(phrase):
                owners = self._stem_tier(stem, owner_type)
                if owners is not None and len(owners) > 1:
                    return True
        return False

    def _stem_stage(
        self, query: str, phrase: str, owner_type: Optional[OwnerType]
    ) -> Optional[ResolutionResult]:
        for stem in self.morphology.stem_candidates(phrase):
            owner = self._lookup_stem(stem, owner_type)
            if owner is not None:
                return ResolutionResult(
                    query=query,
                    owner=owner,
                    confidence=ConfidenceTier.MORPHOLOGICAL,
                    matched_key=stem,
                )
        return None

    def _morphological(self, query, normalized, owner_type) -> Optional[ResolutionResult]:
        return self._stem_stage(query, normalized, owner_type)

    def _alternation(self, query, normalized, owner_type) -> Optional[ResolutionResult]:
        for form in self.morphology.base_forms(normalized):
            result = self._stem_stage(query, form, owner_type)
            if result is not None:
                return result
        return None

    def _search_radius(self, query_length: int) -> int:
        """Largest threshold any key close enough in length could allow."""
        divisor = self.config.fuzzy_length_divisor
        if divisor > 1:
            longest = min(self._max_key_length, query_length * divisor // (divisor - 1))
        else:
            longest = self._max_key_length
        return max(
            self.config.fuzzy_short_key_max_distance,
            self.config.fuzzy_threshold(longest),
        )

    def _fuzzy(self, query, normalized, owner_type) -> Optional[ResolutionResult]:
        candidates = []
        radius = self._search_radius(len(normalized))
        for distance, key in self._bktree.search(normalized, radius):
            threshold = self.config.fuzzy_threshold(len(key))
            if abs(len(key) - len(normalized)) > threshold or distance > threshold:
                continue
            entry = self.index.lookup(key, owner_type)
            if entry is None or entry.ambiguous:
                continue
            candidates.append((distance, len(key), key, entry.owner))

        if not candidates:
            return None

        candidates.sort(key=lambda c: c[:3])
        best_distance, _, best_key, best_owner = candidates[0]
        alternatives = []
        for distance, _, _, owner in candidates[1:]:
            if distance == best_distance and owner != best_owner and owner not in alternatives:
                alternatives.append(owner)

        if alternatives:
            logger.debug(
                "Fuzzy tie for %r at distance %d: %s and %d others",
                query, best_distance, best_key, len(alternatives),
            )
        return ResolutionResult(
            query=query,
            owner=best_owner,
            confidence=ConfidenceTier.FUZZY,
            matched_key=best_key,
            distance=best_distance,
            alternatives=alternatives,
        )
