"""
Morphology — inflectional suffix stripping and stem alternation reversal.

Names in session notes are inflected ("Sandrem", "Piotrze", "Xeronie"); both
index keys and queries are reduced to stems before comparison.
"""

from typing import List, Sequence, Tuple


class Morphology:
    """Suffix stripping for one language, configured from RegistryConfig."""

    def __init__(
        self,
        suffixes: Sequence[str],
        alternations: Sequence[Tuple[str, str]],
        min_stem_length: int = 3,
    ):
        # Longest suffix first; equal lengths keep the configured order
        self.suffixes = sorted(
            dict.fromkeys(s.casefold() for s in suffixes if s),
            key=len,
            reverse=True,
        )
        self.alternations = sorted(
            ((i.casefold(), b.casefold()) for i, b in alternations if i),
            key=lambda rule: len(rule[0]),
            reverse=True,
        )
        self.min_stem_length = min_stem_length

    def strips(self, word: str) -> List[str]:
        """Every stem obtainable by stripping one suffix, longest suffix first."""
        stems = []
        for suffix in self.suffixes:
            if word.endswith(suffix):
                stem = word[: -len(suffix)]
                if len(stem) >= self.min_stem_length and stem not in stems:
                    stems.append(stem)
        return stems

    def stem_word(self, word: str) -> str:
        """Canonical stem of one word: longest valid strip, or the word itself."""
        stems = self.strips(word)
        return stems[0] if stems else word

    def stem(self, phrase: str) -> str:
        """Canonical stem of a (possibly multi-word) case-folded phrase."""
        return " ".join(self.stem_word(w) for w in phrase.split())

    def stem_candidates(self, phrase: str) -> List[str]:
        """
        Stems to try for a query. Single words yield every strip longest
        suffix first, then the word itself; phrases yield their canonical stem.
        """
        words = phrase.split()
        if len(words) != 1:
            return [self.stem(phrase)] if words else []
        candidates = self.strips(words[0])
        if words[0] not in candidates:
            candidates.append(words[0])
        return candidates

    def base_forms(self, phrase: str) -> List[str]:
        """Reverse stem alternations on the last word, one rule at a time."""
        head, _, last = phrase.rpartition(" ")
        forms = []
        for inflected, base in self.alternations:
            if last.endswith(inflected):
                word = last[: -len(inflected)] + base
                form = f"{head} {word}" if head else word
                if form not in forms:
                    forms.append(form)
        return forms
