"""
Resolve a free-form skill name (from a document or the LLM) to a stored skill.

Tiers are tried in order and the first tier that produces a hit wins:

1. ALIAS          – candidate is a known alias of a stored name
2. EXACT          – case-insensitive equality
3. SUBSTRING      – normalized containment in either direction
4. TOKEN_OVERLAP  – fuzzy word overlap, symmetric coverage ≥ threshold

Tiers 1–3 return the first hit in list order.  Tier 4 returns the skill with
the highest coverage, keeping list order on ties.  Which skills are offered
(e.g. only those without steps) is up to the caller.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from skillsmatrix.config import settings
from skillsmatrix.services.skill_catalog import KNOWN_ALIASES
from skillsmatrix.utils.helpers import name_tokens, normalize_dashes, normalize_skill_name

logger = logging.getLogger(__name__)

# Two tokens sharing this many leading characters count as the same word
_PREFIX_LENGTH = 4


class MatchTier(str, enum.Enum):
    ALIAS = "alias"
    EXACT = "exact"
    SUBSTRING = "substring"
    TOKEN_OVERLAP = "token_overlap"


ALL_TIERS: Tuple[MatchTier, ...] = (
    MatchTier.ALIAS,
    MatchTier.EXACT,
    MatchTier.SUBSTRING,
    MatchTier.TOKEN_OVERLAP,
)


@dataclasses.dataclass
class MatcherConfig:
    """Matching policy. The defaults reproduce the four-tier search without aliases."""

    explicit_mappings: Mapping[str, str] = dataclasses.field(default_factory=dict)
    tiers: Sequence[MatchTier] = ALL_TIERS
    token_min_length: int = 4
    overlap_threshold: float = 0.6
    # Alternative absolute rule: at least this many candidate words matched
    min_shared_words: Optional[int] = None

    @classmethod
    def from_settings(cls, tiers: Sequence[MatchTier] = ALL_TIERS) -> "MatcherConfig":
        return cls(
            explicit_mappings=dict(KNOWN_ALIASES) if settings.USE_BUILTIN_ALIASES else {},
            tiers=tiers,
            token_min_length=settings.TOKEN_MIN_LENGTH,
            overlap_threshold=settings.TOKEN_OVERLAP_THRESHOLD,
            min_shared_words=settings.TOKEN_OVERLAP_MIN_WORDS,
        )


@dataclasses.dataclass
class MatchResult:
    skill: Any
    tier: MatchTier
    coverage: float = 1.0


def _alias_key(name: str) -> str:
    return normalize_dashes(name).strip().lower()


def tokens_match(a: str, b: str) -> bool:
    """Fuzzy word equality: containment either way or a shared 4-char prefix."""
    if a in b or b in a:
        return True
    return len(a) >= _PREFIX_LENGTH and len(b) >= _PREFIX_LENGTH and a[:_PREFIX_LENGTH] == b[:_PREFIX_LENGTH]


def _covered(tokens: List[str], others: List[str]) -> int:
    return sum(1 for t in tokens if any(tokens_match(t, o) for o in others))


def token_coverage(candidate_tokens: List[str], stored_tokens: List[str]) -> Tuple[float, int]:
    """
    Symmetric token coverage of two names.

    Returns ``(coverage, shared)`` where coverage is the smaller of the two
    per-name matched fractions and shared is the number of candidate tokens
    that matched.
    """
    if not candidate_tokens or not stored_tokens:
        return 0.0, 0
    shared = _covered(candidate_tokens, stored_tokens)
    candidate_cov = shared / len(candidate_tokens)
    stored_cov = _covered(stored_tokens, candidate_tokens) / len(stored_tokens)
    return min(candidate_cov, stored_cov), shared


class SkillMatcher:
    """Configurable name matcher over objects that expose a ``name`` attribute."""

    def __init__(self, config: Optional[MatcherConfig] = None) -> None:
        self.config = config or MatcherConfig()
        self._aliases: Dict[str, str] = {
            _alias_key(alias): target for alias, target in self.config.explicit_mappings.items()
        }

    def match(self, candidate: str, skills: Sequence[Any]) -> Optional[Any]:
        """Return the best-matching skill for *candidate*, or None."""
        result = self.match_with_tier(candidate, skills)
        return result.skill if result else None

    def match_with_tier(self, candidate: str, skills: Sequence[Any]) -> Optional[MatchResult]:
        """Like match(), but also report which tier produced the hit."""
        if not candidate or not normalize_skill_name(candidate):
            return None

        pool = [s for s in skills if s.name and s.name.strip()]
        if not pool:
            return None

        for tier in self.config.tiers:
            if tier == MatchTier.ALIAS:
                result = self._match_alias(candidate, pool)
            elif tier == MatchTier.EXACT:
                result = self._match_exact(candidate, pool)
            elif tier == MatchTier.SUBSTRING:
                result = self._match_substring(candidate, pool)
            else:
                result = self._match_tokens(candidate, pool)

            if result is not None:
                logger.debug(
                    "match: %r -> %r via %s", candidate, result.skill.name, result.tier.value
                )
                return result

        logger.debug("match: no match for %r among %d skill(s)", candidate, len(pool))
        return None

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def _match_alias(self, candidate: str, pool: List[Any]) -> Optional[MatchResult]:
        target = self._aliases.get(_alias_key(candidate))
        if target is None:
            return None
        target_key = _alias_key(target)
        for skill in pool:
            if _alias_key(skill.name) == target_key:
                return MatchResult(skill=skill, tier=MatchTier.ALIAS)
        return None

    @staticmethod
    def _match_exact(candidate: str, pool: List[Any]) -> Optional[MatchResult]:
        lowered = candidate.lower()
        for skill in pool:
            if skill.name.lower() == lowered:
                return MatchResult(skill=skill, tier=MatchTier.EXACT)
        return None

    @staticmethod
    def _match_substring(candidate: str, pool: List[Any]) -> Optional[MatchResult]:
        needle = normalize_skill_name(candidate)
        for skill in pool:
            stored = normalize_skill_name(skill.name)
            if stored and (stored in needle or needle in stored):
                return MatchResult(skill=skill, tier=MatchTier.SUBSTRING)
        return None

    def _match_tokens(self, candidate: str, pool: List[Any]) -> Optional[MatchResult]:
        min_length = self.config.token_min_length
        candidate_tokens = name_tokens(candidate, min_length)
        if not candidate_tokens:
            return None

        best: Optional[MatchResult] = None
        for skill in pool:
            coverage, shared = token_coverage(candidate_tokens, name_tokens(skill.name, min_length))
            qualifies = coverage >= self.config.overlap_threshold or (
                self.config.min_shared_words is not None
                and shared >= self.config.min_shared_words
            )
            if qualifies and (best is None or coverage > best.coverage):
                best = MatchResult(skill=skill, tier=MatchTier.TOKEN_OVERLAP, coverage=coverage)
        return best
