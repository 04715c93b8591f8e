"""Tests for the tiered skill name matcher."""
from types import SimpleNamespace

import pytest

from skillsmatrix.services.skill_catalog import KNOWN_ALIASES
from skillsmatrix.services.skill_matcher import (
    MatcherConfig,
    MatchTier,
    SkillMatcher,
    token_coverage,
    tokens_match,
)
from skillsmatrix.utils.helpers import name_tokens, normalize_skill_name


def _skills(*names):
    return [SimpleNamespace(id=i, name=name) for i, name in enumerate(names, start=1)]


STORED = _skills(
    "Hand Washing",
    "Intravenous Cannulation",
    "Adult Endotracheal Intubation (ETT)",
    "Application of a Triangular Bandage",
    "Needle Thoracentesis",
)


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------

def test_normalize_skill_name_strips_punctuation_and_accents():
    assert normalize_skill_name("  Intubation – Adult (ETT) ") == "intubation adult ett"
    assert normalize_skill_name("Crème_Brûlée") == "creme brulee"
    assert normalize_skill_name("") == ""


def test_name_tokens_drops_short_words_and_duplicates():
    assert name_tokens("Application of a Bandage, bandage") == ["application", "bandage"]


def test_tokens_match_by_containment_or_prefix():
    assert tokens_match("intubation", "intubat")
    assert tokens_match("cannula", "cannulation")
    assert tokens_match("thoracocentesis", "thoracentesis")
    assert not tokens_match("adult", "infant")


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("skill", STORED, ids=lambda s: s.name)
def test_case_insensitive_equal_name_returns_that_skill(skill):
    matcher = SkillMatcher()
    for candidate in (skill.name, skill.name.upper(), skill.name.lower()):
        result = matcher.match_with_tier(candidate, STORED)
        assert result.skill is skill
        assert result.tier == MatchTier.EXACT


def test_exact_match_wins_over_earlier_substring_hit():
    skills = _skills("Adult CPR with Manual defibrillator", "Adult CPR")
    assert SkillMatcher().match("adult cpr", skills).id == 2


def test_normalized_substring_of_one_stored_name():
    result = SkillMatcher().match_with_tier("Cannulation", STORED)
    assert result.skill.name == "Intravenous Cannulation"
    assert result.tier == MatchTier.SUBSTRING


def test_stored_name_contained_in_candidate():
    result = SkillMatcher().match_with_tier("Intravenous Cannulation (IV)", STORED)
    assert result.skill.name == "Intravenous Cannulation"
    assert result.tier == MatchTier.SUBSTRING


def test_substring_ambiguity_keeps_list_order():
    skills = _skills("Adult Choking", "Infant Choking")
    assert SkillMatcher().match("Choking", skills).id == 1


def test_no_shared_tokens_returns_none():
    assert SkillMatcher().match("Pelvic Binder", STORED) is None
    assert SkillMatcher().match("Splinting Fracture", STORED) is None


def test_token_overlap_matches_reordered_names():
    # Neither normalized name contains the other
    skills = _skills("Intubation – Adult")
    result = SkillMatcher().match_with_tier("Adult Endotracheal Intubation (ETT)", skills)
    assert result.tier == MatchTier.TOKEN_OVERLAP
    assert result.coverage == pytest.approx(2 / 3)


def test_token_overlap_is_order_independent():
    matcher = SkillMatcher()
    forward = matcher.match("Drug Administration", _skills("Administration of Drug"))
    backward = matcher.match("Administration of Drug", _skills("Drug Administration"))
    assert (forward is None) == (backward is None)
    assert forward is not None

    a, b = name_tokens("Drug Administration"), name_tokens("Administration of Drug")
    assert token_coverage(a, b)[0] == token_coverage(b, a)[0]


def test_token_overlap_below_threshold_is_rejected():
    skills = _skills("Adult Choking without the use of equipment")
    assert SkillMatcher().match("Adult Basic Life Support", skills) is None


def test_token_overlap_prefers_highest_coverage_then_list_order():
    skills = _skills(
        "Nasopharyngeal Airway",
        "Insertion of Nasopharyngeal Airway",
        "Airway Insertion Nasopharyngeal",
    )
    result = SkillMatcher(MatcherConfig(tiers=(MatchTier.TOKEN_OVERLAP,))).match_with_tier(
        "Nasopharyngeal Airway Insertion Technique", skills
    )
    # 1 covers half the candidate; 2 and 3 tie at three quarters
    assert result.skill.id == 2
    assert result.coverage == pytest.approx(0.75)


def test_min_shared_words_accepts_low_fraction():
    skills = _skills("Adult Choking without the use of equipment")
    config = MatcherConfig(tiers=(MatchTier.TOKEN_OVERLAP,), min_shared_words=2)
    assert SkillMatcher(config).match("Adult Choking Management Protocol Review", skills) is not None
    assert SkillMatcher(MatcherConfig(tiers=(MatchTier.TOKEN_OVERLAP,))).match(
        "Adult Choking Management Protocol Review", skills
    ) is None


def test_tier_order_is_configurable():
    skills = _skills("Intravenous Cannulation")
    config = MatcherConfig(tiers=(MatchTier.EXACT,))
    assert SkillMatcher(config).match("Cannulation", skills) is None


# ---------------------------------------------------------------------------
# Aliases
# ---------------------------------------------------------------------------

def test_alias_resolves_document_name():
    skills = _skills("Hand Washing", "Adult Endotracheal Intubation (ETT)")
    matcher = SkillMatcher(MatcherConfig(explicit_mappings=KNOWN_ALIASES))

    result = matcher.match_with_tier("Intubation - Adult", skills)
    assert result.skill.id == 2
    assert result.tier == MatchTier.ALIAS


def test_alias_ignores_dash_style_and_case():
    skills = _skills("Adult Endotracheal Intubation (ETT)")
    matcher = SkillMatcher(MatcherConfig(explicit_mappings=KNOWN_ALIASES))
    assert matcher.match("INTUBATION – ADULT", skills) is not None


def test_alias_to_missing_skill_falls_through():
    skills = _skills("Hand Washing Technique")
    matcher = SkillMatcher(MatcherConfig(explicit_mappings={"Handwashing": "Hand Washing"}))
    # Alias target absent; the fuzzy tier still finds it
    result = matcher.match_with_tier("Handwashing", skills)
    assert result.skill.id == 1
    assert result.tier == MatchTier.TOKEN_OVERLAP


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------

def test_empty_candidate_or_pool():
    matcher = SkillMatcher()
    assert matcher.match("", STORED) is None
    assert matcher.match("   ", STORED) is None
    assert matcher.match("(-)", STORED) is None
    assert matcher.match("Hand Washing", []) is None


def test_blank_stored_names_are_ignored():
    skills = _skills("", "  ", "Hand Washing")
    assert SkillMatcher().match("hand washing", skills).id == 3
