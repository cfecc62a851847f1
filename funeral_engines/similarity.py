"""
funeral_engines.similarity -- Duplicate contact detection.

Responsibility:
    Score how likely two contact records describe the same person and
    group likely duplicates into clusters for review or merge.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The contact service maps
    ``Contact`` entities to ``ContactFingerprint`` values.

Scoring (0-100):
    - Name, 40 points: mean of the Levenshtein similarity of first and last
      names, scaled to 40.  Reason added when the mean exceeds 85%.
    - Email, 30 points: identical after trimming and lower-casing.
    - Phone, 30 points: identical digits-only phone numbers; 25 points when
      one record's phone equals the other's alternate phone.
    The final score is rounded half-up to an integer.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from funeral_kernel.logging_config import get_logger

logger = get_logger("engines.similarity")

NAME_WEIGHT = Decimal("40")
EMAIL_WEIGHT = Decimal("30")
PHONE_WEIGHT = Decimal("30")
ALTERNATE_PHONE_WEIGHT = Decimal("25")
NAME_REASON_THRESHOLD = Decimal("85")

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class ContactFingerprint:
    key: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    alternate_phone: str | None = None


@dataclass(frozen=True)
class SimilarityScore:
    score: int
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class DuplicatePair:
    source_key: str
    match_key: str
    score: int
    reasons: tuple[str, ...]


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit costs for insert, delete and substitute."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> int:
    """Case-insensitive similarity percentage, 100 for identical strings."""
    s1 = a.lower().strip()
    s2 = b.lower().strip()
    if s1 == s2:
        return 100
    longest = max(len(s1), len(s2))
    distance = levenshtein_distance(s1, s2)
    return _round_half_up(Decimal(longest - distance) / Decimal(longest) * 100)


def normalize_email(email: str | None) -> str | None:
    if not email:
        return None
    return email.strip().lower() or None


def normalize_phone(phone: str | None) -> str | None:
    if not phone:
        return None
    return _NON_DIGITS.sub("", phone) or None


class SimilarityEngine:
    """Pairwise contact similarity and duplicate clustering."""

    def score(self, a: ContactFingerprint, b: ContactFingerprint) -> SimilarityScore:
        reasons: list[str] = []
        total = Decimal("0")

        name_sim = Decimal(
            string_similarity(a.first_name, b.first_name)
            + string_similarity(a.last_name, b.last_name)
        ) / 2
        total += name_sim / 100 * NAME_WEIGHT
        if name_sim > NAME_REASON_THRESHOLD:
            reasons.append(f"Similar name ({_round_half_up(name_sim)}% match)")

        email_a, email_b = normalize_email(a.email), normalize_email(b.email)
        if email_a and email_b and email_a == email_b:
            total += EMAIL_WEIGHT
            reasons.append("Identical email address")

        phone_a, phone_b = normalize_phone(a.phone), normalize_phone(b.phone)
        alt_a, alt_b = normalize_phone(a.alternate_phone), normalize_phone(b.alternate_phone)
        if phone_a and phone_b and phone_a == phone_b:
            total += PHONE_WEIGHT
            reasons.append("Identical phone number")
        elif phone_a and alt_b and phone_a == alt_b:
            total += ALTERNATE_PHONE_WEIGHT
            reasons.append("Phone matches alternate phone")
        elif alt_a and phone_b and alt_a == phone_b:
            total += ALTERNATE_PHONE_WEIGHT
            reasons.append("Alternate phone matches phone")

        max_score = NAME_WEIGHT + EMAIL_WEIGHT + PHONE_WEIGHT
        return SimilarityScore(
            score=_round_half_up(total / max_score * 100),
            reasons=tuple(reasons),
        )

    def matches_for(
        self,
        target: ContactFingerprint,
        others: Sequence[ContactFingerprint],
        min_score: int,
    ) -> list[DuplicatePair]:
        """Contacts similar to ``target``, best first."""
        pairs = []
        for other in others:
            if other.key == target.key:
                continue
            result = self.score(target, other)
            if result.score >= min_score:
                pairs.append(DuplicatePair(target.key, other.key, result.score, result.reasons))
        return sorted(pairs, key=lambda p: p.score, reverse=True)

    def all_pairs(
        self,
        contacts: Sequence[ContactFingerprint],
        min_score: int,
    ) -> list[DuplicatePair]:
        """Every similar pair, reported in both directions, best first."""
        pairs: list[DuplicatePair] = []
        for i, a in enumerate(contacts):
            for b in contacts[i + 1:]:
                result = self.score(a, b)
                if result.score >= min_score:
                    pairs.append(DuplicatePair(a.key, b.key, result.score, result.reasons))
                    pairs.append(DuplicatePair(b.key, a.key, result.score, result.reasons))
        pairs.sort(key=lambda p: p.score, reverse=True)
        logger.debug("duplicate_pairs_scored", extra={
            "contact_count": len(contacts),
            "pair_count": len(pairs) // 2,
        })
        return pairs

    def clusters(self, pairs: Sequence[DuplicatePair]) -> list[list[str]]:
        """Connected components (size >= 2) of the duplicate graph, keys sorted."""
        parent: dict[str, str] = {}

        def find(key: str) -> str:
            parent.setdefault(key, key)
            while parent[key] != key:
                parent[key] = parent[parent[key]]
                key = parent[key]
            return key

        for pair in pairs:
            root_a, root_b = find(pair.source_key), find(pair.match_key)
            if root_a != root_b:
                parent[root_b] = root_a

        groups: dict[str, list[str]] = {}
        for key in parent:
            groups.setdefault(find(key), []).append(key)
        return sorted(
            (sorted(members) for members in groups.values() if len(members) >= 2),
            key=lambda members: members[0],
        )


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
