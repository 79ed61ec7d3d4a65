"""
Guest/podcast compatibility scoring.

match_score rates a mutual wishlist pair (both sides asked for each other).
compatibility rates an arbitrary guest/podcast pair for recommendations.
"""
from dataclasses import dataclass, field
from typing import Iterable, List


@dataclass
class MatchResult:
    score: int
    topic_overlap: List[str]
    total_topics: int
    budget_alignment: str


@dataclass
class Compatibility:
    score: int
    topic_score: float
    budget_score: float
    popularity_score: float
    recent_activity_score: float
    topic_matches: List[str] = field(default_factory=list)

    @property
    def budget_match(self) -> bool:
        return self.budget_score >= 60

    def factors(self) -> dict:
        return {
            "topicScore": self.topic_score,
            "budgetScore": self.budget_score,
            "popularityScore": self.popularity_score,
            "recentActivityScore": self.recent_activity_score,
        }


def _lower(topics: Iterable[str]) -> List[str]:
    return [str(t).lower() for t in topics or []]


def topic_overlap(topics: Iterable[str], other: Iterable[str]) -> List[str]:
    """Entries of `topics` that also appear in `other`, case-insensitively."""
    other_lower = set(_lower(other))
    return [t for t in topics or [] if str(t).lower() in other_lower]


def unique_topic_count(topics: Iterable[str], other: Iterable[str]) -> int:
    return len(set(_lower(topics)) | set(_lower(other)))


def budget_alignment(guest_offer: float, podcast_budget: float) -> str:
    if guest_offer == 0:
        return "perfect"
    if podcast_budget == 0:
        return "close"
    return "negotiable"


def _wishlist_budget_score(guest_offer: float, podcast_budget: float) -> int:
    if guest_offer == 0:
        return 30
    if podcast_budget > 0:
        return 15
    return 25


def match_score(guest_entry: dict, podcast_entry: dict, guest_verified: bool,
                service_available: bool = True) -> MatchResult:
    guest_topics = guest_entry.get("topics") or []
    podcast_topics = podcast_entry.get("preferredTopics") or []
    guest_offer = float(guest_entry.get("offerAmount") or 0)
    podcast_budget = float(podcast_entry.get("budgetAmount") or 0)

    overlap = topic_overlap(guest_topics, podcast_topics) if podcast_topics else []
    # exact-spelling union; overlap above is case-insensitive
    total = len(set(guest_topics) | set(podcast_topics))

    score = (len(overlap) / total) * 40 if total else 0
    score += _wishlist_budget_score(guest_offer, podcast_budget)
    if guest_verified:
        score += 15
    if service_available:
        score += 15

    return MatchResult(
        score=min(int(round(score)), 100),
        topic_overlap=overlap,
        total_topics=total,
        budget_alignment=budget_alignment(guest_offer, podcast_budget),
    )


def topic_score(topics: Iterable[str], target: Iterable[str]) -> float:
    if not topics or not target:
        return 0
    matches = len(topic_overlap(_lower(topics), target))
    total = unique_topic_count(topics, target)
    return (matches / total) * 100 if total else 0


def budget_score(budget: float, rate: float) -> float:
    if budget == 0 and rate == 0:
        return 100
    if budget > 0 and rate == 0:
        return 90
    if budget == 0 and rate > 0:
        return 20

    average = (budget + rate) / 2
    if average == 0:
        return 50
    percent = abs(budget - rate) / average * 100
    if percent <= 10:
        return 100
    if percent <= 25:
        return 80
    if percent <= 50:
        return 60
    if percent <= 100:
        return 40
    return 20


def guest_popularity(guest: dict) -> int:
    score = 30
    if guest.get("isVerifiedGuest"):
        score += 30
    appearances = guest.get("previousAppearances") or []
    if appearances:
        score += min(40, len(appearances) * 10)
    return score


def compatibility(topics: Iterable[str], target_topics: Iterable[str], budget: float, rate: float,
                  popularity: float = 50, recent_activity: float = 50) -> Compatibility:
    t_score = topic_score(topics, target_topics)
    b_score = budget_score(budget, rate)
    score = round(t_score * 0.4 + b_score * 0.3 + popularity * 0.15 + recent_activity * 0.15)
    return Compatibility(
        score=int(score),
        topic_score=t_score,
        budget_score=b_score,
        popularity_score=popularity,
        recent_activity_score=recent_activity,
        topic_matches=topic_overlap(topics, target_topics),
    )


def reasons(topic_matches: List[str], budget_match: bool, verified: bool, active: bool) -> List[str]:
    out = []
    if topic_matches:
        out.append(f"Shared interests: {', '.join(topic_matches[:3])}")
    if budget_match:
        out.append("Budget/rate alignment")
    if verified:
        out.append("Verified guest")
    if active:
        out.append("Recently active on platform")
    return out
