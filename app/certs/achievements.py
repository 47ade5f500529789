"""Issuer achievement tiers.

Maps an issued-certificate count to a ranked tier. The mapping is a step
function over ascending thresholds and is never interpolated.

If two tiers ever share a threshold, the earlier-declared one is the
current tier once reached, and the first tier whose threshold exceeds
the count is the next tier.
"""

from typing import List, Optional, Sequence

from .models import AchievementProgress, AchievementTier

ACHIEVEMENT_TIERS: tuple = (
    AchievementTier(
        id="starter",
        name="Certificate Starter",
        description="Issue your first certificate",
        tier=1,
        required_count=1,
        benefits=["Access to basic certificate templates"],
    ),
    AchievementTier(
        id="educator",
        name="Emerging Educator",
        description="Issue 5 certificates",
        tier=2,
        required_count=5,
        benefits=["Unlock skill badges", "Basic analytics"],
    ),
    AchievementTier(
        id="instructor",
        name="Certified Instructor",
        description="Issue 10 certificates",
        tier=3,
        required_count=10,
        benefits=["Batch issuance", "Custom templates", "Advanced analytics"],
    ),
    AchievementTier(
        id="institution",
        name="Trusted Institution",
        description="Issue 25 certificates",
        tier=4,
        required_count=25,
        benefits=["Institution verification badge", "Priority indexing", "API access"],
    ),
    AchievementTier(
        id="academy",
        name="Renowned Academy",
        description="Issue 50 certificates",
        tier=5,
        required_count=50,
        benefits=["Featured institution status", "Custom branding", "Dedicated support"],
    ),
    AchievementTier(
        id="university",
        name="Elite University",
        description="Issue 100 certificates",
        tier=6,
        required_count=100,
        benefits=["Governance participation", "Revenue sharing", "Partnership opportunities"],
    ),
    AchievementTier(
        id="legend",
        name="Educational Legend",
        description="Issue 250+ certificates",
        tier=7,
        required_count=250,
        benefits=["All features unlocked", "Platform ambassador", "Lifetime benefits"],
    ),
)


def _ordered(tiers: Sequence[AchievementTier]) -> List[AchievementTier]:
    if not tiers:
        raise ValueError("at least one achievement tier is required")
    # sorted() is stable, so equal thresholds keep declaration order
    return sorted(tiers, key=lambda t: t.required_count)


def current_tier(count: int, tiers: Sequence[AchievementTier] = ACHIEVEMENT_TIERS) -> AchievementTier:
    """Highest tier reached; the baseline tier when none is reached yet."""
    ordered = _ordered(tiers)
    current = ordered[0]
    reached = False
    for tier in ordered:
        if tier.required_count > count:
            break
        if not reached or tier.required_count > current.required_count:
            current = tier
            reached = True
    return current


def next_tier(count: int, tiers: Sequence[AchievementTier] = ACHIEVEMENT_TIERS) -> Optional[AchievementTier]:
    """First tier whose threshold exceeds count, or None at the top."""
    for tier in _ordered(tiers):
        if tier.required_count > count:
            return tier
    return None


def progress_percent(count: int, tiers: Sequence[AchievementTier] = ACHIEVEMENT_TIERS) -> float:
    """Progress from the current tier's threshold toward the next, 0..100.

    Exactly 100 at the top tier. Below the baseline threshold progress is
    measured from zero.
    """
    upcoming = next_tier(count, tiers)
    if upcoming is None:
        return 100.0

    current = current_tier(count, tiers)
    floor = current.required_count
    if floor >= upcoming.required_count or count < floor:
        floor = 0

    span = upcoming.required_count - floor
    if span <= 0:
        return 100.0
    percent = (count - floor) / span * 100
    return float(min(max(percent, 0.0), 100.0))


def unlocked_tiers(count: int, tiers: Sequence[AchievementTier] = ACHIEVEMENT_TIERS) -> List[AchievementTier]:
    """Every tier whose threshold has been reached, in ascending order."""
    return [t for t in _ordered(tiers) if count >= t.required_count]


def achievement_progress(count: int, tiers: Sequence[AchievementTier] = ACHIEVEMENT_TIERS) -> AchievementProgress:
    """All tier facts for one count, for display."""
    upcoming = next_tier(count, tiers)
    return AchievementProgress(
        count=count,
        current_tier=current_tier(count, tiers),
        next_tier=upcoming,
        progress_percent=progress_percent(count, tiers),
        remaining=max(upcoming.required_count - count, 0) if upcoming else 0,
        unlocked=unlocked_tiers(count, tiers),
    )
