from collections.abc import Iterable
from dataclasses import dataclass, field

from scoreboard.schemas.ledger import Number, RewardTier


@dataclass(frozen=True)
class TierStatus:
    earned: list[RewardTier] = field(default_factory=list)
    locked: list[RewardTier] = field(default_factory=list)


def resolve(points: Number, tiers: Iterable[RewardTier]) -> TierStatus:
    earned: list[RewardTier] = []
    locked: list[RewardTier] = []
    for tier in tiers:
        if points >= tier.threshold:
            earned.append(tier)
        else:
            locked.append(tier)
    earned.sort(key=lambda item: item.threshold)
    locked.sort(key=lambda item: item.threshold)
    return TierStatus(earned=earned, locked=locked)
