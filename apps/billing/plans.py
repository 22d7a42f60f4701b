"""
Plan catalogue and Stripe price mapping.

Price ids come from settings (one per plan and interval), so the same code
serves test and live Stripe accounts.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from django.conf import settings

DEFAULT_PLAN = ('individual', 1)


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    plan_type: str
    interval: Optional[str]
    price: Optional[Decimal]
    user_limit: int
    price_setting: Optional[str] = None
    popular: bool = False
    features: List[str] = field(default_factory=list)

    @property
    def price_id(self):
        if not self.price_setting:
            return ''
        return getattr(settings, self.price_setting, '')

    def monthly_amount(self):
        if self.price is None:
            return Decimal('0')
        if self.interval == 'year':
            return (self.price / 12).quantize(Decimal('0.01'))
        return self.price

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'plan_type': self.plan_type,
            'interval': self.interval,
            'price': str(self.price) if self.price is not None else None,
            'user_limit': self.user_limit,
            'popular': self.popular,
            'features': self.features,
        }


INDIVIDUAL_FEATURES = ['Lead pipeline', 'Tasks and agenda', 'WhatsApp messaging']
TEAM_FEATURES = INDIVIDUAL_FEATURES + ['Up to 10 users', 'Gamification and leaderboard', 'WhatsApp campaigns']

PLANS = [
    Plan('individual_monthly', 'Individual', 'individual', 'month', Decimal('79'), 1,
         'STRIPE_PRICE_INDIVIDUAL_MONTHLY', features=INDIVIDUAL_FEATURES),
    Plan('individual_yearly', 'Individual', 'individual', 'year', Decimal('790'), 1,
         'STRIPE_PRICE_INDIVIDUAL_YEARLY', features=INDIVIDUAL_FEATURES),
    Plan('team_monthly', 'Team', 'team', 'month', Decimal('397'), 10,
         'STRIPE_PRICE_TEAM_MONTHLY', popular=True, features=TEAM_FEATURES),
    Plan('team_yearly', 'Team', 'team', 'year', Decimal('3970'), 10,
         'STRIPE_PRICE_TEAM_YEARLY', features=TEAM_FEATURES),
    Plan('enterprise', 'Enterprise', 'enterprise', None, None, -1,
         features=TEAM_FEATURES + ['Unlimited users', 'Dedicated support']),
]


def get_plan(plan_id):
    for plan in PLANS:
        if plan.id == plan_id:
            return plan
    return None


def plan_by_price_id(price_id):
    if not price_id:
        return None
    for plan in PLANS:
        if plan.price_id and plan.price_id == price_id:
            return plan
    return None


def plan_for_price(price_id) -> Tuple[str, int]:
    """(plan_type, user_limit) for a Stripe price; unknown prices get the individual plan"""
    plan = plan_by_price_id(price_id)
    if plan is None:
        return DEFAULT_PLAN
    return plan.plan_type, plan.user_limit


def monthly_revenue(price_id):
    plan = plan_by_price_id(price_id)
    return plan.monthly_amount() if plan else Decimal('0')


PLAN_DISPLAY_NAMES = {
    'free': 'Free',
    'individual': 'Individual',
    'team': 'Team',
    'enterprise': 'Enterprise',
}
