"""
Points, stats, badges and the leaderboard.

Every scored action is stored as a GamificationEvent with the points it was
worth at the time, so changing the company settings never rewrites history.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.utils import timezone

from .models import GamificationEvent, GamificationSetting

logger = logging.getLogger(__name__)

DEFAULT_POINTS = {
    GamificationEvent.EVENT_LEAD_CREATED: 10,
    GamificationEvent.EVENT_LEAD_QUALIFIED: 15,
    GamificationEvent.EVENT_PROPOSAL_SENT: 25,
    GamificationEvent.EVENT_SALE_CLOSED: 100,
    GamificationEvent.EVENT_MEETING_SCHEDULED: 20,
    GamificationEvent.EVENT_OBSERVATION_ADDED: 3,
}

MAX_POINTS = 1000

# sale_closed earns 1 extra point per SALE_VALUE_BONUS_STEP of estimated value
SALE_VALUE_BONUS_STEP = 1000

MEDALS = {1: '🥇', 2: '🥈', 3: '🥉'}


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    icon: str
    description: str

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'icon': self.icon, 'description': self.description}


MASTER_CLOSER = Badge('master-closer', 'Master Closer', '🏆', '10+ sales in the period')
SNIPER = Badge('sniper', 'Sniper', '🎯', 'Conversion rate of 50% or more')
HIGH_TICKET = Badge('high-ticket', 'High Ticket', '💎', '100k+ in sales')
CONSISTENCY = Badge('consistency', 'Consistency King', '📈', '7+ sales out of 21+ leads')
ON_FIRE = Badge('on-fire', 'On Fire', '🔥', '3+ sales in the period')


def get_points_table(company):
    """Default points overlaid by the company's own settings"""
    table = dict(DEFAULT_POINTS)
    if company is None:
        return table
    for event_type, points in GamificationSetting.objects.filter(company=company).values_list('event_type', 'points'):
        table[event_type] = points
    return table


def _as_decimal(value):
    if value in (None, ''):
        return Decimal('0')
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal('0')


def sale_value_bonus(estimated_value):
    value = _as_decimal(estimated_value)
    if value <= 0:
        return 0
    return int(value // SALE_VALUE_BONUS_STEP)


def record_event(user, event_type, lead=None, metadata=None):
    """
    Persist one scored action for a user

    Returns:
        GamificationEvent, or None for users without company
    """
    if user is None or not user.company_id:
        return None
    if event_type not in DEFAULT_POINTS:
        raise ValueError(f'Unknown gamification event: {event_type}')

    metadata = dict(metadata or {})
    if lead is not None:
        metadata.setdefault('lead_name', lead.name)
        if lead.estimated_value is not None:
            metadata.setdefault('estimated_value', float(lead.estimated_value))

    points = get_points_table(user.company).get(event_type, 0)
    if event_type == GamificationEvent.EVENT_SALE_CLOSED:
        points += sale_value_bonus(metadata.get('estimated_value'))

    event = GamificationEvent.objects.create(
        company_id=user.company_id,
        user=user,
        event_type=event_type,
        points=points,
        lead=lead,
        metadata=metadata,
    )
    logger.info(f"Gamification: {user.email} +{points} for {event_type}")
    return event


def calculate_user_stats(events):
    """
    Aggregate a list of events (model instances or dicts)

    Returns:
        dict: total_points, leads_created, proposals_sent, sales_closed,
        observations_added, total_sales_value, conversion_rate
    """
    stats = {
        'total_points': 0,
        'leads_created': 0,
        'proposals_sent': 0,
        'sales_closed': 0,
        'observations_added': 0,
        'total_sales_value': 0.0,
        'conversion_rate': 0.0,
    }

    for event in events:
        if isinstance(event, dict):
            event_type, points, metadata = event.get('event_type'), event.get('points'), event.get('metadata')
        else:
            event_type, points, metadata = event.event_type, event.points, event.metadata

        stats['total_points'] += points or 0
        if event_type == GamificationEvent.EVENT_LEAD_CREATED:
            stats['leads_created'] += 1
        elif event_type == GamificationEvent.EVENT_PROPOSAL_SENT:
            stats['proposals_sent'] += 1
        elif event_type == GamificationEvent.EVENT_OBSERVATION_ADDED:
            stats['observations_added'] += 1
        elif event_type == GamificationEvent.EVENT_SALE_CLOSED:
            stats['sales_closed'] += 1
            stats['total_sales_value'] += float(_as_decimal((metadata or {}).get('estimated_value')))

    if stats['leads_created'] > 0:
        stats['conversion_rate'] = stats['sales_closed'] / stats['leads_created'] * 100

    return stats


def calculate_badges(stats):
    badges = []
    if stats['sales_closed'] >= 10:
        badges.append(MASTER_CLOSER)
    if stats['conversion_rate'] >= 50:
        badges.append(SNIPER)
    if stats['total_sales_value'] >= 100000:
        badges.append(HIGH_TICKET)
    if stats['sales_closed'] >= 7 and stats['leads_created'] >= 21:
        badges.append(CONSISTENCY)
    if stats['sales_closed'] >= 3:
        badges.append(ON_FIRE)
    return badges


def window_events(company, days=None, user=None):
    days = days or settings.GAMIFICATION_LEADERBOARD_DAYS
    since = timezone.now() - timedelta(days=days)
    events = GamificationEvent.objects.filter(company=company, created_at__gte=since)
    if user is not None:
        events = events.filter(user=user)
    return events


def build_leaderboard(company, days=None, limit=None, exclude_event_id=None):
    """
    Rank the company's users by points earned in the last `days` days

    `exclude_event_id` leaves one event out, which gives the board as it was
    right before that event was recorded.

    Returns:
        list of dicts sorted by points, with position 1..n and medals for the podium
    """
    limit = limit or settings.GAMIFICATION_LEADERBOARD_SIZE

    events = window_events(company, days)
    if exclude_event_id is not None:
        events = events.exclude(pk=exclude_event_id)

    events_by_user = defaultdict(list)
    users = {}
    for event in events.select_related('user'):
        events_by_user[event.user_id].append(event)
        users[event.user_id] = event.user

    rows = []
    for user_id, events in events_by_user.items():
        user = users[user_id]
        stats = calculate_user_stats(events)
        rows.append({
            'user_id': user_id,
            'name': user.get_full_name(),
            'initials': user.get_initials(),
            'avatar': user.avatar.url if user.avatar else None,
            'stats': stats,
            'badges': [badge.to_dict() for badge in calculate_badges(stats)],
        })

    # Ties keep a stable order by name
    rows.sort(key=lambda row: (-row['stats']['total_points'], row['name']))
    rows = rows[:limit]

    for position, row in enumerate(rows, start=1):
        row['position'] = position
        row['medal'] = MEDALS.get(position, '')

    return rows


def ranking_changes(previous, current):
    """
    Compare two leaderboards and list users whose position moved

    Users entering the board have old_position None and direction 'up'.
    """
    old_positions = {row['user_id']: row['position'] for row in previous}
    changes = []
    for row in current:
        old = old_positions.get(row['user_id'])
        if old == row['position']:
            continue
        changes.append({
            'user_id': row['user_id'],
            'name': row.get('name'),
            'old_position': old,
            'new_position': row['position'],
            'direction': 'up' if old is None or row['position'] < old else 'down',
        })
    return changes


def event_ranking_changes(event):
    """Leaderboard moves caused by a newly recorded event"""
    previous = build_leaderboard(event.company, exclude_event_id=event.pk)
    current = build_leaderboard(event.company)
    return ranking_changes(previous, current)
