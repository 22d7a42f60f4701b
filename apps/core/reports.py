"""
Performance reports sent by email.

Daily (sent in the evening):
- every active user gets their own numbers for the day against the daily
  goals, compared with yesterday
- owners and managers also get the team view: totals, top three and who
  is below the leads goal

Weekly (Monday morning): owners and managers get the company totals for the
last seven days.

Days are calendar days in the project time zone.
"""

from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Sum

from apps.agenda.models import Task, TaskAssignment
from apps.gamification.models import GamificationEvent
from apps.leads.models import Lead, LeadObservation
from .errors import money


def _rate(part, whole):
    return round(part / whole * 100, 1) if whole else 0


def _revenue(leads):
    return leads.aggregate(total=Sum('estimated_value'))['total'] or Decimal('0')


def daily_goals():
    return dict(settings.DAILY_REPORT_GOALS)


def user_daily_metrics(user, day):
    assigned = Lead.objects.filter(company=user.company, assigned_to=user)
    conversions = assigned.filter(status=Lead.STATUS_WON, updated_at__date=day)
    points = GamificationEvent.objects.filter(user=user, created_at__date=day).aggregate(total=Sum('points'))['total']

    return {
        'leads': assigned.filter(created_at__date=day).count(),
        'conversions': conversions.count(),
        'observations': LeadObservation.objects.filter(user=user, created_at__date=day).count(),
        'tasks': TaskAssignment.objects.filter(user=user, completed=True, completed_at__date=day).count(),
        'points': points or 0,
        'revenue': _revenue(conversions),
    }


def build_daily_report(user, day):
    metrics = user_daily_metrics(user, day)
    previous_day = day - timedelta(days=1)
    assigned = Lead.objects.filter(company=user.company, assigned_to=user)
    goals = daily_goals()

    return {
        'user_id': user.id,
        'name': user.get_full_name(),
        'date': day.isoformat(),
        'metrics': metrics,
        'goals': goals,
        'goals_met': {key: metrics[key] >= goals[key] for key in ('leads', 'conversions', 'observations', 'tasks')},
        'conversion_rate': _rate(metrics['conversions'], metrics['leads']),
        'yesterday': {
            'leads': assigned.filter(created_at__date=previous_day).count(),
            'conversions': assigned.filter(status=Lead.STATUS_WON, updated_at__date=previous_day).count(),
        },
    }


def build_team_report(company, day, members):
    """Team totals plus one row per member, best converters first"""
    leads = Lead.objects.filter(company=company, created_at__date=day)
    conversions = Lead.objects.filter(company=company, status=Lead.STATUS_WON, updated_at__date=day)
    goal = daily_goals()['leads']

    performance = []
    for member in members:
        member_leads = leads.filter(assigned_to=member).count()
        performance.append({
            'user_id': member.id,
            'name': member.get_full_name(),
            'leads': member_leads,
            'conversions': conversions.filter(assigned_to=member).count(),
            'goal_leads': goal,
            'goal_met': member_leads >= goal,
        })
    performance.sort(key=lambda row: (-row['conversions'], row['name']))

    total_leads = leads.count()
    total_conversions = conversions.count()
    return {
        'company': company.name,
        'date': day.isoformat(),
        'total_leads': total_leads,
        'total_conversions': total_conversions,
        'total_revenue': _revenue(conversions),
        'conversion_rate': _rate(total_conversions, total_leads),
        'performance': performance,
        'top': performance[:3],
        'below_goal': [row for row in performance if not row['goal_met']],
    }


def build_weekly_summary(company, since):
    closed = Lead.objects.filter(company=company, status=Lead.STATUS_WON, updated_at__gte=since)
    return {
        'company': company.name,
        'since': since.isoformat(),
        'new_leads': Lead.objects.filter(company=company, created_at__gte=since).count(),
        'sales_closed': closed.count(),
        'revenue': _revenue(closed),
        'tasks_completed': Task.objects.filter(company=company, status=Task.STATUS_DONE, updated_at__gte=since).count(),
    }


def _goal_line(label, value, goal):
    mark = 'goal met' if value >= goal else f'goal {goal}'
    return f"- {label}: {value} ({mark})"


def daily_report_text(report):
    metrics, goals = report['metrics'], report['goals']
    lines = [
        f"Hi {report['name']},",
        "",
        f"Your day ({report['date']}):",
        _goal_line('Leads', metrics['leads'], goals['leads']),
        _goal_line('Sales', metrics['conversions'], goals['conversions']),
        _goal_line('Notes', metrics['observations'], goals['observations']),
        _goal_line('Tasks completed', metrics['tasks'], goals['tasks']),
        f"- Points: {metrics['points']}",
        f"- Revenue: {money(metrics['revenue'])}",
        f"- Conversion rate: {report['conversion_rate']}%",
        "",
        f"Yesterday: {report['yesterday']['leads']} leads, {report['yesterday']['conversions']} sales",
        "",
        f"Open your dashboard: {settings.APP_URL}/dashboard",
    ]
    return "\n".join(lines)


def team_report_text(report):
    lines = [
        f"Team summary for {report['company']} ({report['date']}):",
        f"- Leads: {report['total_leads']}",
        f"- Sales: {report['total_conversions']}",
        f"- Revenue: {money(report['total_revenue'])}",
        f"- Conversion rate: {report['conversion_rate']}%",
        "",
        "Top performers:",
    ]
    for position, row in enumerate(report['top'], start=1):
        lines.append(f"{position}. {row['name']}: {row['conversions']} sales, {row['leads']} leads")
    if report['below_goal']:
        lines += ["", "Below the leads goal:"]
        lines += [f"- {row['name']}: {row['leads']}/{row['goal_leads']}" for row in report['below_goal']]
    lines += ["", f"Open your dashboard: {settings.APP_URL}/dashboard"]
    return "\n".join(lines)


def weekly_summary_text(summary):
    return "\n".join([
        f"Weekly summary for {summary['company']}:",
        "",
        f"- {summary['new_leads']} new leads",
        f"- {summary['sales_closed']} sales closed",
        f"- {money(summary['revenue'])} in revenue",
        f"- {summary['tasks_completed']} tasks completed",
        "",
        f"Open your dashboard: {settings.APP_URL}/dashboard",
        "",
        "This summary is sent every Monday.",
    ])
