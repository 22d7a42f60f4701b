"""
Demo data for a company: a year of pipeline history

Rows are written with bulk_create, so lead signals (activities, gamification
points) do not fire for seeded data.
"""

import logging
import random
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from apps.agenda.models import Meeting, MeetingParticipant, Reminder, Task, TaskAssignment
from apps.leads.models import Lead, LeadObservation, LeadValue

logger = logging.getLogger(__name__)


# (status, count); 'qualified' is a contacted lead with the qualified flag set
STATUS_DISTRIBUTION = [
    ('new', 40),
    ('contacted', 35),
    ('qualified', 45),
    ('proposal', 50),
    ('negotiation', 40),
    ('won', 60),
    ('lost', 30),
]
QUALIFIED_STATUSES = ('qualified', 'proposal', 'negotiation', 'won')

COMPANY_NAMES = [
    'TechSolutions', 'Inovare Consulting', 'Digital Commerce', 'Express Logistics',
    'Future Agribusiness', 'Horizon Builders', 'EduTech Platforms', 'HealthCare Systems',
    'FinancePro', 'RetailMax', 'AutoParts National', 'FoodTech Delivery',
    'CloudFirst', 'SecureNet', 'MobileTech Apps', 'DataAnalytics Pro',
    'SmartHome Solutions', 'EcoEnergy', 'TravelTech', 'FashionHub',
]

PERSON_NAMES = [
    'Carlos Silva', 'Mariana Oliveira', 'Fernando Santos', 'Juliana Lima',
    'Roberto Sousa', 'Patricia Costa', 'Andre Santos', 'Beatriz Rocha',
    'Ricardo Nunes', 'Camila Barros', 'Diego Lima', 'Gabriela Cruz',
    'Lucas Dias', 'Renata Melo', 'Thiago Ribeiro', 'Amanda Cardoso',
    'Bruno Lopes', 'Carolina Souza', 'Daniel Araujo', 'Eduarda Castro',
]

SOURCES = ['Website', 'Referral', 'LinkedIn', 'Google Ads', 'WhatsApp', 'Event']

LOSS_REASONS = [
    'Price too high',
    'Chose a competitor',
    'No budget right now',
    'Does not fit their needs',
    'Project cancelled',
    'Client stopped answering',
]

# (name, value type, min, max)
VALUE_TYPES = [
    ('Initial setup', LeadValue.TYPE_ONE_TIME, 2000, 10000),
    ('Implementation', LeadValue.TYPE_ONE_TIME, 5000, 25000),
    ('Strategic consulting', LeadValue.TYPE_ONE_TIME, 3000, 15000),
    ('Training', LeadValue.TYPE_ONE_TIME, 1500, 8000),
    ('Data migration', LeadValue.TYPE_ONE_TIME, 2500, 12000),
    ('Basic plan', LeadValue.TYPE_RECURRING, 500, 2000),
    ('Premium plan', LeadValue.TYPE_RECURRING, 2000, 5000),
    ('Monthly support', LeadValue.TYPE_RECURRING, 300, 1500),
    ('Software license', LeadValue.TYPE_RECURRING, 800, 4000),
    ('Preventive maintenance', LeadValue.TYPE_RECURRING, 400, 2000),
]

# (note type, weight, contents)
OBSERVATIONS = [
    (LeadObservation.TYPE_WHATSAPP, 40, [
        'Client answered on WhatsApp showing interest',
        'Contact made, client asked for a proposal',
    ]),
    (LeadObservation.TYPE_MEETING, 15, [
        'Meeting booked for next week',
        'Product demo scheduled',
        'Alignment meeting booked with the decision maker',
    ]),
    (LeadObservation.TYPE_CALL, 20, [
        'Waiting for the finance department',
        'Client asked for 5 more days to decide',
        'Follow-up call done, sent extra material',
    ]),
    (LeadObservation.TYPE_EMAIL, 10, [
        'Proposal sent by email, valid for 7 days',
        'Detailed quote sent as requested',
    ]),
    (LeadObservation.TYPE_NOTE, 15, [
        'Client asked for a 15% discount',
        'Negotiating installment payments',
        'Adjusting project scope after feedback',
    ]),
]

MEETING_TITLES = [
    'Prospecting meeting',
    'Proposal presentation',
    'Product demo',
    'Negotiation meeting',
    'Closing meeting',
    'Post-sale follow-up',
]

TASK_TITLES = [
    'Send commercial proposal',
    'Follow up on proposal',
    'Prepare meeting presentation',
    'Update client record',
    'Call to confirm meeting',
    'Send contract for signature',
    'Schedule product demo',
    'Ask client for references',
]

REMINDER_DESCRIPTIONS = [
    'Get back to client about a technical question',
    'Send contract for signature',
    'Call to confirm payment',
    'Schedule follow-up meeting',
    'Send monthly report',
    'Confirm documents were received',
]

MEETINGS = 250
TASKS = 400
REMINDERS = 200


class DemoDataSeeder:
    """
    Generates demo leads, values, observations, meetings, tasks and reminders

    Usage:
        counts = DemoDataSeeder(company, scale=0.1).run()
    """

    def __init__(self, company, scale=1.0, seed=None):
        if scale <= 0:
            raise ValueError('scale must be positive')
        self.company = company
        self.scale = scale
        self.random = random.Random(seed)
        self.now = timezone.now()
        self.users = list(company.users.filter(is_active=True).order_by('id')[:10])

    def scaled(self, count):
        return max(1, int(round(count * self.scale)))

    def random_date_in_month(self, months_ago):
        start = self.now - timedelta(days=30 * (months_ago + 1))
        return start + timedelta(seconds=self.random.uniform(0, 30 * 24 * 3600))

    def days_from(self, moment, max_days):
        return moment + timedelta(seconds=self.random.uniform(0, max_days * 24 * 3600))

    @transaction.atomic
    def run(self):
        if not self.users:
            raise ValueError(f'Company {self.company} has no active users')

        logger.info(f"Seeding demo data for company {self.company.id} (scale {self.scale})")

        leads = self.create_leads()
        counts = {
            'leads': len(leads),
            'lead_values': self.create_lead_values(leads),
            'observations': self.create_observations(leads),
            'meetings': self.create_meetings(leads),
            'tasks': self.create_tasks(leads),
            'reminders': self.create_reminders(leads),
        }

        logger.info(f"Demo data for company {self.company.id}: {counts}")
        return counts

    def create_leads(self):
        leads = []
        index = 0
        for status, count in STATUS_DISTRIBUTION:
            for _ in range(self.scaled(count)):
                company_name = COMPANY_NAMES[index % len(COMPANY_NAMES)]
                domain = company_name.lower().replace(' ', '')
                lost = status == Lead.STATUS_LOST
                leads.append(Lead(
                    company=self.company,
                    name=PERSON_NAMES[index % len(PERSON_NAMES)],
                    company_name=f"{company_name} Ltd",
                    email=f"contact{index}@{domain}.com",
                    phone=f"55{self.random.randint(11, 99)}9{self.random.randint(10000000, 99999999)}",
                    source=self.random.choice(SOURCES),
                    status=Lead.STATUS_CONTACTED if status == 'qualified' else status,
                    qualified=status in QUALIFIED_STATUSES,
                    loss_reason=self.random.choice(LOSS_REASONS) if lost else '',
                    assigned_to=self.random.choice(self.users),
                    created_at=self.random_date_in_month(self.random.randrange(12)),
                ))
                index += 1

        return Lead.objects.bulk_create(leads)

    def create_lead_values(self, leads):
        values = []
        for lead in leads:
            if lead.status != Lead.STATUS_WON:
                continue
            for name, value_type, low, high in self.random.sample(VALUE_TYPES, self.random.randint(2, 4)):
                recurring = value_type == LeadValue.TYPE_RECURRING
                values.append(LeadValue(
                    lead=lead,
                    name=name,
                    value_type=value_type,
                    amount=Decimal(self.random.randint(low, high)),
                    notes='Monthly payment' if recurring else 'Paid upfront',
                    created_by=lead.assigned_to,
                ))

        LeadValue.objects.bulk_create(values)
        return len(values)

    def create_observations(self, leads):
        weights = [weight for _, weight, _ in OBSERVATIONS]
        observations = []
        for lead in leads:
            age_days = (self.now - lead.created_at).days
            # Older leads have a longer history, capped at 10 notes
            for i in range(min(age_days // 15 + 2, 10)):
                note_type, _, contents = self.random.choices(OBSERVATIONS, weights=weights)[0]
                observations.append(LeadObservation(
                    lead=lead,
                    user=lead.assigned_to,
                    note_type=note_type,
                    content=self.random.choice(contents),
                    created_at=lead.created_at + timedelta(days=5 * i),
                ))

        LeadObservation.objects.bulk_create(observations, batch_size=500)
        return len(observations)

    def create_meetings(self, leads):
        candidates = [lead for lead in leads if lead.qualified] or leads
        total = self.scaled(MEETINGS)
        meetings = []

        for i in range(total):
            lead = self.random.choice(candidates)
            # 30% scheduled, 55% done, 15% cancelled
            if i < total * 0.30:
                status = Meeting.STATUS_SCHEDULED
                start = self.days_from(self.now, 30)
            elif i < total * 0.85:
                status = Meeting.STATUS_DONE
                start = self.days_from(lead.created_at, 60)
            else:
                status = Meeting.STATUS_CANCELLED
                start = self.days_from(lead.created_at, 60)

            feedback = ''
            if status == Meeting.STATUS_DONE:
                feedback = 'Productive meeting, client interested' if self.random.random() > 0.3 else 'Client has doubts, needs another contact'

            meetings.append(Meeting(
                company=self.company,
                lead=lead,
                title=self.random.choice(MEETING_TITLES),
                description='Sales meeting',
                start_time=start,
                end_time=start + timedelta(minutes=self.random.choice([30, 45, 60])),
                status=status,
                feedback=feedback,
                feedback_collected=status == Meeting.STATUS_DONE,
                created_by=lead.assigned_to,
            ))

        meetings = Meeting.objects.bulk_create(meetings)

        participants = []
        for meeting in meetings:
            participants.append(MeetingParticipant(meeting=meeting, user=meeting.created_by, is_organizer=True))
            others = [user for user in self.users if user.id != meeting.created_by_id]
            for user in others[:self.random.randint(0, 2)]:
                participants.append(MeetingParticipant(meeting=meeting, user=user))
        MeetingParticipant.objects.bulk_create(participants)

        return len(meetings)

    def _task_assignees(self, assignment_type):
        if assignment_type == Task.ASSIGNMENT_ALL:
            return list(self.users)
        if assignment_type == Task.ASSIGNMENT_MULTIPLE:
            return self.random.sample(self.users, min(len(self.users), self.random.randint(2, 4)))
        return [self.random.choice(self.users)]

    def create_tasks(self, leads):
        total = self.scaled(TASKS)
        tasks = []
        assignees = []

        for i in range(total):
            lead = self.random.choice(leads)
            # 60% individual, 30% multiple, 10% all
            if i < total * 0.60:
                assignment_type = Task.ASSIGNMENT_INDIVIDUAL
            elif i < total * 0.90:
                assignment_type = Task.ASSIGNMENT_MULTIPLE
            else:
                assignment_type = Task.ASSIGNMENT_ALL

            # 40% open, 25% in progress, 35% done
            if i < total * 0.40:
                status = Task.STATUS_OPEN
            elif i < total * 0.65:
                status = Task.STATUS_IN_PROGRESS
            else:
                status = Task.STATUS_DONE

            users = self._task_assignees(assignment_type)
            created_at = self.days_from(lead.created_at, 45)
            if status == Task.STATUS_DONE:
                due_date = created_at - timedelta(seconds=self.random.uniform(0, 10 * 24 * 3600))
            else:
                due_date = self.days_from(created_at, 20)

            tasks.append(Task(
                company=self.company,
                lead=lead,
                title=f"{self.random.choice(TASK_TITLES)} - {lead.company_name}",
                description='Follow-up task',
                created_by=lead.assigned_to,
                assignment_type=assignment_type,
                status=status,
                due_date=due_date,
                total_assigned=len(users),
                total_completed=len(users) if status == Task.STATUS_DONE else 0,
                created_at=created_at,
            ))
            assignees.append(users)

        tasks = Task.objects.bulk_create(tasks)

        assignments = []
        for task, users in zip(tasks, assignees):
            done = task.status == Task.STATUS_DONE
            for user in users:
                assignments.append(TaskAssignment(
                    task=task,
                    user=user,
                    completed=done,
                    completed_at=task.due_date if done else None,
                ))
        TaskAssignment.objects.bulk_create(assignments, batch_size=500)

        return len(tasks)

    def create_reminders(self, leads):
        total = self.scaled(REMINDERS)
        reminders = []

        for i in range(total):
            lead = self.random.choice(leads)
            completed = i < total * 0.60
            if completed:
                reminder_date = self.now - timedelta(seconds=self.random.uniform(0, 60 * 24 * 3600))
            else:
                reminder_date = self.days_from(self.now, 30)

            reminders.append(Reminder(
                user=lead.assigned_to,
                lead=lead,
                description=self.random.choice(REMINDER_DESCRIPTIONS),
                reminder_date=reminder_date,
                completed=completed,
                completed_at=reminder_date if completed else None,
            ))

        Reminder.objects.bulk_create(reminders)
        return len(reminders)
