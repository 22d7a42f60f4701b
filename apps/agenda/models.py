# Models:
# 1. Task + TaskAssignment - Work items for one, several or all sellers
# 2. Meeting + MeetingParticipant - Calendar entries with feedback
# 3. Reminder - Personal follow-up reminders

from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from apps.core.models import Company


class Task(models.Model):

    ASSIGNMENT_INDIVIDUAL = 'individual'
    ASSIGNMENT_MULTIPLE = 'multiple'
    ASSIGNMENT_ALL = 'all'
    ASSIGNMENT_CHOICES = [
        (ASSIGNMENT_INDIVIDUAL, 'Individual'),
        (ASSIGNMENT_MULTIPLE, 'Multiple users'),
        (ASSIGNMENT_ALL, 'Whole team'),
    ]

    STATUS_OPEN = 'open'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_DONE = 'done'
    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_DONE, 'Done'),
    ]

    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'
    PRIORITY_CHOICES = [
        (PRIORITY_LOW, 'Low'),
        (PRIORITY_MEDIUM, 'Medium'),
        (PRIORITY_HIGH, 'High'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='tasks')
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    lead = models.ForeignKey('leads.Lead', on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_tasks')

    assignment_type = models.CharField(max_length=20, choices=ASSIGNMENT_CHOICES, default=ASSIGNMENT_INDIVIDUAL)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default=PRIORITY_MEDIUM)
    due_date = models.DateTimeField(null=True, blank=True, db_index=True)

    # Denormalized progress, kept in sync by assign() / complete_for()
    total_assigned = models.PositiveIntegerField(default=0)
    total_completed = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Task'
        verbose_name_plural = 'Tasks'
        ordering = ['due_date', '-created_at']
        indexes = [
            models.Index(fields=['company', 'status']),
        ]

    def __str__(self):
        return f"{self.title} ({self.get_status_display()})"

    def assign(self, users):
        """Create assignments for the given users (existing ones are kept)"""
        created = 0
        for user in users:
            if user.company_id != self.company_id:
                continue
            _, was_created = TaskAssignment.objects.get_or_create(task=self, user=user)
            if was_created:
                created += 1

        self.total_assigned = self.assignments.count()
        self.save(update_fields=['total_assigned', 'updated_at'])
        return created

    def complete_for(self, user):
        """
        Mark the user's assignment as completed

        Returns False when the user is not assigned or already completed.
        The task itself is done once every assignee has completed.
        """
        with transaction.atomic():
            updated = TaskAssignment.objects.filter(task=self, user=user, completed=False).update(
                completed=True,
                completed_at=timezone.now()
            )
            if not updated:
                return False

            Task.objects.filter(pk=self.pk).update(total_completed=F('total_completed') + 1)
            self.refresh_from_db(fields=['total_completed', 'total_assigned', 'status'])

            if self.total_completed >= self.total_assigned:
                self.status = self.STATUS_DONE
            elif self.status == self.STATUS_OPEN:
                self.status = self.STATUS_IN_PROGRESS
            self.save(update_fields=['status', 'updated_at'])

        return True

    def progress(self):
        if not self.total_assigned:
            return 0
        return round(self.total_completed / self.total_assigned * 100)

    def is_overdue(self):
        return bool(self.due_date and self.status != self.STATUS_DONE and self.due_date < timezone.now())

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'lead_id': self.lead_id,
            'assignment_type': self.assignment_type,
            'status': self.status,
            'priority': self.priority,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'total_assigned': self.total_assigned,
            'total_completed': self.total_completed,
            'progress': self.progress(),
            'overdue': self.is_overdue(),
        }


class TaskAssignment(models.Model):

    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='assignments')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='task_assignments')
    completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Task Assignment'
        verbose_name_plural = 'Task Assignments'
        unique_together = [['task', 'user']]

    def __str__(self):
        return f"{self.task.title} -> {self.user.email}"


class Meeting(models.Model):

    STATUS_SCHEDULED = 'scheduled'
    STATUS_DONE = 'done'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_DONE, 'Done'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='meetings')
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    lead = models.ForeignKey('leads.Lead', on_delete=models.SET_NULL, null=True, blank=True, related_name='meetings')
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    feedback = models.TextField(blank=True)
    feedback_collected = models.BooleanField(default=False)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_meetings')
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Meeting'
        verbose_name_plural = 'Meetings'
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['company', 'start_time']),
        ]

    def __str__(self):
        return f"{self.title} @ {self.start_time:%Y-%m-%d %H:%M}"

    def add_participant(self, user, is_organizer=False):
        participant, _ = MeetingParticipant.objects.get_or_create(
            meeting=self,
            user=user,
            defaults={'is_organizer': is_organizer}
        )
        return participant

    def organizer(self):
        participant = self.participants.filter(is_organizer=True).select_related('user').first()
        return participant.user if participant else self.created_by

    def record_feedback(self, text, status=None):
        """
        Store the outcome of the meeting

        Raises:
            ValueError: empty feedback or unknown status
        """
        text = (text or '').strip()
        if not text:
            raise ValueError('Feedback is required')

        status = status or self.STATUS_DONE
        if status not in dict(self.STATUS_CHOICES):
            raise ValueError(f'Invalid status: {status}')

        self.feedback = text
        self.feedback_collected = True
        self.status = status
        self.save(update_fields=['feedback', 'feedback_collected', 'status', 'updated_at'])

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'lead': {'id': self.lead.id, 'name': self.lead.name} if self.lead else None,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'status': self.status,
            'feedback': self.feedback,
            'feedback_collected': self.feedback_collected,
        }


class MeetingParticipant(models.Model):

    meeting = models.ForeignKey(Meeting, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='meeting_participations')
    is_organizer = models.BooleanField(default=False)
    reminder_sent = models.BooleanField(default=False)

    class Meta:
        verbose_name = 'Meeting Participant'
        verbose_name_plural = 'Meeting Participants'
        unique_together = [['meeting', 'user']]

    def __str__(self):
        return f"{self.user.email} @ {self.meeting.title}"


class Reminder(models.Model):

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reminders')
    lead = models.ForeignKey('leads.Lead', on_delete=models.CASCADE, null=True, blank=True, related_name='reminders')
    description = models.CharField(max_length=255)
    reminder_date = models.DateTimeField(db_index=True)
    completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = 'Reminder'
        verbose_name_plural = 'Reminders'
        ordering = ['reminder_date']

    def __str__(self):
        return self.description

    def complete(self):
        if self.completed:
            return False
        self.completed = True
        self.completed_at = timezone.now()
        self.save(update_fields=['completed', 'completed_at'])
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'description': self.description,
            'lead': {'id': self.lead.id, 'name': self.lead.name} if self.lead else None,
            'reminder_date': self.reminder_date.isoformat(),
            'completed': self.completed,
            'overdue': not self.completed and self.reminder_date < timezone.now(),
        }
