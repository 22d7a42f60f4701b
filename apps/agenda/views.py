import logging
from datetime import timedelta

from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import company_required
from apps.core.errors import error_response, exception_response, parse_json_body
from .models import Meeting, Reminder, Task

logger = logging.getLogger(__name__)


@company_required
@require_http_methods(["GET"])
def upcoming_view(request):
    """Next meetings, open tasks and pending reminders of the current user"""
    user = request.user
    now = timezone.now()

    try:
        days = min(max(int(request.GET.get('days', 7)), 1), 90)
    except ValueError:
        days = 7
    until = now + timedelta(days=days)

    meetings = Meeting.objects.filter(
        company=user.company,
        participants__user=user,
        status=Meeting.STATUS_SCHEDULED,
        start_time__gte=now,
        start_time__lte=until,
    ).select_related('lead').order_by('start_time').distinct()

    tasks = Task.objects.filter(
        company=user.company,
        assignments__user=user,
        assignments__completed=False,
    ).exclude(status=Task.STATUS_DONE).order_by('due_date').distinct()

    reminders = Reminder.objects.filter(
        user=user,
        completed=False,
        reminder_date__lte=until,
    ).select_related('lead').order_by('reminder_date')

    return JsonResponse({
        'status': 'success',
        'data': {
            'meetings': [meeting.to_dict() for meeting in meetings],
            'tasks': [task.to_dict() for task in tasks],
            'reminders': [reminder.to_dict() for reminder in reminders],
        }
    })


@company_required
@require_http_methods(["POST"])
def task_complete_view(request, pk):
    task = Task.objects.filter(pk=pk, company=request.user.company).first()
    if task is None:
        return error_response('Task not found', status=404)

    try:
        completed = task.complete_for(request.user)
    except Exception as e:
        return exception_response(e, 'task_complete_view')

    if not completed:
        return error_response('Task is not assigned to you or is already completed')

    logger.info(f"Task {task.id} completed by {request.user.email} ({task.total_completed}/{task.total_assigned})")
    return JsonResponse({'status': 'success', 'message': 'Task completed', 'data': task.to_dict()})


@company_required
@require_http_methods(["POST"])
def meeting_feedback_view(request, pk):
    meeting = Meeting.objects.filter(pk=pk, company=request.user.company).select_related('lead').first()
    if meeting is None:
        return error_response('Meeting not found', status=404)

    if not request.user.is_manager() and not meeting.participants.filter(user=request.user).exists():
        return error_response('You are not a participant of this meeting', status=403)

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    try:
        meeting.record_feedback(payload.get('feedback'), payload.get('status'))
    except ValueError as e:
        return error_response(str(e))

    return JsonResponse({'status': 'success', 'message': 'Feedback saved', 'data': meeting.to_dict()})


@company_required
@require_http_methods(["POST"])
def reminder_complete_view(request, pk):
    reminder = Reminder.objects.filter(pk=pk, user=request.user).select_related('lead').first()
    if reminder is None:
        return error_response('Reminder not found', status=404)

    reminder.complete()
    return JsonResponse({'status': 'success', 'data': reminder.to_dict()})
