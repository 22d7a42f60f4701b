from django.contrib import admin
from .models import Meeting, MeetingParticipant, Reminder, Task, TaskAssignment


class TaskAssignmentInline(admin.TabularInline):
    model = TaskAssignment
    extra = 0
    fields = ['user', 'completed', 'completed_at']
    readonly_fields = ['completed_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'company', 'assignment_type', 'status', 'priority', 'due_date', 'total_completed', 'total_assigned']
    list_filter = ['status', 'priority', 'assignment_type', 'company']
    search_fields = ['title', 'description']
    readonly_fields = ['total_assigned', 'total_completed', 'created_at', 'updated_at']
    inlines = [TaskAssignmentInline]


class MeetingParticipantInline(admin.TabularInline):
    model = MeetingParticipant
    extra = 0


@admin.register(Meeting)
class MeetingAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'company', 'start_time', 'status', 'feedback_collected']
    list_filter = ['status', 'feedback_collected', 'company']
    search_fields = ['title', 'lead__name']
    date_hierarchy = 'start_time'
    inlines = [MeetingParticipantInline]


@admin.register(Reminder)
class ReminderAdmin(admin.ModelAdmin):
    list_display = ['id', 'description', 'user', 'reminder_date', 'completed']
    list_filter = ['completed']
    search_fields = ['description', 'user__email']
