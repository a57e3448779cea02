from django.contrib import admin

from .models import Case, CaseAssignment, CaseStatus, CaseStatusHistory, CaseStatusTransition


class CaseStatusHistoryInline(admin.TabularInline):
    model = CaseStatusHistory
    extra = 0
    readonly_fields = ("from_status", "to_status", "changed_by", "reason", "metadata", "changed_at")


class CaseAssignmentInline(admin.TabularInline):
    model = CaseAssignment
    extra = 0
    fk_name = "case"


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ("case_number", "title", "status", "priority", "case_type", "created_at")
    list_filter = ("status", "priority", "case_type")
    search_fields = ("case_number", "title", "description")
    inlines = [CaseAssignmentInline, CaseStatusHistoryInline]


@admin.register(CaseStatus)
class CaseStatusAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "sort_order", "is_terminal", "is_active")
    ordering = ("sort_order",)


@admin.register(CaseStatusTransition)
class CaseStatusTransitionAdmin(admin.ModelAdmin):
    list_display = ("from_status", "to_status", "required_role", "transition_name", "is_active")
    list_filter = ("required_role", "is_active")
