from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import AdminAction, Role, RoleChangeRequest, User


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "hierarchy_level", "description")
    search_fields = ("name",)
    ordering = ("-hierarchy_level",)
    filter_horizontal = ("permissions",)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "wallet_address", "email", "full_name",
                    "auth_type", "is_active", "role")
    search_fields = ("username", "wallet_address", "email", "full_name", "badge_number")
    list_filter = ("is_active", "auth_type", "account_type", "role")
    filter_horizontal = ("groups", "user_permissions")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Identity", {"fields": ("wallet_address", "full_name", "auth_type", "account_type",
                                 "created_by", "email_verified")}),
        ("Organisation", {"fields": ("role", "department", "jurisdiction", "badge_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Identity", {"fields": ("email", "wallet_address", "full_name", "role")}),
    )


@admin.register(RoleChangeRequest)
class RoleChangeRequestAdmin(admin.ModelAdmin):
    list_display = ("user", "old_role", "new_role", "status", "requested_by", "created_at")
    list_filter = ("status",)


@admin.register(AdminAction)
class AdminActionAdmin(admin.ModelAdmin):
    list_display = ("action_type", "admin", "target_identity", "timestamp")
    list_filter = ("action_type",)
    search_fields = ("target_identity",)
