"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF exception handler for the exceptions above.
notifications      Synchronous notification creation helper.
activity           Chain-of-custody activity log writer.
transactions       Helpers for ``transaction.atomic`` + ``select_for_update``.
access             Permission guards and role-name helpers.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.notifications import NotificationService
    from core.domain.activity import ActivityLogService
    from core.domain.transactions import lock_for_update
    from core.domain.access import require_permission
"""
