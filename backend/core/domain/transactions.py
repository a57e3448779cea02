"""
core.domain.transactions — Row-locking helper for state changes.

State changes that read-then-write (case status updates, role-change
approvals, admin-count checks) lock the row first so two concurrent
requests cannot both pass the same precondition.

Usage::

    from django.db import transaction
    from core.domain.transactions import lock_for_update

    with transaction.atomic():
        case = lock_for_update(Case, case_id)
        ...
"""

from __future__ import annotations

from typing import Any, TypeVar

from django.db import models

from core.domain.exceptions import NotFound

M = TypeVar("M", bound=models.Model)


def lock_for_update(model_class: type[M], pk: Any, *, label: str | None = None) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.
        label:       Human name used in the ``NotFound`` message
                     (defaults to the model's verbose name).

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except (model_class.DoesNotExist, ValueError, TypeError):
        name = label or model_class._meta.verbose_name.title()
        raise NotFound(f"{name} not found")
