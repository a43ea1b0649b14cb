"""
Django-Grid Delete Orchestration

Deletes selected rows (or every row) of a grid and reports what happened.

Steps of one delete:
1. Ask the before-delete hook; a False answer cancels with no side effects
2. Build the target: primary key IN selection (optionally expanded, e.g. to
   tree descendants), excluding locked rows
3. Delete dependent rows declared on the data manager, run cleanup callables
4. Delete the target and count the deleted rows (False on database error)
5. On delete-all, reset the auto-increment sequences of declared models
6. Call the after-delete hook and build a DeleteOutcome
"""

import logging
from dataclasses import dataclass

from django.core.management.color import no_style
from django.db import DatabaseError, connections, router, transaction
from django.db.models import Q
from django.utils.translation import gettext, ngettext

from django_grid.fields import resolve_model


logger = logging.getLogger("django_grid")

ACCEPT = "accept"
WARNING = "warning"
ERROR = "error"


def delete_message(kind, **params):
    """
    Localized outcome message.

    Kinds: partiallySome, successfullySome, unableSome, partiallyAll,
    successfullyAll, unableAll.
    """
    if kind == "partiallySome":
        return ngettext(
            "The records were partially deleted, from the selected %(selected)d record, "
            "%(deleted)d were deleted, the rest were omitted",
            "The records were partially deleted, from the selected %(selected)d records, "
            "%(deleted)d were deleted, the rest were omitted",
            params["selected"],
        ) % params
    if kind in ("successfullySome", "successfullyAll"):
        return ngettext(
            "Successfully deleted %(count)d record",
            "Successfully deleted %(count)d records",
            params["count"],
        ) % params
    if kind == "unableSome":
        return ngettext(
            "Unable to delete %(count)d record, no records are available",
            "Unable to delete %(count)d records, no records are available",
            params["count"],
        ) % params
    if kind == "partiallyAll":
        return ngettext(
            "Records have been partially deleted, %(deleted)d deleted, %(skipped)d record skipped",
            "Records have been partially deleted, %(deleted)d deleted, %(skipped)d records skipped",
            params["skipped"],
        ) % params
    if kind == "unableAll":
        return ngettext(
            "Unable to delete record, no record is available",
            "Unable to delete records, no records are available",
            params["count"],
        )
    return ""


@dataclass(frozen=True)
class DeleteOutcome:
    """Counts and classification of one delete call."""

    selected: int
    deleted: int
    missed: int
    classification: str
    message: str = ""
    title: str = ""

    @property
    def success(self):
        return self.missed == 0

    @classmethod
    def for_selection(cls, selected, result):
        """
        Outcome of deleting `selected` chosen rows.

        `result` is the number of deleted rows, or False on failure.

        Example:
            >>> outcome = DeleteOutcome.for_selection(5, 3)
            >>> outcome.missed, outcome.success, outcome.classification
            (2, False, 'warning')
        """
        deleted = int(result or 0)
        missed = max(selected - deleted, 0)

        if deleted > 0 and missed > 0:
            classification = WARNING
            message = delete_message("partiallySome", selected=selected, deleted=deleted)
        elif deleted > 0:
            classification = ACCEPT
            message = delete_message("successfullySome", count=selected)
        else:
            classification = ERROR
            message = delete_message("unableSome", count=selected)

        return cls(selected, deleted, missed, classification, message, gettext("Deletion"))

    @classmethod
    def for_all(cls, result, remaining):
        """
        Outcome of deleting every row; `remaining` rows were skipped.
        """
        deleted = int(result or 0)
        missed = max(int(remaining), 0)

        if deleted > 0 and missed > 0:
            classification = WARNING
            message = delete_message("partiallyAll", deleted=deleted, skipped=missed)
        elif deleted > 0:
            classification = ACCEPT
            message = delete_message("successfullyAll", count=deleted)
        else:
            classification = ERROR
            message = delete_message("unableAll", count=deleted)

        return cls(deleted, deleted, missed, classification, message, gettext("Deletion"))

    def to_dict(self):
        return {
            "selected": self.selected,
            "deleted": self.deleted,
            "missed": self.missed,
            "success": self.success,
            "message": self.message,
            "title": self.title,
            "type": self.classification,
        }


class DeleteOrchestrator:
    """
    Run selection and delete-all deletes against a QuerySet.

    Args:
        queryset: Rows the grid may delete from
        manager: DataManager giving the primary key, lock flag, dependencies
            and models whose sequences are reset on delete-all
        expand_ids: Optional callable(ids) -> ids widening the selection
        before_delete: Optional callable(some_rows) -> bool, False cancels
        after_delete: Optional callable(some_rows, result)

    Example:
        orchestrator = DeleteOrchestrator(Article.objects.all(), manager)
        outcome = orchestrator.delete(["3", "7"])
    """

    def __init__(self, queryset, manager, expand_ids=None, before_delete=None, after_delete=None):
        self.queryset = queryset
        self.manager = manager
        self.expand_ids = expand_ids
        self.before_delete = before_delete
        self.after_delete = after_delete

    @property
    def using(self):
        return self.queryset.db

    def get_condition(self, ids=None):
        """Q selecting the rows a delete may remove."""
        condition = Q()
        if ids is not None:
            condition &= Q(**{f"{self.manager.primary_key}__in": list(ids)})
        if self.manager.lock_rows:
            condition &= ~Q(**{self.manager.lock_field: 1})
        return condition

    def delete(self, ids):
        """Delete the selected rows; returns a DeleteOutcome."""
        ids = list(ids or [])
        result = self.execute(ids)
        return DeleteOutcome.for_selection(len(ids), result)

    def delete_all(self):
        """Delete every deletable row; returns a DeleteOutcome."""
        result = self.execute(None)
        return DeleteOutcome.for_all(result, self.count_remaining())

    def count_remaining(self):
        """Rows left after a delete-all; 0 when they cannot be counted."""
        try:
            return self.queryset.count()
        except DatabaseError:
            logger.exception("Failed to count remaining rows of %s", self.queryset.model._meta.label)
            return 0

    def execute(self, ids):
        """
        Delete rows and return the number deleted, or False.

        `ids` of None deletes every row.
        """
        some_rows = ids is not None
        if self.before_delete is not None and not self.before_delete(some_rows):
            logger.debug("Delete cancelled by before_delete hook")
            return False

        if some_rows:
            if not ids:
                result = 0
                self.call_after_delete(some_rows, result)
                return result
            if self.expand_ids is not None:
                ids = self.expand_ids(ids)

        target = self.queryset.order_by().filter(self.get_condition(ids))
        dependencies, cleanups = self.manager.get_dependency("delete" if some_rows else "deleteAll")

        try:
            with transaction.atomic(using=self.using):
                for model, field in dependencies:
                    dependent = model._default_manager.filter(
                        **{f"{field}__in": target.values(self.manager.primary_key)}
                    )
                    dependent.delete()
                for cleanup in cleanups:
                    if some_rows:
                        cleanup(ids)
                    else:
                        cleanup()
                count, per_model = target.delete()
                result = per_model.get(self.queryset.model._meta.label, count)
        except DatabaseError:
            logger.exception("Failed to delete rows of %s", self.queryset.model._meta.label)
            result = False

        if not some_rows and result is not False:
            self.reset_increments()

        self.call_after_delete(some_rows, result)
        return result

    def call_after_delete(self, some_rows, result):
        if self.after_delete is not None:
            self.after_delete(some_rows, result)

    def reset_increments(self):
        """Reset auto-increment sequences of the manager's declared models."""
        models = [resolve_model(model) for model in self.manager.reset_increments]
        if not models:
            return

        connection = connections[router.db_for_write(models[0])]
        statements = connection.ops.sequence_reset_sql(no_style(), models)
        try:
            with connection.cursor() as cursor:
                for sql in statements:
                    cursor.execute(sql)
        except DatabaseError:
            logger.exception("Failed to reset sequences of %s", ", ".join(m._meta.label for m in models))
