"""
Django-Grid Record Permissions

Record-level sharing (RLS) and audit visibility for grids.

A permission is attached to a DataManager. When it reports that record-level
sharing applies to the current user, its Q filter is ANDed to every read,
after the fast and direct filters.

Usage:
    manager = DataManager(fields=..., permission=OwnerRecordPermission("owner"))
"""

from django.db.models import Q


class GridPermission:
    """
    Base permission class for django-grid.

    Subclass this to restrict which records a user sees.

    Example:
        class OwnRecordsPermission(GridPermission):
            def can_use_record_rls(self, user, manager):
                return not user.is_superuser

            def get_record_filter(self, user, manager):
                return Q(created_user=user.pk)
    """

    def can_use_record_rls(self, user, manager):
        """Whether the record filter applies to `user`."""
        return False

    def get_record_filter(self, user, manager):
        """Return Q object restricting rows `user` can see."""
        return Q()

    def can_view_audit(self, user, manager):
        """Whether `user` may see record audit columns."""
        return True


class OwnerRecordPermission(GridPermission):
    """
    Show each user only the records they own.

    Superusers see everything. Audit columns are visible to staff only.

    Args:
        owner_field: Lookup holding the owner's primary key
    """

    def __init__(self, owner_field="created_user"):
        self.owner_field = owner_field

    def can_use_record_rls(self, user, manager):
        if user is None:
            return True
        return not getattr(user, "is_superuser", False)

    def get_record_filter(self, user, manager):
        if user is None or not getattr(user, "is_authenticated", False):
            # Anonymous users own nothing
            return Q(pk__in=[])
        return Q(**{self.owner_field: user.pk})

    def can_view_audit(self, user, manager):
        return bool(user is not None and getattr(user, "is_staff", False))
