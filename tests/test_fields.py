"""
Tests for django_grid.fields module.
"""

import pytest
from unittest.mock import MagicMock


class TestToLookup:
    """Tests for to_lookup function."""

    def test_plain_field(self):
        from django_grid.fields import to_lookup

        assert to_lookup("name") == "name"

    def test_dotted_field(self):
        from django_grid.fields import to_lookup

        assert to_lookup("author.profile.city") == "author__profile__city"


class TestDataManager:
    """Tests for DataManager field metadata."""

    def test_get_full_field_prefers_direct(self):
        from django_grid.fields import DataManager

        manager = DataManager(
            fields={
                "name": {"field": "full_name", "direct": "author__full_name"},
                "title": {"field": "title"},
            }
        )

        assert manager.get_full_field("name") == "author__full_name"
        assert manager.get_full_field("title") == "title"
        assert manager.get_full_field("missing") is None
        assert manager.get_full_field(None) is None

    def test_field_aliases(self):
        from django_grid.fields import DataManager

        manager = DataManager(fields={"name": {"field": "full_name"}, "code": {}})

        assert manager.field_aliases == {"name": "full_name", "code": "code"}

    def test_options_override_class_defaults(self):
        from django_grid.fields import DataManager

        manager = DataManager(fields={}, primary_key="uid", lock_rows=True, order={"name": "ASC"})

        assert manager.primary_key == "uid"
        assert manager.lock_rows is True
        assert manager.order == {"name": "ASC"}
        assert DataManager.primary_key == "id"

    def test_unknown_option(self):
        from django_grid.fields import DataManager

        with pytest.raises(TypeError, match="primary"):
            DataManager(fields={}, primary="uid")

    def test_audit_fields_registered(self):
        from django_grid.fields import COL_CREATED_DATE, COL_UPDATED_USER, DataManager

        manager = DataManager(fields={}, use_audit=True)

        assert manager.fields[COL_CREATED_DATE] == {"field": "created_date", "filterType": "datetime"}
        assert manager.fields[COL_UPDATED_USER] == {"field": "updated_user"}

    def test_audit_fields_keep_declared_options(self):
        from django_grid.fields import COL_CREATED_DATE, DataManager

        manager = DataManager(fields={COL_CREATED_DATE: {"field": "inserted_at"}}, use_audit=True)
        mask = {}
        manager.add_audit_fields_to_mask(mask)

        assert mask[COL_CREATED_DATE] == "inserted_at"

    def test_lock_field_in_mask(self):
        from django_grid.fields import DataManager

        mask = {"name": "name"}
        DataManager(fields={}, lock_field="is_system").add_lock_fields_to_mask(mask)

        assert mask == {"name": "name", "is_system": "is_system"}

    def test_get_dependency(self):
        from django_grid.fields import DataManager

        comment_model = MagicMock()
        manager = DataManager(fields={}, dependencies={"delete": [(comment_model, "article")]})
        cleanup = manager.add_cleanup("delete", lambda ids: None)

        dependencies, cleanups = manager.get_dependency("delete")

        assert dependencies == [(comment_model, "article")]
        assert cleanups == [cleanup]
        assert manager.get_dependency("deleteAll") == ([], [])

    def test_without_permission(self):
        from django_grid.fields import DataManager

        manager = DataManager(fields={})

        assert manager.can_use_record_rls(MagicMock()) is False
        assert manager.can_view_audit(MagicMock()) is True


class TestFromModel:
    """Tests for DataManager.from_model."""

    def make_model(self):
        from django.db.models import ForeignKey

        def field(name, column=True, fk=False):
            mock = MagicMock(spec=ForeignKey) if fk else MagicMock()
            mock.name = name
            mock.column = name if column else None
            return mock

        model = MagicMock()
        model._meta.get_fields.return_value = [
            field("id"),
            field("title"),
            field("author", fk=True),
            field("comments", column=False),
        ]
        model._meta.pk.name = "id"
        return model

    def test_exposes_concrete_fields(self):
        from django_grid.fields import DataManager

        manager = DataManager.from_model(self.make_model())

        assert manager.field_aliases == {"id": "id", "title": "title", "author": "author_id"}
        assert manager.primary_key == "id"

    def test_exclude(self):
        from django_grid.fields import DataManager

        manager = DataManager.from_model(self.make_model(), exclude=["title"], lock_rows=True)

        assert "title" not in manager.fields
        assert manager.lock_rows is True
