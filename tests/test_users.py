"""
Tests for user management in the admin panel, including the profile photo
upload that follows the insert.
"""
import os
from urllib.parse import urlparse

import pytest
from sqlmodel import select

from conftest import make_admin, make_user
from triptrack.errors import FormError, StorageError
from triptrack.models import User, UserRole
from triptrack.services import user_service

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def stored_path(settings, photo_url):
    return os.path.join(settings.storage_dir, settings.photo_bucket, photo_url.rsplit("/", 1)[-1])


class TestUserForm:

    def test_defaults(self):
        form = user_service.UserForm.parse("Kenji", "", None, "")
        assert form.role == UserRole.joiner
        assert form.avatar_color == "#0ea5e9"
        assert form.email is None

    def test_bad_color(self):
        with pytest.raises(FormError, match="hex value"):
            user_service.UserForm.parse("Kenji", None, "joiner", "blue")

    def test_bad_role(self):
        with pytest.raises(FormError):
            user_service.UserForm.parse("Kenji", None, "superuser", "#000000")


class TestUserRoutes:

    def test_create_user_with_photo(self, logged_in, session, settings, admin):
        response = logged_in.post(
            "/admin/users",
            data={"name": "Kenji Sato", "role": "joiner", "avatar_color": "#14b8a6"},
            files={"photo": ("kenji.png", PNG, "image/png")},
        )
        assert "User created" in response.text

        user = session.exec(select(User).where(User.name == "Kenji Sato")).one()
        assert user.owner_id == admin.id
        assert user.photo_url.startswith("http://testserver/storage/user-photos/")
        assert urlparse(user.photo_url).path.endswith(".png")
        assert os.path.exists(stored_path(settings, user.photo_url))

        served = logged_in.get(urlparse(user.photo_url).path)
        assert served.status_code == 200
        assert served.content == PNG

    def test_rejected_photo_creates_no_user(self, logged_in, session):
        response = logged_in.post(
            "/admin/users",
            data={"name": "Yuki", "role": "joiner"},
            files={"photo": ("notes.txt", b"hello", "text/plain")},
        )
        assert "Please select an image file" in response.text
        assert "User created" not in response.text
        assert session.exec(select(User).where(User.name == "Yuki")).all() == []

    def test_oversized_photo_creates_no_user(self, logged_in, session, settings):
        big = b"\x00" * (settings.max_photo_bytes + 1)
        response = logged_in.post("/admin/users", data={"name": "Big"},
                                  files={"photo": ("big.png", big, "image/png")})
        assert "File size must be less than 5MB" in response.text
        assert session.exec(select(User).where(User.name == "Big")).all() == []

    def test_failed_upload_keeps_user(self, logged_in, session, monkeypatch):
        def unavailable(*args, **kwargs):
            raise StorageError("Upload failed: disk full")

        monkeypatch.setattr(logged_in.app.state.storage, "upload", unavailable)
        response = logged_in.post("/admin/users", data={"name": "Yuki"},
                                  files={"photo": ("yuki.png", PNG, "image/png")})
        assert "User created, but the photo was not saved: Upload failed: disk full" in response.text
        user = session.exec(select(User).where(User.name == "Yuki")).one()
        assert user.photo_url is None

    def test_failed_update_keeps_old_photo(self, logged_in, session, settings, admin):
        logged_in.post("/admin/users", data={"name": "Kenji"}, files={"photo": ("a.png", PNG, "image/png")})
        user = session.exec(select(User).where(User.name == "Kenji")).one()
        user_id, old_url = user.id, user.photo_url
        bucket = os.path.join(settings.storage_dir, settings.photo_bucket)

        # the owner's email is already taken, so the row update fails
        response = logged_in.post(f"/admin/users/{user_id}", data={"name": "Kenji", "email": "alice@example.com"},
                                  files={"photo": ("b.jpg", PNG, "image/jpeg")})
        assert "This record already exists." in response.text

        session.expire_all()
        assert session.get(User, user_id).photo_url == old_url
        assert os.listdir(bucket) == [old_url.rsplit("/", 1)[-1]]

    def test_replace_photo_removes_old_object(self, logged_in, session, settings, admin):
        logged_in.post("/admin/users", data={"name": "Kenji"}, files={"photo": ("a.png", PNG, "image/png")})
        user = session.exec(select(User).where(User.name == "Kenji")).one()
        old_path = stored_path(settings, user.photo_url)

        logged_in.post(f"/admin/users/{user.id}", data={"name": "Kenji", "role": "admin"},
                       files={"photo": ("b.jpg", PNG, "image/jpeg")})
        session.expire_all()
        user = session.get(User, user.id)
        assert user.role == UserRole.admin
        assert user.photo_url.endswith(".jpg")
        assert not os.path.exists(old_path)
        assert os.path.exists(stored_path(settings, user.photo_url))

    def test_remove_photo(self, logged_in, session, settings):
        logged_in.post("/admin/users", data={"name": "Kenji"}, files={"photo": ("a.png", PNG, "image/png")})
        user = session.exec(select(User).where(User.name == "Kenji")).one()
        path = stored_path(settings, user.photo_url)

        logged_in.post(f"/admin/users/{user.id}", data={"name": "Kenji", "remove_photo": "true"})
        session.expire_all()
        assert session.get(User, user.id).photo_url is None
        assert not os.path.exists(path)

    def test_users_tab_scoped_to_admin(self, logged_in, session, admin):
        make_user(session, admin, "Mine")
        bob = make_admin(session, "bob@example.com", "Bob")
        make_user(session, bob, "Theirs")

        response = logged_in.get("/admin?tab=users")
        assert "Mine" in response.text
        assert "Theirs" not in response.text

    def test_delete_user(self, logged_in, session, admin):
        user_id = make_user(session, admin, "Kenji").id
        response = logged_in.post(f"/admin/users/{user_id}/delete", data={"confirm": "yes"})
        assert "User deleted" in response.text
        session.expire_all()
        assert session.get(User, user_id) is None

    def test_cannot_delete_owner(self, logged_in, session, admin):
        response = logged_in.post(f"/admin/users/{admin.id}/delete", data={"confirm": "yes"})
        assert "You cannot delete the account owner" in response.text
        session.expire_all()
        assert session.get(User, admin.id) is not None
