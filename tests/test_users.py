"""Unit tests for app.services.users: validate-hash-persist pipeline, lookups, seeding."""

import unittest

from app.core.database import SessionLocal
from app.models import User
from app.services.users import (
    DuplicateUsernameError,
    UserNotFoundError,
    UserValidationError,
    create_user,
    find_by_username,
    record_login,
    seed_users,
    update_user,
    verify_user_password,
)
from support import reset_database


class UserStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.db = SessionLocal()

    def tearDown(self) -> None:
        self.db.close()


class TestCreateUser(UserStoreTestCase):
    def test_stores_only_the_hash(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="editor")
        self.assertNotEqual(user.password_hash, "s3cret")
        self.assertTrue(verify_user_password(user, "s3cret"))
        self.assertFalse(verify_user_password(user, "wrong"))
        self.assertTrue(user.is_active)

    def test_username_trimmed_and_lowercased(self) -> None:
        user = create_user(self.db, name=" Maria ", username="  MaRia ", password="s3cret", role="viewer")
        self.assertEqual(user.username, "maria")
        self.assertEqual(user.name, "Maria")

    def test_duplicate_username_is_case_insensitive(self) -> None:
        create_user(self.db, name="Maria", username="maria", password="s3cret", role="editor")
        with self.assertRaises(DuplicateUsernameError):
            create_user(self.db, name="Other", username="MARIA", password="s3cret", role="viewer")

    def test_invalid_role_rejected(self) -> None:
        with self.assertRaises(UserValidationError):
            create_user(self.db, name="X", username="x", password="s3cret", role="owner")

    def test_short_password_rejected(self) -> None:
        with self.assertRaises(UserValidationError):
            create_user(self.db, name="X", username="x", password="123", role="viewer")

    def test_blank_name_rejected(self) -> None:
        with self.assertRaises(UserValidationError):
            create_user(self.db, name="   ", username="x", password="s3cret", role="viewer")

    def test_surrounding_whitespace_is_not_part_of_password(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password=" s3cret ", role="viewer")
        self.assertTrue(verify_user_password(user, "s3cret"))

    def test_password_short_after_trimming_rejected(self) -> None:
        with self.assertRaises(UserValidationError):
            create_user(self.db, name="X", username="x", password="  12  ", role="viewer")

    def test_default_preferences(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        self.assertEqual(user.preferences, {"theme": "light", "language": "pt-BR"})


class TestFindByUsername(UserStoreTestCase):
    def test_case_insensitive_trimmed_match(self) -> None:
        create_user(self.db, name="Almir", username="almir", password="1515", role="admin")
        found = find_by_username(self.db, "  ALMIR ")
        self.assertIsNotNone(found)
        self.assertEqual(found.username, "almir")

    def test_missing_returns_none(self) -> None:
        self.assertIsNone(find_by_username(self.db, "nobody"))


class TestUpdateUser(UserStoreTestCase):
    def test_updates_role_and_password(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        updated = update_user(self.db, user.id, {"role": "editor", "password": "n3w-pass"})
        self.assertEqual(updated.role, "editor")
        self.assertTrue(verify_user_password(updated, "n3w-pass"))
        self.assertFalse(verify_user_password(updated, "s3cret"))

    def test_preferences_merge_key_by_key(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        updated = update_user(self.db, user.id, {"preferences": {"language": "en"}})
        self.assertEqual(updated.preferences, {"theme": "light", "language": "en"})
        self.db.expire_all()
        self.assertEqual(self.db.get(User, user.id).preferences["language"], "en")

    def test_unknown_preference_rejected(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        with self.assertRaises(UserValidationError):
            update_user(self.db, user.id, {"preferences": {"font": "serif"}})

    def test_deactivate(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        self.assertFalse(update_user(self.db, user.id, {"is_active": False}).is_active)

    def test_rename_onto_existing_username_rejected(self) -> None:
        create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        joao = create_user(self.db, name="Joao", username="joao", password="s3cret", role="viewer")
        with self.assertRaises(DuplicateUsernameError):
            update_user(self.db, joao.id, {"username": "Maria"})

    def test_keeping_own_username_allowed(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        self.assertEqual(update_user(self.db, user.id, {"username": "MARIA"}).username, "maria")

    def test_invalid_field_leaves_user_unchanged(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        with self.assertRaises(UserValidationError):
            update_user(self.db, user.id, {"name": "Mary", "role": "owner"})
        self.db.refresh(user)
        self.assertEqual(user.name, "Maria")

    def test_missing_user(self) -> None:
        with self.assertRaises(UserNotFoundError):
            update_user(self.db, 999, {"name": "X"})


class TestLoginBookkeepingAndSeed(UserStoreTestCase):
    def test_record_login_sets_timestamp(self) -> None:
        user = create_user(self.db, name="Maria", username="maria", password="s3cret", role="viewer")
        self.assertIsNone(user.last_login)
        record_login(self.db, user)
        self.db.refresh(user)
        self.assertIsNotNone(user.last_login)

    def test_seed_creates_admin_once(self) -> None:
        self.assertEqual(seed_users(self.db), 1)
        almir = find_by_username(self.db, "almir")
        self.assertEqual(almir.role, "admin")
        self.assertTrue(verify_user_password(almir, "1515"))
        self.assertEqual(seed_users(self.db), 0)


if __name__ == "__main__":
    unittest.main()
