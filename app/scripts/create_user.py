"""
Create a user (e.g. an extra admin or editor). Run from project root:
  python -m app.scripts.create_user NAME USERNAME PASSWORD [role]
Example:
  python -m app.scripts.create_user "Maria Souza" maria your-secure-password editor
"""
import argparse
import sys

from app.core.database import SessionLocal
from app.core.permissions import ROLE_VALUES
from app.services.users import DuplicateUsernameError, UserValidationError, create_user


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an IPB API user (no registration UI).")
    parser.add_argument("name", help="Display name")
    parser.add_argument("username", help="Username (stored lowercase)")
    parser.add_argument("password", help="Password (4-128 chars)")
    parser.add_argument("role", nargs="?", default="viewer", choices=sorted(ROLE_VALUES))
    args = parser.parse_args()

    db = SessionLocal()
    try:
        user = create_user(
            db,
            name=args.name,
            username=args.username,
            password=args.password,
            role=args.role,
        )
    except (UserValidationError, DuplicateUsernameError) as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{user.username}' with role '{user.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
