"""Shared constants and helpers for the test suite."""

from filevault.schemas.files import Role

MASTER_KEY = "M"

# token -> (username, role)
TEST_USERS = {
    "alice-key": ("alice", Role.READ_WRITE_SELF),
    "bob-key": ("bob", Role.READ_WRITE_SELF),
    "carol-key": ("carol", Role.READ_WRITE_ALL),
    "nobody-key": ("nobody", Role.NONE),
}


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
