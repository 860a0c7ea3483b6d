from urllib.parse import quote
import secrets
import time
import os

CONFERENCE_BASE_URL = os.getenv("CONFERENCE_BASE_URL", "https://meet.jit.si")


def generate_room_name() -> str:
	"""Generate a hard to guess conferencing room handle.

	Example: ROOM_9f3a0c1b2d4e_1768000000000
	"""
	return f"ROOM_{secrets.token_hex(6)}_{int(time.time() * 1000)}"


def conference_url(room: str) -> str:
	return f"{CONFERENCE_BASE_URL.rstrip('/')}/{quote(room, safe='')}"
