from typing import Optional

from mentorline.logging_config import get_logger
from mentorline.models import User
from mentorline.repositories.base import UserRepository

logger = get_logger("user_service")

PLACEHOLDER_USER_NAME = "WhatsApp Client"


async def get_or_create_user(users: UserRepository, phone_number: str) -> User:
    """Find user by phone or create one with a placeholder name."""
    user = await users.get_by_phone(phone_number)
    if user:
        return user

    user = await users.create(User(phone_number=phone_number, name=PLACEHOLDER_USER_NAME, status="active"))
    logger.info(f"Created new user {user.id} for phone {phone_number}")
    return user


async def upsert_enrolled_user(
    users: UserRepository,
    phone_number: str,
    name: str,
    email: Optional[str] = None,
) -> User:
    """Create the user or refresh name/email from enrollment data."""
    user = await users.get_by_phone(phone_number)
    if not user:
        user = await users.create(User(phone_number=phone_number, name=name, email=email, status="active"))
        logger.info(f"Created new user {user.id} for enrollment")
        return user

    user.name = name
    if email is not None:
        user.email = email
    await users.update(user)
    logger.info(f"Updated user {user.id} information")
    return user
