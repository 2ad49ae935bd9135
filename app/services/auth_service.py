"""Authentication service - business logic for user auth."""
import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from app.errors import AuthenticationError, NotFoundError, ValidationError
from app.models.user import User
from app.utils.auth import create_access_token, hash_password, verify_password
from app.utils.ids import parse_object_id

logger = logging.getLogger(__name__)


class AuthService:
    """Service for handling user authentication."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.users = db["users"]

    def _doc_to_user(self, doc: dict) -> User:
        return User(
            _id=str(doc["_id"]),
            email=doc["email"],
            name=doc["name"],
            timezone=doc.get("timezone"),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    async def register_user(
        self,
        email: str,
        password: str,
        name: str,
        timezone: Optional[str] = None,
    ) -> User:
        """
        Register a new user.

        Args:
            email: User email address
            password: Plain text password
            name: User's name
            timezone: Optional IANA timezone for the user's calendar day

        Returns:
            User object (without password)

        Raises:
            ValidationError: If email is already registered
        """
        existing = await self.users.find_one({"email": email})
        if existing:
            raise ValidationError("Email already registered")

        now = datetime.utcnow()
        user_doc = {
            "email": email,
            "hashed_password": hash_password(password),
            "name": name,
            "timezone": timezone,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.users.insert_one(user_doc)
        except DuplicateKeyError:
            # Lost a race with a concurrent registration for the same email
            raise ValidationError("Email already registered")

        user_doc["_id"] = result.inserted_id
        logger.info("Registered user %s", user_doc["_id"])
        return self._doc_to_user(user_doc)

    async def login(self, email: str, password: str) -> str:
        """
        Login user and return JWT token.

        Raises:
            AuthenticationError: If credentials are invalid
        """
        user_doc = await self.users.find_one({"email": email})
        if not user_doc or not verify_password(password, user_doc["hashed_password"]):
            logger.info("Failed login attempt")
            raise AuthenticationError("Invalid email or password")

        return create_access_token(user_id=str(user_doc["_id"]))

    async def get_user_by_id(self, user_id: str) -> User:
        """
        Get user by ID.

        Raises:
            NotFoundError: If the ID is malformed or no user has it
        """
        object_id = parse_object_id(user_id, "User")
        user_doc = await self.users.find_one({"_id": object_id})
        if not user_doc:
            raise NotFoundError("User not found")

        return self._doc_to_user(user_doc)

    async def get_user_timezone(self, user_id: str) -> Optional[str]:
        """Timezone preference of a user, None when unset or unknown."""
        try:
            object_id = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None

        user_doc = await self.users.find_one({"_id": object_id}, {"timezone": 1})
        if not user_doc:
            return None
        return user_doc.get("timezone")
